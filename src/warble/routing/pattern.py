"""Path pattern compiler.

Turns a path pattern such as ``/country/:info`` or ``/files/*``
into a ``CompiledPattern``: the parsed segments, the ordered parameter
names, and an anchored regex that matches incoming paths.

Segment kinds:

- literal text — matches itself
- ``:name`` — matches one non-empty segment without slashes
- ``*`` — the final segment; captures the rest of the path (possibly
  empty, possibly containing slashes) under the ``splat`` parameter
"""

import re
from dataclasses import dataclass
from enum import Enum

from warble.errors import ConfigError

SPLAT = "splat"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SegmentKind(Enum):
    LITERAL = "literal"
    NAMED = "named"
    SPLAT = "splat"


@dataclass(frozen=True, slots=True)
class Segment:
    """A parsed segment of a path pattern.

    Literal: ``/users``  (kind=LITERAL, value="users")
    Named:   ``/:id``    (kind=NAMED, value="id")
    Splat:   ``/*``      (kind=SPLAT, value="splat")
    """

    kind: SegmentKind
    value: str


@dataclass(frozen=True, slots=True)
class CompiledPattern:
    """A compiled path pattern. Immutable, safe to share."""

    spec: str
    segments: tuple[Segment, ...]
    param_names: tuple[str, ...]
    regex: re.Pattern[str]

    def match(self, path: str) -> dict[str, str] | None:
        """Match *path* and return its parameters, or ``None``."""
        m = self.regex.match(path)
        if m is None:
            return None
        return {name: m.group(name) for name in self.param_names}


def parse_pattern(spec: str) -> list[Segment]:
    """Parse a path pattern into segments.

    Examples::

        "/"             -> []
        "/users"        -> [Segment(LITERAL, "users")]
        "/country/:info" -> [Segment(LITERAL, "country"), Segment(NAMED, "info")]
        "/files/*"      -> [Segment(LITERAL, "files"), Segment(SPLAT, "splat")]

    Raises ``ConfigError`` on malformed patterns.
    """
    if spec in ("", "/"):
        return []
    if spec == "*":
        return [Segment(SegmentKind.SPLAT, SPLAT)]
    if not spec.startswith("/"):
        msg = f"Route pattern {spec!r} must start with '/'."
        raise ConfigError(msg)

    parts = spec[1:].split("/")
    segments: list[Segment] = []
    seen: set[str] = set()

    for index, part in enumerate(parts):
        if part == "*":
            if index != len(parts) - 1:
                msg = f"Route pattern {spec!r}: '*' must be the last segment."
                raise ConfigError(msg)
            segment = Segment(SegmentKind.SPLAT, SPLAT)
        elif "*" in part:
            msg = f"Route pattern {spec!r}: '*' must be a whole segment preceded by '/'."
            raise ConfigError(msg)
        elif part.startswith(":"):
            name = part[1:]
            if not _IDENTIFIER.match(name):
                msg = f"Route pattern {spec!r}: invalid parameter name {name!r}."
                raise ConfigError(msg)
            segment = Segment(SegmentKind.NAMED, name)
        else:
            segment = Segment(SegmentKind.LITERAL, part)

        if segment.kind is not SegmentKind.LITERAL:
            if segment.value in seen:
                msg = f"Route pattern {spec!r}: duplicate parameter {segment.value!r}."
                raise ConfigError(msg)
            seen.add(segment.value)
        segments.append(segment)

    return segments


def compile_pattern(spec: str, *, strict_slashes: bool = True) -> CompiledPattern:
    """Compile a path pattern into a ``CompiledPattern``.

    With ``strict_slashes=False`` a trailing slash on the pattern is
    dropped, and callers are expected to strip one from incoming paths too
    (see ``candidate_paths``).
    """
    if not strict_slashes and spec.endswith("/") and spec not in ("/", "*"):
        spec = spec.rstrip("/") or "/"

    segments = parse_pattern(spec)

    if not segments:
        regex = "^/$"
    else:
        pieces: list[str] = []
        for seg in segments:
            if seg.kind is SegmentKind.LITERAL:
                pieces.append("/" + re.escape(seg.value))
            elif seg.kind is SegmentKind.NAMED:
                pieces.append(f"/(?P<{seg.value}>[^/]+)")
            else:
                pieces.append(f"/(?P<{SPLAT}>.*)")
        regex = "^" + "".join(pieces) + "$"

    return CompiledPattern(
        spec=spec,
        segments=tuple(segments),
        param_names=tuple(s.value for s in segments if s.kind is not SegmentKind.LITERAL),
        regex=re.compile(regex, re.DOTALL),
    )


def candidate_paths(path: str, *, strict_slashes: bool = True) -> tuple[str, ...]:
    """Return the paths the route table tries, in order.

    An empty path is the root. Under ``strict_slashes=False`` a path with
    a trailing slash is tried as-is first (so ``/files/`` still reaches
    ``/files/*``) and then without the slash.
    """
    if not path:
        return ("/",)
    if not strict_slashes and len(path) > 1 and path.endswith("/"):
        return (path, path[:-1])
    return (path,)
