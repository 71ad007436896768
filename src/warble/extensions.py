"""Extension and helper registries.

An extension is a named bundle of application-level operations; a
helper bundle is a named set of operations every request context
exposes to handlers. Both are collected in registration order during
setup and merged into flat, read-only operation tables when the app is
built. Name collisions resolve to the last registration.

Bundles can be declared explicitly::

    formatting = Bundle("formatting", {"money": lambda ctx, v: f"${v:,.2f}"})

or derived from a class or module, whose public callables become the
operations::

    class Auth:
        def current_user(ctx):
            return ctx.params.get("user")

    app.helpers(Auth)
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType, ModuleType
from typing import Any

from warble.errors import ConfigError

logger = logging.getLogger("warble.app")


@dataclass(frozen=True, slots=True)
class Bundle:
    """A named set of operations."""

    name: str
    operations: Mapping[str, Callable[..., Any]] = field(default_factory=dict)


def as_bundle(source: Any) -> Bundle:
    """Normalize *source* into a ``Bundle``.

    Accepts a ``Bundle``, a mapping of name to callable, a module, or a
    class (or instance). Names starting with ``_`` are skipped, as is
    the ``registered`` setup hook.
    """
    if isinstance(source, Bundle):
        return source

    if isinstance(source, Mapping):
        _check_callables("<mapping>", source)
        return Bundle("<mapping>", dict(source))

    if isinstance(source, ModuleType):
        name = source.__name__
        members = {
            key: value
            for key, value in vars(source).items()
            if not key.startswith("_")
            and key != "registered"
            and inspect.isfunction(value)
            and value.__module__ == source.__name__
        }
        return Bundle(name, members)

    owner = source if isinstance(source, type) else type(source)
    members: dict[str, Callable[..., Any]] = {}
    for key in dir(owner):
        if key.startswith("_") or key == "registered":
            continue
        raw = inspect.getattr_static(owner, key)
        # Taken unbound: the first argument is whatever the operation is
        # bound to (the app for extensions, the request context for helpers).
        if inspect.isfunction(raw):
            members[key] = raw
    if not members:
        msg = f"{source!r} exposes no public operations."
        raise ConfigError(msg)
    return Bundle(owner.__name__, members)


def registered_hook(source: Any) -> Callable[..., Any] | None:
    """The source's ``registered`` setup hook, if it defines one.

    Like operations, the hook is taken unbound from classes and instances
    and is called with the app as its only argument.
    """
    if isinstance(source, (Bundle, Mapping)):
        return None
    owner = source if isinstance(source, (ModuleType, type)) else type(source)
    hook = inspect.getattr_static(owner, "registered", None)
    return hook if callable(hook) else None


def _check_callables(name: str, operations: Mapping[str, Any]) -> None:
    for key, value in operations.items():
        if not callable(value):
            msg = f"Operation {key!r} in bundle {name!r} is not callable."
            raise ConfigError(msg)


class OperationRegistry:
    """Ordered bundles, merged into one flat table by ``compile()``."""

    __slots__ = ("_bundles", "_frozen", "kind")

    def __init__(self, kind: str) -> None:
        self.kind = kind
        self._bundles: list[Bundle] = []
        self._frozen = False

    def add(self, bundle: Bundle) -> None:
        if self._frozen:
            msg = f"Cannot register {self.kind} {bundle.name!r} after the app is built."
            raise ConfigError(msg)
        _check_callables(bundle.name, bundle.operations)
        self._bundles.append(bundle)

    @property
    def bundles(self) -> tuple[Bundle, ...]:
        return tuple(self._bundles)

    def compile(self, *, freeze: bool = True) -> Operations:
        """Merge bundles in order. Later bundles replace earlier names.

        With ``freeze=False`` the merge is a preview and later ``add`` calls
        are still accepted.
        """
        table: dict[str, Callable[..., Any]] = {}
        owners: dict[str, str] = {}
        for bundle in self._bundles:
            for name, op in bundle.operations.items():
                if name in table:
                    logger.debug(
                        "%s operation %r from %r replaced by %r",
                        self.kind, name, owners[name], bundle.name,
                    )
                table[name] = op
                owners[name] = bundle.name
        if freeze:
            self._frozen = True
        return Operations(table)


class Operations(Mapping[str, Callable[..., Any]]):
    """Read-only operation table with attribute access."""

    __slots__ = ("_table",)

    _table: MappingProxyType[str, Callable[..., Any]]

    def __init__(self, table: Mapping[str, Callable[..., Any]] | None = None) -> None:
        object.__setattr__(self, "_table", MappingProxyType(dict(table or {})))

    def __getitem__(self, name: str) -> Callable[..., Any]:
        return self._table[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def __getattr__(self, name: str) -> Callable[..., Any]:
        try:
            return self._table[name]
        except KeyError:
            msg = f"No operation named {name!r}"
            raise AttributeError(msg) from None

    def __setattr__(self, name: str, value: Any) -> None:
        msg = "Operation tables are read-only."
        raise AttributeError(msg)

    def __repr__(self) -> str:
        return f"Operations({sorted(self._table)!r})"
