"""Immutable query string and form body parameters.

Implements ``Mapping[str, str]`` with last-value-wins lookup: for
``?tag=a&tag=b``, ``params["tag"] == "b"``. All values stay available
through ``get_list``.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from urllib.parse import parse_qsl


class QueryParams(Mapping[str, str]):
    """Immutable query string parameters.

    Attributes:
        _data: Parsed query string as field name -> list of values.
        _raw: Raw query string bytes.

    ``__getitem__`` returns the last value for a key.
    ``get_list`` returns all values for a key.
    """

    _data: dict[str, list[str]]
    _raw: bytes

    __slots__ = ("_data", "_raw")

    def __init__(self, query_string: bytes | str = b"") -> None:
        # Text input may hold any character; only bytes go through latin-1
        if isinstance(query_string, str):
            text = query_string
            query_string = text.encode("utf-8")
        else:
            text = query_string.decode("latin-1")
        object.__setattr__(self, "_raw", query_string)
        parsed: dict[str, list[str]] = {}
        for key, value in parse_qsl(text, keep_blank_values=True):
            parsed.setdefault(key, []).append(value)
        object.__setattr__(self, "_data", parsed)

    @classmethod
    def from_mapping(cls, values: Mapping[str, str]) -> QueryParams:
        """Build from an already-decoded mapping (one value per key)."""
        params = cls()
        object.__setattr__(params, "_data", {k: [v] for k, v in values.items()})
        return params

    def __getitem__(self, key: str) -> str:
        return self._data[key][-1]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"QueryParams({{{items}}})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the last value for *key*, or *default* if missing."""
        values = self._data.get(key)
        if values:
            return values[-1]
        return default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key*."""
        return list(self._data.get(key, []))

    def get_int(self, key: str, default: int | None = None) -> int | None:
        """Return value as int, or *default* if missing or not numeric."""
        value = self.get(key)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            return default

    def get_bool(self, key: str, default: bool | None = None) -> bool | None:
        """Return value as bool (``true``/``1``/``yes``/``on`` -> True)."""
        value = self.get(key)
        if value is None:
            return default
        return value.lower() in ("true", "1", "yes", "on")


def parse_form(body: bytes, content_type: str | None) -> QueryParams:
    """Parse a URL-encoded form body.

    Other content types yield empty parameters; multipart uploads are
    not handled here.
    """
    if not body or not content_type:
        return QueryParams()
    if content_type.split(";", 1)[0].strip().lower() != "application/x-www-form-urlencoded":
        return QueryParams()
    return QueryParams(body)
