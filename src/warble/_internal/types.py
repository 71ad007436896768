"""Shared types used across warble modules."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeAlias

from warble.routing.pattern import CompiledPattern, candidate_paths

if TYPE_CHECKING:
    from warble.config import SettingsSnapshot
    from warble.extensions import Operations
    from warble.routing.table import RouteTable
    from warble.templating.renderer import Renderer

# Route handler: user-defined function with variable signature
Handler: TypeAlias = Callable[..., Any]

# Error handler: receives (ctx, error?) and returns a response value
ErrorHandler: TypeAlias = Callable[..., Any]


@dataclass(frozen=True, slots=True)
class Filter:
    """A before/after filter, optionally limited to one path pattern."""

    handler: Handler
    pattern: CompiledPattern | None = None
    strict_slashes: bool = True

    def applies_to(self, path: str) -> dict[str, str] | None:
        """Return the filter's path parameters if it runs for *path*.

        Tries the same candidate paths as the route table.
        """
        if self.pattern is None:
            return {}
        for candidate in candidate_paths(path, strict_slashes=self.strict_slashes):
            params = self.pattern.match(candidate)
            if params is not None:
                return params
        return None


@dataclass(frozen=True, slots=True)
class Snapshot:
    """Everything ``App.init()`` produces. Read-only, shared by all requests."""

    routes: RouteTable
    settings: SettingsSnapshot
    helpers: Operations
    extensions: Operations
    renderer: Renderer
    error_handlers: Mapping[int | type, ErrorHandler]
    before_filters: tuple[Filter, ...] = ()
    after_filters: tuple[Filter, ...] = ()
