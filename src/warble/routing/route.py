"""Route and RouteMatch frozen dataclasses."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from warble.routing.pattern import CompiledPattern


@dataclass(frozen=True, slots=True)
class Route:
    """A compiled route definition.

    Created while registering, never mutated afterwards.
    """

    method: str
    pattern: CompiledPattern
    handler: Callable[..., Any]
    name: str | None = None

    @property
    def path(self) -> str:
        return self.pattern.spec


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match."""

    route: Route
    path_params: dict[str, str]
