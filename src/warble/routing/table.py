"""Ordered route table.

Routes are kept per HTTP method in registration order. Matching scans
that order and the first structural match wins, so the outcome never
depends on how specific a pattern is.
"""

from collections.abc import Callable
from types import MappingProxyType
from typing import Any

from warble.errors import ConfigError, MethodNotAllowedError, NotFoundError
from warble.routing.pattern import candidate_paths, compile_pattern
from warble.routing.route import Route, RouteMatch


class RouteTable:
    """Per-method ordered route lists.

    Usage::

        table = RouteTable()
        table.register("GET", "/country/:info", handler)
        table.freeze()
        match = table.match("GET", "/country/capital")
        match.path_params  # {"info": "capital"}
    """

    __slots__ = ("_frozen", "_routes", "strict_slashes")

    def __init__(self, *, strict_slashes: bool = True) -> None:
        self._routes: dict[str, list[Route]] | MappingProxyType[str, tuple[Route, ...]] = {}
        self._frozen = False
        self.strict_slashes = strict_slashes

    def register(
        self,
        method: str,
        spec: str,
        handler: Callable[..., Any],
        *,
        name: str | None = None,
    ) -> Route:
        """Compile *spec* and append a route for *method*.

        Registering the same pattern twice keeps both routes; the first
        one registered still wins on dispatch.
        """
        if self._frozen:
            msg = "Cannot register routes after the route table is frozen."
            raise ConfigError(msg)

        route = Route(
            method=method.upper(),
            pattern=compile_pattern(spec, strict_slashes=self.strict_slashes),
            handler=handler,
            name=name,
        )
        self._routes.setdefault(route.method, []).append(route)  # type: ignore[union-attr]
        return route

    def freeze(self) -> None:
        """Make the table read-only. Safe to share across workers afterwards."""
        if self._frozen:
            return
        self._routes = MappingProxyType(
            {method: tuple(routes) for method, routes in self._routes.items()}
        )
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def routes(self) -> list[Route]:
        """All routes, grouped by method, each group in registration order."""
        return [route for routes in self._routes.values() for route in routes]

    def methods(self) -> frozenset[str]:
        return frozenset(self._routes)

    def match(self, method: str, path: str) -> RouteMatch:
        """Find the first route for *method* whose pattern matches *path*.

        Raises ``MethodNotAllowedError`` if only other methods match the path.
        Raises ``NotFoundError`` if nothing matches at all.
        """
        method = method.upper()
        candidates = candidate_paths(path, strict_slashes=self.strict_slashes)

        for candidate in candidates:
            for route in self._routes.get(method, ()):
                params = route.pattern.match(candidate)
                if params is not None:
                    return RouteMatch(route=route, path_params=params)

        allowed = self.allowed_methods(path)
        if allowed:
            raise MethodNotAllowedError(allowed)

        raise NotFoundError(f"No route matches {method} {path!r}")

    def allowed_methods(self, path: str) -> frozenset[str]:
        """Return every method with at least one route matching *path*."""
        candidates = candidate_paths(path, strict_slashes=self.strict_slashes)
        return frozenset(
            method
            for method, routes in self._routes.items()
            if any(
                route.pattern.match(candidate) is not None
                for route in routes
                for candidate in candidates
            )
        )
