"""Warble application class.

Mutable during setup (routes, settings, extensions, helpers, filters,
error handlers). Built once by ``init()``, or implicitly by the first
``dispatch()`` / ASGI call, into an immutable ``Snapshot`` that every
request reads from.
"""

import functools
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from warble._internal.asgi import Receive, Scope, Send
from warble._internal.types import ErrorHandler, Filter, Handler, Snapshot
from warble.config import Settings, SettingsSnapshot
from warble.errors import ConfigError
from warble.extensions import OperationRegistry, Operations, as_bundle, registered_hook
from warble.http.response import Response
from warble.routing.pattern import compile_pattern
from warble.routing.table import RouteTable
from warble.server.asgi import handle_request
from warble.server.dispatch import dispatch_request
from warble.templating.renderer import create_renderer

logger = logging.getLogger("warble.app")


@dataclass(slots=True)
class _PendingRoute:
    """A route waiting to be compiled."""

    path: str
    handler: Handler
    methods: tuple[str, ...]
    name: str | None


@dataclass(slots=True)
class _PendingFilter:
    """A before/after filter waiting to be compiled."""

    handler: Handler
    pattern: str | None


class App:
    """The warble application.

    Thread safety:
        The setup phase is single-threaded (decorators at import time).
        The build uses a Lock + double-check so exactly one thread
        compiles the app, even when several workers receive their first
        request at the same moment.
    """

    __slots__ = (
        "_after_filters",
        "_before_filters",
        "_error_handlers",
        "_extensions",
        "_freeze_lock",
        "_frozen",
        "_helpers",
        "_pending_routes",
        "_settings",
        # Compiled state (populated by _freeze)
        "_snapshot",
        "_template_filters",
        "_template_globals",
    )

    def __init__(self, **settings: Any) -> None:
        self._settings = Settings(**settings)
        self._pending_routes: list[_PendingRoute] = []
        self._before_filters: list[_PendingFilter] = []
        self._after_filters: list[_PendingFilter] = []
        self._error_handlers: dict[int | type, ErrorHandler] = {}
        self._extensions = OperationRegistry("extension")
        self._helpers = OperationRegistry("helper")
        self._template_filters: dict[str, Callable[..., Any]] = {}
        self._template_globals: dict[str, Any] = {}
        self._snapshot: Snapshot | None = None
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

    # -- Settings --

    def set(self, key: str, value: Any) -> None:
        """Set a global default."""
        self._check_not_frozen()
        self._settings.set(key, value)

    def configure(self, *environments: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Run the decorated block with a scope that writes settings.

        With environments, ``scope.set`` writes overrides that apply only
        when the app runs under one of them::

            @app.configure("production")
            def prod(scope):
                scope.set("port", 80)
        """
        self._check_not_frozen()
        return self._settings.configure(*environments)

    @property
    def settings(self) -> Settings | SettingsSnapshot:
        """The live ``Settings`` during setup, the frozen snapshot afterwards."""
        if self._snapshot is not None:
            return self._snapshot.settings
        return self._settings

    # -- Route registration --

    def route(
        self,
        path: str,
        *,
        methods: list[str] | None = None,
        name: str | None = None,
    ) -> Callable[[Handler], Handler]:
        """Register a route handler via decorator.

        Args:
            path: Path pattern. ``:name`` captures one segment, a final
                ``*`` captures the rest of the path as ``splat``.
            methods: HTTP methods. Defaults to ``["GET"]``.
            name: Optional route name.
        """

        def decorator(func: Handler) -> Handler:
            self._check_not_frozen()
            verbs = tuple(m.upper() for m in (methods or ["GET"]))
            self._pending_routes.append(_PendingRoute(path, func, verbs, name))
            return func

        return decorator

    def get(self, path: str, *, name: str | None = None) -> Callable[[Handler], Handler]:
        """Register a GET route. The same handler also answers HEAD."""
        return self.route(path, methods=["GET", "HEAD"], name=name)

    def post(self, path: str, *, name: str | None = None) -> Callable[[Handler], Handler]:
        return self.route(path, methods=["POST"], name=name)

    def put(self, path: str, *, name: str | None = None) -> Callable[[Handler], Handler]:
        return self.route(path, methods=["PUT"], name=name)

    def patch(self, path: str, *, name: str | None = None) -> Callable[[Handler], Handler]:
        return self.route(path, methods=["PATCH"], name=name)

    def delete(self, path: str, *, name: str | None = None) -> Callable[[Handler], Handler]:
        return self.route(path, methods=["DELETE"], name=name)

    def options(self, path: str, *, name: str | None = None) -> Callable[[Handler], Handler]:
        return self.route(path, methods=["OPTIONS"], name=name)

    # -- Filters --

    def before(self, pattern: str | Handler | None = None) -> Any:
        """Register a filter that runs before the route handler.

        Usable bare (``@app.before``) or with a path pattern
        (``@app.before("/admin/*")``). Filters run in registration order
        and receive arguments the same way handlers do.
        """
        return self._add_filter(self._before_filters, pattern)

    def after(self, pattern: str | Handler | None = None) -> Any:
        """Register a filter that runs after the response is negotiated.

        A filter may accept ``response``; returning a ``Response``
        replaces the current one.
        """
        return self._add_filter(self._after_filters, pattern)

    def _add_filter(self, target: list[_PendingFilter], pattern: str | Handler | None) -> Any:
        if callable(pattern):
            self._check_not_frozen()
            target.append(_PendingFilter(pattern, None))
            return pattern

        def decorator(func: Handler) -> Handler:
            self._check_not_frozen()
            target.append(_PendingFilter(func, pattern))
            return func

        return decorator

    # -- Error handlers --

    def error(
        self,
        code_or_exception: int | type[Exception],
    ) -> Callable[[ErrorHandler], ErrorHandler]:
        """Register an error handler via decorator."""

        def decorator(func: ErrorHandler) -> ErrorHandler:
            self._check_not_frozen()
            self._error_handlers[code_or_exception] = func
            return func

        return decorator

    def not_found(self, func: ErrorHandler) -> ErrorHandler:
        """Register the 404 handler."""
        return self.error(404)(func)

    # -- Extensions and helpers --

    def register(self, *extensions: Any) -> None:
        """Merge each extension's operations into the app namespace.

        An extension's ``registered(app)`` hook runs immediately, so it
        can add routes and settings of its own.
        """
        for extension in extensions:
            self._check_not_frozen()
            self._extensions.add(as_bundle(extension))
            hook = registered_hook(extension)
            if hook is not None:
                hook(self)

    def helpers(self, *bundles: Any) -> None:
        """Make each bundle's operations available on every request context."""
        for bundle in bundles:
            self._check_not_frozen()
            self._helpers.add(as_bundle(bundle))

    @property
    def extensions(self) -> Operations:
        """Merged extension operations, unbound."""
        if self._snapshot is not None:
            return self._snapshot.extensions
        return self._extensions.compile(freeze=False)

    def __getattr__(self, name: str) -> Callable[..., Any]:
        if not name.startswith("_"):
            extensions = object.__getattribute__(self, "extensions")
            if name in extensions:
                return functools.partial(extensions[name], self)
        msg = f"{type(self).__name__!r} object has no attribute or extension {name!r}"
        raise AttributeError(msg)

    # -- Template integration --

    def template_filter(
        self,
        name: str | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register a template filter."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self._check_not_frozen()
            self._template_filters[name or func.__name__] = func
            return func

        return decorator

    def template_global(
        self,
        name: str | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register a template global."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self._check_not_frozen()
            self._template_globals[name or func.__name__] = func
            return func

        return decorator

    # -- Build --

    def init(self) -> Snapshot:
        """Build the app. Idempotent; later calls return the same snapshot."""
        self._ensure_frozen()
        assert self._snapshot is not None
        return self._snapshot

    @property
    def built(self) -> bool:
        return self._frozen

    # -- Request entry points --

    async def dispatch(
        self,
        method: str,
        path: str,
        query: Any = None,
        *,
        headers: dict[str, str] | None = None,
        body: bytes = b"",
    ) -> Response:
        """Run one request through the app and return its response."""
        snapshot = self.init()
        return await dispatch_request(snapshot, method, path, query, headers=headers, body=body)

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Build the app and serve it with pounce on ``bind``/``port``."""
        snapshot = self.init()

        from pounce.config import ServerConfig
        from pounce.server import Server

        config = ServerConfig(
            host=host or snapshot.settings.bind,
            port=port if port is not None else snapshot.settings.port,
            workers=1,
        )
        logger.info(
            "Serving on %s:%d (environment=%s)",
            config.host, config.port, snapshot.settings.environment,
        )
        Server(config, self).run()

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point.

        Handles the lifespan scope directly, then delegates HTTP scopes
        to the request handler pipeline.
        """
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        await handle_request(scope, receive, send, snapshot=self.init())

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol.

        Builds the app at startup so configuration errors stop the
        server before it accepts any request.
        """
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    self.init()
                except ConfigError as exc:
                    logger.error("Startup failed: %s", exc)
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe build with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the app into its immutable runtime state.

        MUST only be called while holding _freeze_lock.
        """
        # 1. Resolve settings for the active environment
        settings = self._settings.freeze()
        strict = settings.strict_slashes

        # 2. Compile route table
        routes = RouteTable(strict_slashes=strict)
        for pending in self._pending_routes:
            for method in pending.methods:
                routes.register(method, pending.path, pending.handler, name=pending.name)
        routes.freeze()

        # 3. Compile filters
        def compile_filters(pending: list[_PendingFilter]) -> tuple[Filter, ...]:
            return tuple(
                Filter(
                    f.handler,
                    compile_pattern(f.pattern, strict_slashes=strict) if f.pattern is not None else None,
                    strict_slashes=strict,
                )
                for f in pending
            )

        before = compile_filters(self._before_filters)
        after = compile_filters(self._after_filters)

        # 4. Template engine, built once
        renderer = create_renderer(settings, self._template_filters, self._template_globals)

        self._snapshot = Snapshot(
            routes=routes,
            settings=settings,
            helpers=self._helpers.compile(),
            extensions=self._extensions.compile(),
            renderer=renderer,
            error_handlers=MappingProxyType(dict(self._error_handlers)),
            before_filters=before,
            after_filters=after,
        )
        self._frozen = True
        logger.debug(
            "App built: %d routes, %d helpers, %d extensions, environment=%s",
            len(routes.routes),
            len(self._snapshot.helpers),
            len(self._snapshot.extensions),
            settings.environment,
        )

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has been built. "
                "Register routes, settings, extensions, and helpers before init()."
            )
            raise ConfigError(msg)
