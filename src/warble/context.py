"""Per-request execution context.

A ``RequestContext`` is created by the dispatcher for every request and
discarded when the response is complete. It carries the request data,
the merged parameters, the response status and headers a handler
wants, the ambient error slot, and the helper operations registered on
the app (bound with the context as their first argument)::

    class Formatting:
        def money(ctx, value):
            return f"${value:,.2f}"

    app.helpers(Formatting)

    @app.get("/price/:amount")
    def price(ctx, amount: float):
        return ctx.money(amount)

The active context is also reachable through ``get_context()``, backed
by a ``ContextVar`` that is set before dispatch and reset afterwards.
``ContextVar`` is task-local under asyncio and thread-local otherwise,
so contexts are never shared between requests.
"""

from __future__ import annotations

import functools
from collections.abc import Callable, Mapping
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, NoReturn

from warble.errors import Halt, NotFoundError
from warble.http.query import QueryParams
from warble.http.response import Response, redirect

if TYPE_CHECKING:
    from warble.config import SettingsSnapshot
    from warble.extensions import Operations
    from warble.templating.renderer import Renderer


class RequestContext:
    """Everything one request's handling flow owns."""

    __slots__ = (
        "_helpers",
        "_renderer",
        "error",
        "form",
        "headers",
        "method",
        "params",
        "path",
        "path_params",
        "query",
        "request_headers",
        "settings",
        "status",
    )

    def __init__(
        self,
        method: str,
        path: str,
        *,
        query: QueryParams | None = None,
        path_params: Mapping[str, str] | None = None,
        form: QueryParams | None = None,
        request_headers: Mapping[str, str] | None = None,
        settings: SettingsSnapshot,
        helpers: Operations | None = None,
        renderer: Renderer | None = None,
    ) -> None:
        self.method = method
        self.path = path
        self.query = query if query is not None else QueryParams()
        self.form = form if form is not None else QueryParams()
        self.path_params: dict[str, str] = dict(path_params or {})
        self.request_headers: dict[str, str] = {
            k.lower(): v for k, v in (request_headers or {}).items()
        }
        self.settings = settings
        self._helpers = helpers
        self._renderer = renderer

        # Path parameters win over form fields, which win over the query string
        self.params: dict[str, str] = {**self.query, **self.form, **self.path_params}

        # Response state a handler may adjust
        self.status: int = 200
        self.headers: dict[str, str] = {}

        # Ambient error slot, at most one failure per request
        self.error: BaseException | None = None

    @property
    def environment(self) -> str:
        return self.settings.environment

    @property
    def splat(self) -> str | None:
        """The text captured by a ``*`` segment, if the route had one."""
        return self.path_params.get("splat")

    def bind_path_params(self, path_params: Mapping[str, str]) -> None:
        """Install the matched path parameters and refresh ``params``."""
        self.path_params = dict(path_params)
        self.params = {**self.query, **self.form, **self.path_params}

    # -- Helper operations --

    def __getattr__(self, name: str) -> Callable[..., Any]:
        helpers = object.__getattribute__(self, "_helpers")
        if helpers is not None and name in helpers:
            return functools.partial(helpers[name], self)
        msg = f"{type(self).__name__!r} has no attribute or helper {name!r}"
        raise AttributeError(msg)

    # -- Response helpers --

    def render(self, template_name: str, /, **locals_: Any) -> str:
        """Render *template_name* with the app's renderer."""
        if self._renderer is None:
            msg = "No renderer is available outside a built app."
            raise RuntimeError(msg)
        return self._renderer.render(template_name, locals_)

    def halt(self, status: int | None = None, body: Any = "") -> NoReturn:
        """Stop processing and respond immediately."""
        if status is not None:
            self.status = status
        raise Halt(body)

    def redirect(self, location: str, status: int = 302) -> NoReturn:
        """Stop processing and redirect to *location*."""
        raise Halt(redirect(location, status))

    def not_found(self, detail: str = "Not Found") -> NoReturn:
        raise NotFoundError(detail)

    def response(self, body: str | bytes = "") -> Response:
        """Build a ``Response`` carrying this context's status and headers."""
        return Response(body=body, status=self.status, headers=tuple(self.headers.items()))

    def __repr__(self) -> str:
        return f"<RequestContext {self.method} {self.path}>"


# -- Active context --

context_var: ContextVar[RequestContext] = ContextVar("warble_context")
"""The current request context. Set by the dispatcher before handling."""


def get_context() -> RequestContext:
    """Return the current request context.

    Raises ``LookupError`` if called outside a request.
    """
    return context_var.get()
