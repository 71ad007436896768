"""Error handling pipeline.

Maps failures raised while dispatching a request to Response objects,
in this order:

1. ``show_exceptions`` on and the failure is a server error (500 or
   above): the diagnostic page.
2. A handler registered for the failure's class (walking the MRO) or
   for its status code: its result becomes the response.
3. Otherwise a generic response: 404, 405 with ``Allow``, the status of
   any other ``HTTPError``, or 500.

Before any of that the failure is stored in the context's error slot,
so error handlers and loggers downstream can inspect it.
"""

import inspect
import logging
from collections.abc import Callable, Mapping
from typing import Any

from warble._internal.invoke import invoke
from warble.context import RequestContext
from warble.errors import HTTPError
from warble.http.response import Response
from warble.server.debug_page import render_debug_page
from warble.server.negotiation import negotiate
from warble.templating.renderer import Renderer

logger = logging.getLogger("warble.server")


def status_for(exc: BaseException) -> int:
    """The HTTP status a failure maps to."""
    if isinstance(exc, HTTPError):
        return exc.status
    return 500


def find_error_handler(
    exc: BaseException,
    handlers: Mapping[int | type, Callable[..., Any]],
) -> Callable[..., Any] | None:
    """Return the most specific handler for *exc*, if any is registered."""
    for cls in type(exc).__mro__:
        handler = handlers.get(cls)
        if handler is not None:
            return handler
    return handlers.get(status_for(exc))


async def call_error_handler(
    handler: Callable[..., Any],
    ctx: RequestContext,
    exc: BaseException,
    renderer: Renderer | None,
) -> Response:
    """Invoke a user-registered error handler with introspected arguments.

    Error handlers may accept zero, one (ctx), or two (ctx, exc) args.
    Supports both sync and async error handlers.
    """
    params = list(inspect.signature(handler).parameters.values())

    if len(params) >= 2:
        result = await invoke(handler, ctx, exc)
    elif len(params) == 1:
        result = await invoke(handler, ctx)
    else:
        result = await invoke(handler)

    return negotiate(result, ctx, renderer)


def generic_response(exc: BaseException) -> Response:
    """The response used when nothing more specific applies."""
    if isinstance(exc, HTTPError):
        resp = Response(body=exc.detail or f"Error {exc.status}", status=exc.status)
        for name, value in exc.headers:
            resp = resp.with_header(name, value)
        return resp
    return Response(body="Internal Server Error", status=500)


async def handle_failure(
    exc: Exception,
    ctx: RequestContext,
    *,
    error_handlers: Mapping[int | type, Callable[..., Any]],
    renderer: Renderer | None,
) -> Response:
    """Convert *exc* into a response for *ctx*."""
    settings = ctx.settings
    status = status_for(exc)
    ctx.error = exc

    if status >= 500:
        if settings.dump_errors:
            logger.error("%d %s %s", status, ctx.method, ctx.path, exc_info=exc)
        else:
            logger.error("%d %s %s: %s", status, ctx.method, ctx.path, exc)
        if settings.raise_errors and not isinstance(exc, HTTPError):
            raise exc
    else:
        logger.debug("%d %s %s: %s", status, ctx.method, ctx.path, exc)

    if settings.show_exceptions and status >= 500:
        resp = Response(body=render_debug_page(exc, ctx, status=status), status=status)
        if isinstance(exc, HTTPError):
            for name, value in exc.headers:
                resp = resp.with_header(name, value)
        return resp

    handler = find_error_handler(exc, error_handlers)
    if handler is not None:
        # Handlers start from the failure's status and may override it
        ctx.status = status
        if isinstance(exc, HTTPError):
            ctx.headers.update(exc.headers)
        try:
            return await call_error_handler(handler, ctx, exc, renderer)
        except Exception:
            logger.exception("Error handler %r failed for %s %s", handler, ctx.method, ctx.path)

    return generic_response(exc)
