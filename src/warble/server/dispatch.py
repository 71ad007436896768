"""Dispatcher — runs one request through the built app.

The only entry point is ``dispatch_request``. It builds the request
context, runs before filters, the matched handler, and after filters,
negotiates the result into a Response, and hands every failure to the
error handler. Nothing raised inside a request escapes it, unless
``raise_errors`` is on.
"""

import functools
import inspect
from collections.abc import Callable, Mapping
from contextvars import Token
from dataclasses import replace
from typing import Any

from warble._internal.invoke import invoke
from warble._internal.types import Filter, Snapshot
from warble.context import RequestContext, context_var
from warble.errors import Halt
from warble.http.query import QueryParams, parse_form
from warble.http.response import Response
from warble.server.errors import handle_failure
from warble.server.negotiation import negotiate

_BODYLESS_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


async def dispatch_request(
    snapshot: Snapshot,
    method: str,
    path: str,
    query: Mapping[str, str] | str | bytes | None = None,
    *,
    headers: Mapping[str, str] | None = None,
    body: bytes = b"",
) -> Response:
    """Process a single request through the full pipeline."""
    method = method.upper()
    request_headers = {k.lower(): v for k, v in (headers or {}).items()}

    form = None
    if method not in _BODYLESS_METHODS:
        form = parse_form(body, request_headers.get("content-type"))

    ctx = RequestContext(
        method,
        path or "/",
        query=_query_params(query),
        form=form,
        request_headers=request_headers,
        settings=snapshot.settings,
        helpers=snapshot.helpers,
        renderer=snapshot.renderer,
    )

    token: Token[RequestContext] = context_var.set(ctx)
    try:
        try:
            response = await _run(snapshot, ctx)
        except Exception as exc:
            response = await handle_failure(
                exc,
                ctx,
                error_handlers=snapshot.error_handlers,
                renderer=snapshot.renderer,
            )
    finally:
        context_var.reset(token)

    if method == "HEAD":
        response = replace(response, body=b"")
    return response


async def _run(snapshot: Snapshot, ctx: RequestContext) -> Response:
    """Filters and handler. Raises whatever they raise, except ``Halt``."""
    try:
        for before in snapshot.before_filters:
            await _run_filter(before, ctx)

        match = snapshot.routes.match(ctx.method, ctx.path)
        ctx.bind_path_params(match.path_params)
        handler = match.route.handler
        result = await invoke(handler, **build_handler_kwargs(handler, ctx, match.path_params))
    except Halt as halt:
        result = halt.value

    response = negotiate(result, ctx, snapshot.renderer)

    for after in snapshot.after_filters:
        try:
            replacement = await _run_filter(after, ctx, response=response)
        except Halt as halt:
            replacement = negotiate(halt.value, ctx, snapshot.renderer)
        if isinstance(replacement, Response):
            response = replacement

    return response


async def _run_filter(flt: Filter, ctx: RequestContext, **extra: Any) -> Any:
    params = flt.applies_to(ctx.path)
    if params is None:
        return None
    kwargs = build_handler_kwargs(flt.handler, ctx, params, **extra)
    return await invoke(flt.handler, **kwargs)


@functools.lru_cache(maxsize=1024)
def _signature(handler: Callable[..., Any]) -> inspect.Signature:
    return inspect.signature(handler, eval_str=True)


def build_handler_kwargs(
    handler: Callable[..., Any],
    ctx: RequestContext,
    path_params: Mapping[str, str],
    **extra: Any,
) -> dict[str, Any]:
    """Inspect handler signature and build kwargs from the context.

    Resolution order:
    1. ``ctx`` / ``context`` parameter, or a ``RequestContext`` annotation
    2. ``params`` — the merged parameter mapping
    3. Path parameters by name (converted to the annotated type if possible)
    4. Extra values supplied by the caller (e.g. ``response`` for after filters)
    """
    kwargs: dict[str, Any] = {}

    for name, param in _signature(handler).parameters.items():
        if name in ("ctx", "context") or param.annotation is RequestContext:
            kwargs[name] = ctx
        elif name == "params":
            kwargs[name] = ctx.params
        elif name in path_params:
            value = path_params[name]
            if param.annotation is not inspect.Parameter.empty and param.annotation is not str:
                try:
                    kwargs[name] = param.annotation(value)
                except (ValueError, TypeError):
                    kwargs[name] = value
            else:
                kwargs[name] = value
        elif name in extra:
            kwargs[name] = extra[name]

    return kwargs


def _query_params(query: Mapping[str, str] | str | bytes | None) -> QueryParams:
    if query is None:
        return QueryParams()
    if isinstance(query, QueryParams):
        return query
    if isinstance(query, (str, bytes)):
        return QueryParams(query)
    return QueryParams.from_mapping(query)
