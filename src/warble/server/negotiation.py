"""Content negotiation — maps handler return values to Response objects.

isinstance-based dispatch, no magic, fully predictable. Status and
headers set on the request context apply to every value that is not
already a ``Response``.
"""

import json as json_module
from collections.abc import Mapping
from typing import Any

from warble.context import RequestContext
from warble.http.response import Response
from warble.templating.renderer import Renderer
from warble.templating.returns import Template


def negotiate(value: Any, ctx: RequestContext, renderer: Renderer | None = None) -> Response:
    """Convert a handler's return value to a Response.

    Dispatch order:
    1. ``Response``             -> pass through
    2. ``dict`` / ``list``      -> application/json
    3. ``(value, int)``         -> negotiate value with that status
    4. ``(value, int, dict)``   -> ... plus extra headers
    5. ``Template``             -> render via the app's renderer
    6. ``str``                  -> text/html
    7. ``bytes``                -> application/octet-stream
    8. ``None``                 -> empty body
    """
    match value:
        case Response():
            return value
        case dict() | list():
            return _response(
                json_module.dumps(value, default=str),
                ctx,
                content_type="application/json",
            )
        case (body, int(status)):
            ctx.status = status
            return negotiate(body, ctx, renderer)
        case (body, int(status), Mapping() as headers):
            ctx.status = status
            ctx.headers.update(headers)
            return negotiate(body, ctx, renderer)
        case Template():
            if renderer is None:
                msg = "Template return values need a renderer; build the app with init()."
                raise RuntimeError(msg)
            return _response(renderer.render(value.name, value.context), ctx)
        case str():
            return _response(value, ctx)
        case bytes():
            return _response(value, ctx, content_type="application/octet-stream")
        case None:
            return _response("", ctx)
        case _:
            msg = (
                f"Cannot convert {type(value).__name__} to a response. "
                f"Return str, bytes, dict, list, Template, Response, or a "
                f"(value, status[, headers]) tuple."
            )
            raise TypeError(msg)


def _response(
    body: str | bytes,
    ctx: RequestContext,
    *,
    content_type: str = "text/html; charset=utf-8",
) -> Response:
    headers = dict(ctx.headers)
    content_type = headers.pop("Content-Type", content_type)
    return Response(
        body=body,
        status=ctx.status,
        content_type=content_type,
        headers=tuple(headers.items()),
    )
