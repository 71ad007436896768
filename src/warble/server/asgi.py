"""ASGI handler — translates ASGI scope/messages to a dispatch call.

The only component that touches raw ASGI HTTP messages. Reads the
request body, decodes headers, runs the request through the
dispatcher, and sends the Response back through ASGI send().
"""

from warble._internal.asgi import Receive, Scope, Send
from warble._internal.types import Snapshot
from warble.server.dispatch import dispatch_request
from warble.server.sender import send_response


async def read_body(receive: Receive) -> bytes:
    """Collect every ``http.request`` chunk into one body."""
    chunks: list[bytes] = []
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            break
        chunks.append(message.get("body", b""))
        if not message.get("more_body", False):
            break
    return b"".join(chunks)


def decode_headers(raw: object) -> dict[str, str]:
    """ASGI header pairs to a lower-cased ``str`` dict. Last value wins."""
    headers: dict[str, str] = {}
    for name, value in raw or ():  # type: ignore[attr-defined]
        headers[name.decode("latin-1").lower()] = value.decode("latin-1")
    return headers


async def handle_request(scope: Scope, receive: Receive, send: Send, *, snapshot: Snapshot) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    body = await read_body(receive)
    response = await dispatch_request(
        snapshot,
        scope["method"],
        scope["path"],
        scope.get("query_string", b""),
        headers=decode_headers(scope.get("headers")),
        body=body,
    )
    await send_response(response, send)
