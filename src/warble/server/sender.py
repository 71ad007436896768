"""ASGI response sending — translates warble Responses to ASGI messages."""

from warble._internal.asgi import Send
from warble.http.response import Response


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


def raw_headers(response: Response) -> list[tuple[bytes, bytes]]:
    """The response's headers as ASGI byte pairs, content-type first."""
    headers: list[tuple[bytes, bytes]] = [
        (b"content-type", response.content_type.encode("latin-1")),
    ]
    for name, value in response.headers:
        headers.append((name.lower().encode("latin-1"), value.encode("latin-1")))
    return headers


async def send_response(response: Response, send: Send) -> None:
    """Translate a warble Response into ASGI send() calls."""
    headers = raw_headers(response)
    body = response.body_bytes if _body_allowed(response.status) else b""
    headers.append((b"content-length", str(len(body)).encode("latin-1")))

    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": headers,
        }
    )
    await send(
        {
            "type": "http.response.body",
            "body": body,
        }
    )
