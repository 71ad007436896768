"""Warble exception hierarchy.

Shared across the pattern compiler, route table, app and error handler
so every module raises and catches the same types.
"""

from dataclasses import dataclass


class WarbleError(Exception):
    """Base for all warble-specific errors."""


class ConfigError(WarbleError):
    """Raised when a route pattern or setting is invalid.

    Always raised during the build phase (``App.init()``) or while
    registering. Fatal: the app must not serve traffic.
    """


@dataclass(frozen=True, slots=True)
class HTTPError(WarbleError):
    """An error that maps directly to an HTTP status code.

    Raised by the route table or by handlers. The error handler
    converts these into responses with the same status.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFoundError(HTTPError):
    """404 — no route matches the path under any method."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class MethodNotAllowedError(HTTPError):
    """405 — the path matches, but only under other methods.

    Carries the matching methods in ``allowed`` and as an ``Allow`` header.
    """

    allowed: frozenset[str]

    def __init__(self, allowed: frozenset[str], detail: str = "") -> None:
        allow_value = ", ".join(sorted(allowed))
        default_detail = f"Method not allowed. Allowed methods: {allow_value}"
        super().__init__(
            status=405,
            detail=detail or default_detail,
            headers=(("Allow", allow_value),),
        )
        object.__setattr__(self, "allowed", frozenset(allowed))


class HandlerError(WarbleError):
    """A failure raised inside handler logic."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class RenderError(HandlerError):
    """Template rendering failed.

    ``cause`` is the engine's own exception, also chained as ``__cause__``.
    """

    def __init__(self, template_name: str, cause: BaseException) -> None:
        super().__init__(f"Failed to render {template_name!r}: {cause}")
        self.template_name = template_name
        self.cause = cause


class Halt(Exception):  # noqa: N818
    """Stop the current request immediately with the given response value.

    Raised by ``RequestContext.halt()`` and ``redirect()``. The dispatcher
    catches it and negotiates ``value`` like a handler return value.
    """

    def __init__(self, value: object) -> None:
        super().__init__()
        self.value = value
