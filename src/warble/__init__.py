"""Warble — a Sinatra-style routing and dispatch engine.

Compiles declared path patterns, matches requests against an ordered
route table, runs handlers inside an extensible request context,
renders through a pluggable template engine, and turns failures into
well-formed responses.

Basic usage::

    from warble import App

    app = App()

    @app.get("/country/:info")
    def country(info):
        return f"Country: {info}"

    app.run()
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "Bundle",
    "ConfigError",
    "Halt",
    "HTTPError",
    "HandlerError",
    "MethodNotAllowedError",
    "NotFoundError",
    "RenderError",
    "RequestContext",
    "Response",
    "Template",
    "WarbleError",
    "get_context",
    "redirect",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import warble`` fast while providing a clean top-level API.
    """
    if name == "App":
        from warble.app import App

        return App

    if name == "Bundle":
        from warble.extensions import Bundle

        return Bundle

    if name in ("Response", "redirect"):
        from warble.http import response as _resp

        return getattr(_resp, name)

    if name == "Template":
        from warble.templating.returns import Template

        return Template

    if name in ("RequestContext", "get_context"):
        from warble import context as _ctx

        return getattr(_ctx, name)

    if name in (
        "ConfigError",
        "Halt",
        "HTTPError",
        "HandlerError",
        "MethodNotAllowedError",
        "NotFoundError",
        "RenderError",
        "WarbleError",
    ):
        from warble import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
