"""Self-contained diagnostic error page.

Shown when ``show_exceptions`` is on (the development default). Uses
plain f-strings so a broken template engine cannot prevent error
reporting.

The page renders:
- Failure kind (qualified exception type), status and message
- Traceback with source context and app-frame highlighting
- Request context (method, path, params, headers with secrets masked)
- Environment (Python, warble version, active environment tag)
"""

import html
import linecache
import os
import sys
import types
from typing import Any

_SENSITIVE_HEADERS = frozenset({"authorization", "cookie", "proxy-authorization", "x-api-key"})

_CSS = """
body{margin:0;background:#1a1b26;color:#c0caf5;font:14px/1.5 ui-monospace,monospace}
.error-page{max-width:1100px;margin:0 auto;padding:24px}
h1{color:#f7768e;font-size:1.4em;margin:0 0 8px}
h2{color:#7aa2f7;font-size:1.1em;margin:28px 0 8px}
.exc-message{background:#24283b;padding:12px;border-left:3px solid #f7768e;white-space:pre-wrap}
.frame{background:#24283b;margin:8px 0;border-radius:4px;overflow:hidden}
.app-frame{border-left:3px solid #9ece6a}
.frame-header{display:flex;justify-content:space-between;padding:6px 10px;background:#1f2335}
.source-line{display:flex;padding:0 10px}
.error-line{background:#3b2030}
.lineno{color:#565f89;width:4em;flex:none}
.code{white-space:pre}
.request-line{display:flex;padding:2px 0}
.label{color:#565f89;width:9em;flex:none}
""".strip()


def _is_app_frame(filename: str) -> bool:
    """True if the frame is from the application (not stdlib/site-packages)."""
    if "site-packages" in filename:
        return False
    if filename.startswith("<"):
        return False
    stdlib_prefix = os.path.dirname(os.__file__)
    return not filename.startswith(stdlib_prefix)


def _extract_frames(tb: types.TracebackType | None) -> list[dict[str, Any]]:
    """Walk a traceback and extract frame info with source context."""
    frames: list[dict[str, Any]] = []
    while tb is not None:
        frame = tb.tb_frame
        lineno = tb.tb_lineno
        filename = frame.f_code.co_filename

        source_lines: list[tuple[int, str]] = []
        for i in range(max(1, lineno - 3), lineno + 4):
            line = linecache.getline(filename, i, frame.f_globals)
            if line:
                source_lines.append((i, line.rstrip()))

        frames.append({
            "filename": filename,
            "lineno": lineno,
            "func_name": frame.f_code.co_name,
            "source_lines": source_lines,
            "is_app": _is_app_frame(filename),
        })
        tb = tb.tb_next
    return frames


def _esc(text: object) -> str:
    return html.escape(str(text), quote=True)


def _render_frame(frame: dict[str, Any]) -> str:
    lineno = frame["lineno"]
    lines = "".join(
        f'<div class="source-line{" error-line" if n == lineno else ""}">'
        f'<span class="lineno">{n}</span><span class="code">{_esc(code)}</span></div>'
        for n, code in frame["source_lines"]
    )
    cls = "frame app-frame" if frame["is_app"] else "frame"
    return (
        f'<div class="{cls}"><div class="frame-header">'
        f'<span>{_esc(frame["filename"])}:{lineno}</span>'
        f'<span>{_esc(frame["func_name"])}</span></div>'
        f"<div>{lines}</div></div>"
    )


def _line(label: str, value: object) -> str:
    return f'<div class="request-line"><span class="label">{_esc(label)}</span><span>{_esc(value)}</span></div>'


def _render_request_panel(ctx: Any) -> str:
    """Render the request context panel from a ``RequestContext``-like object."""
    parts = [_line("Request", f"{getattr(ctx, 'method', '?')} {getattr(ctx, 'path', '?')}")]

    path_params = getattr(ctx, "path_params", None)
    if path_params:
        parts.append(_line("Path params", ", ".join(f"{k}={v!r}" for k, v in path_params.items())))

    query = getattr(ctx, "query", None)
    if query:
        parts.append(_line("Query", " ".join(f"{k}={v}" for k, v in query.items())))

    for name, value in (getattr(ctx, "request_headers", None) or {}).items():
        shown = "••••••••" if name.lower() in _SENSITIVE_HEADERS else value
        parts.append(_line(name, shown))

    return "".join(parts)


def render_debug_page(exc: BaseException, ctx: Any, *, status: int = 500) -> str:
    """Render the diagnostic page for *exc* raised while handling *ctx*."""
    exc_type = type(exc).__name__
    exc_module = type(exc).__module__ or ""
    qualified = f"{exc_module}.{exc_type}" if exc_module and exc_module != "builtins" else exc_type
    message = str(exc)

    sections = [
        f"<h1>{status} {_esc(qualified)}</h1>",
        f'<div class="exc-message">{_esc(message)}</div>',
    ]

    cause = exc.__cause__
    if cause is not None:
        sections.append(f"<h2>Caused by {_esc(type(cause).__name__)}</h2>")
        sections.append(f'<div class="exc-message">{_esc(cause)}</div>')

    frames = _extract_frames(exc.__traceback__)
    if frames:
        sections.append("<h2>Traceback</h2>")
        sections.extend(_render_frame(f) for f in frames)

    sections.append("<h2>Request</h2>")
    sections.append(_render_request_panel(ctx))

    from warble import __version__

    settings = getattr(ctx, "settings", None)
    sections.append("<h2>Environment</h2>")
    sections.append(_line("Python", sys.version))
    sections.append(_line("Warble", __version__))
    if settings is not None:
        sections.append(_line("Environment", settings.get("environment")))

    body = "\n".join(sections)
    return (
        "<!DOCTYPE html>"
        '<html lang="en"><head><meta charset="utf-8">'
        f"<title>{_esc(qualified)}: {_esc(message[:80])}</title>"
        f"<style>{_CSS}</style></head><body>"
        f'<div class="error-page">{body}</div>'
        "</body></html>"
    )
