"""Tests for the self-contained diagnostic error page."""

import os

from warble.config import Settings
from warble.context import RequestContext
from warble.errors import RenderError
from warble.http.query import QueryParams
from warble.server.debug_page import _extract_frames, _is_app_frame, render_debug_page


def _ctx() -> RequestContext:
    return RequestContext(
        "POST",
        "/login",
        query=QueryParams(b"next=%2Fhome"),
        path_params={"id": "7"},
        request_headers={"Authorization": "Bearer secret-token", "Accept": "text/html"},
        settings=Settings(environment="development").freeze(),
    )


def _raised(exc: BaseException) -> BaseException:
    try:
        raise exc
    except BaseException as caught:
        return caught


class TestIsAppFrame:
    def test_site_packages(self) -> None:
        assert _is_app_frame("/usr/lib/python3/site-packages/x.py") is False

    def test_synthetic(self) -> None:
        assert _is_app_frame("<string>") is False

    def test_stdlib(self) -> None:
        assert _is_app_frame(os.__file__) is False

    def test_app(self) -> None:
        assert _is_app_frame(__file__) is True


class TestExtractFrames:
    def test_frames_have_source(self) -> None:
        exc = _raised(ValueError("bad"))
        frames = _extract_frames(exc.__traceback__)
        assert frames
        frame = frames[-1]
        assert frame["func_name"] == "_raised"
        assert any("raise exc" in line for _, line in frame["source_lines"])

    def test_no_traceback(self) -> None:
        assert _extract_frames(None) == []


class TestRenderDebugPage:
    def test_contents(self) -> None:
        page = render_debug_page(_raised(ValueError("bad <input>")), _ctx())

        assert page.startswith("<!DOCTYPE html>")
        assert "500 ValueError" in page
        assert "bad &lt;input&gt;" in page
        assert "POST /login" in page
        assert "id=&#x27;7&#x27;" in page
        assert "Traceback" in page
        assert "development" in page

    def test_sensitive_headers_masked(self) -> None:
        page = render_debug_page(_raised(ValueError("x")), _ctx())
        assert "secret-token" not in page
        assert "text/html" in page

    def test_cause_section(self) -> None:
        exc = _raised(RenderError("form.html", KeyError("title")))
        exc.__cause__ = KeyError("title")
        page = render_debug_page(exc, _ctx(), status=500)
        assert "warble.errors.RenderError" in page
        assert "Caused by KeyError" in page

    def test_custom_status(self) -> None:
        page = render_debug_page(_raised(ValueError("x")), _ctx(), status=503)
        assert "<h1>503 ValueError</h1>" in page
