"""Tests for warble.context — the per-request execution context."""

from collections.abc import Mapping
from typing import Any

import pytest

from warble.config import Settings
from warble.context import RequestContext, context_var, get_context
from warble.errors import Halt, NotFoundError
from warble.extensions import Operations
from warble.http.query import QueryParams
from warble.http.response import Response


class EchoRenderer:
    engine = "echo"

    def render(self, template_name: str, locals_: Mapping[str, Any]) -> str:
        return f"{template_name}:{sorted(locals_.items())}"


def _ctx(**kwargs: Any) -> RequestContext:
    kwargs.setdefault("settings", Settings(environment="test").freeze())
    return RequestContext("GET", "/path", **kwargs)


class TestParams:
    def test_merge_order(self) -> None:
        ctx = _ctx(
            query=QueryParams(b"a=query&b=query&c=query"),
            form=QueryParams(b"b=form&c=form"),
            path_params={"c": "path"},
        )
        assert ctx.params == {"a": "query", "b": "form", "c": "path"}

    def test_bind_path_params_refreshes(self) -> None:
        ctx = _ctx(query=QueryParams(b"id=q"))
        ctx.bind_path_params({"id": "7"})
        assert ctx.path_params == {"id": "7"}
        assert ctx.params["id"] == "7"

    def test_splat(self) -> None:
        ctx = _ctx(path_params={"splat": "a/b"})
        assert ctx.splat == "a/b"
        assert _ctx().splat is None

    def test_request_headers_lowercased(self) -> None:
        ctx = _ctx(request_headers={"X-Token": "t"})
        assert ctx.request_headers == {"x-token": "t"}


class TestState:
    def test_defaults(self) -> None:
        ctx = _ctx()
        assert ctx.status == 200
        assert ctx.headers == {}
        assert ctx.error is None
        assert ctx.environment == "test"


class TestHelpers:
    def test_helper_bound_to_context(self) -> None:
        helpers = Operations({"where": lambda ctx, suffix: ctx.path + suffix})
        ctx = _ctx(helpers=helpers)
        assert ctx.where("!") == "/path!"

    def test_unknown_attribute(self) -> None:
        with pytest.raises(AttributeError, match="no attribute or helper 'nope'"):
            _ctx(helpers=Operations()).nope


class TestResponseHelpers:
    def test_render(self) -> None:
        ctx = _ctx(renderer=EchoRenderer())
        assert ctx.render("page.html", x=1) == "page.html:[('x', 1)]"

    def test_render_without_renderer(self) -> None:
        with pytest.raises(RuntimeError):
            _ctx().render("page.html")

    def test_halt_sets_status(self) -> None:
        ctx = _ctx()
        with pytest.raises(Halt) as info:
            ctx.halt(403, "nope")
        assert ctx.status == 403
        assert info.value.value == "nope"

    def test_redirect(self) -> None:
        with pytest.raises(Halt) as info:
            _ctx().redirect("/login")
        response = info.value.value
        assert isinstance(response, Response)
        assert response.status == 302
        assert response.header("Location") == "/login"

    def test_not_found(self) -> None:
        with pytest.raises(NotFoundError):
            _ctx().not_found()

    def test_response_carries_state(self) -> None:
        ctx = _ctx()
        ctx.status = 201
        ctx.headers["X-A"] = "1"
        response = ctx.response("made")
        assert response.status == 201
        assert response.header("X-A") == "1"


class TestContextVar:
    def test_get_context(self) -> None:
        ctx = _ctx()
        token = context_var.set(ctx)
        try:
            assert get_context() is ctx
        finally:
            context_var.reset(token)

    def test_outside_request(self) -> None:
        with pytest.raises(LookupError):
            get_context()
