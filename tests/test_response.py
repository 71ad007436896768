"""Tests for warble.http.response — immutable Response."""

import dataclasses

import pytest

from warble.http.response import Response, redirect


class TestResponse:
    def test_defaults(self) -> None:
        response = Response()
        assert response.status == 200
        assert response.content_type == "text/html; charset=utf-8"
        assert response.body == ""

    def test_frozen(self) -> None:
        with pytest.raises(dataclasses.FrozenInstanceError):
            Response().status = 500  # type: ignore[misc]

    def test_chaining_returns_new(self) -> None:
        base = Response("hi")
        changed = base.with_status(201).with_header("X-A", "1").with_content_type("text/plain")
        assert base.status == 200
        assert changed.status == 201
        assert changed.header("x-a") == "1"
        assert changed.content_type == "text/plain"

    def test_with_headers(self) -> None:
        response = Response().with_headers({"X-A": "1", "X-B": "2"})
        assert response.headers == (("X-A", "1"), ("X-B", "2"))

    def test_header_last_value(self) -> None:
        response = Response().with_header("X-A", "1").with_header("x-a", "2")
        assert response.header("X-A") == "2"
        assert response.header("missing", "d") == "d"

    def test_body_conversions(self) -> None:
        assert Response("é").body_bytes == "é".encode()
        assert Response(b"abc").text == "abc"

    def test_json(self) -> None:
        assert Response('{"a": 1}').json() == {"a": 1}


class TestRedirect:
    def test_default_302(self) -> None:
        response = redirect("/login")
        assert response.status == 302
        assert response.header("Location") == "/login"

    def test_custom_status(self) -> None:
        assert redirect("/", 301).status == 301
