"""Tests for warble.routing.pattern — path pattern compiler."""

import pytest

from warble.errors import ConfigError
from warble.routing.pattern import (
    SegmentKind,
    candidate_paths,
    compile_pattern,
    parse_pattern,
)


class TestParsePattern:
    def test_root(self) -> None:
        assert parse_pattern("/") == []
        assert parse_pattern("") == []

    def test_literal(self) -> None:
        segments = parse_pattern("/api/users")
        assert [s.kind for s in segments] == [SegmentKind.LITERAL, SegmentKind.LITERAL]
        assert [s.value for s in segments] == ["api", "users"]

    def test_named(self) -> None:
        segments = parse_pattern("/country/:info")
        assert segments[1].kind is SegmentKind.NAMED
        assert segments[1].value == "info"

    def test_splat(self) -> None:
        segments = parse_pattern("/files/*")
        assert segments[-1].kind is SegmentKind.SPLAT
        assert segments[-1].value == "splat"

    def test_bare_star(self) -> None:
        segments = parse_pattern("*")
        assert len(segments) == 1
        assert segments[0].kind is SegmentKind.SPLAT


class TestPatternErrors:
    def test_duplicate_param(self) -> None:
        with pytest.raises(ConfigError, match="duplicate parameter 'id'"):
            parse_pattern("/a/:id/b/:id")

    def test_param_named_splat_collides_with_star(self) -> None:
        with pytest.raises(ConfigError, match="duplicate"):
            parse_pattern("/:splat/*")

    def test_invalid_identifier(self) -> None:
        with pytest.raises(ConfigError, match="invalid parameter name"):
            parse_pattern("/users/:1abc")

    def test_empty_param_name(self) -> None:
        with pytest.raises(ConfigError, match="invalid parameter name"):
            parse_pattern("/users/:")

    def test_splat_not_last(self) -> None:
        with pytest.raises(ConfigError, match="last segment"):
            parse_pattern("/files/*/meta")

    def test_splat_inside_segment(self) -> None:
        with pytest.raises(ConfigError, match="whole segment"):
            parse_pattern("/files/a*")

    def test_missing_leading_slash(self) -> None:
        with pytest.raises(ConfigError, match="must start with '/'"):
            parse_pattern("users")


class TestCompiledPattern:
    def test_param_names_in_order(self) -> None:
        pattern = compile_pattern("/org/:org/repo/:repo/*")
        assert pattern.param_names == ("org", "repo", "splat")

    def test_named_capture(self) -> None:
        pattern = compile_pattern("/country/:info")
        assert pattern.match("/country/capital") == {"info": "capital"}

    def test_named_does_not_cross_slash(self) -> None:
        pattern = compile_pattern("/country/:info")
        assert pattern.match("/country/a/b") is None

    def test_named_requires_text(self) -> None:
        pattern = compile_pattern("/country/:info")
        assert pattern.match("/country/") is None

    def test_literal_is_escaped(self) -> None:
        pattern = compile_pattern("/v1.0/status")
        assert pattern.match("/v1.0/status") == {}
        assert pattern.match("/v1x0/status") is None

    def test_root_matches_only_root(self) -> None:
        for spec in ("", "/"):
            pattern = compile_pattern(spec)
            assert pattern.match("/") == {}
            assert pattern.match("/x") is None

    def test_splat_captures_rest(self) -> None:
        pattern = compile_pattern("/files/*")
        assert pattern.match("/files/a/b/c") == {"splat": "a/b/c"}

    def test_splat_may_be_empty(self) -> None:
        pattern = compile_pattern("/files/*")
        assert pattern.match("/files/") == {"splat": ""}

    def test_splat_needs_its_slash(self) -> None:
        pattern = compile_pattern("/files/*")
        assert pattern.match("/files") is None

    def test_bare_star_matches_everything(self) -> None:
        pattern = compile_pattern("*")
        assert pattern.match("/") == {"splat": ""}
        assert pattern.match("/any/path/here") == {"splat": "any/path/here"}


class TestTrailingSlash:
    def test_strict_by_default(self) -> None:
        pattern = compile_pattern("/users")
        assert pattern.match("/users") == {}
        assert pattern.match("/users/") is None

    def test_non_strict_drops_pattern_slash(self) -> None:
        pattern = compile_pattern("/users/", strict_slashes=False)
        assert pattern.spec == "/users"
        assert pattern.match("/users") == {}

    def test_candidate_paths_strict(self) -> None:
        assert candidate_paths("/users/") == ("/users/",)

    def test_candidate_paths_non_strict(self) -> None:
        assert candidate_paths("/users/", strict_slashes=False) == ("/users/", "/users")

    def test_root_never_stripped(self) -> None:
        assert candidate_paths("/", strict_slashes=False) == ("/",)

    def test_empty_path_is_root(self) -> None:
        assert candidate_paths("") == ("/",)
