"""Tests for warble.templating.renderer — engine adapters."""

import pytest

from warble.config import Settings
from warble.errors import ConfigError, RenderError
from warble.templating.renderer import (
    ENGINES,
    Jinja2Renderer,
    KidaRenderer,
    create_renderer,
)


class TestKidaRenderer:
    def test_render(self, views) -> None:
        (views / "hello.html").write_text("Hello, {{ name }}!")
        renderer = KidaRenderer(views)
        assert renderer.render("hello.html", {"name": "World"}) == "Hello, World!"

    def test_autoescape(self, views) -> None:
        (views / "raw.html").write_text("{{ value }}")
        renderer = KidaRenderer(views)
        assert "&lt;b&gt;" in renderer.render("raw.html", {"value": "<b>"})

    def test_globals(self, views) -> None:
        (views / "site.html").write_text("{{ site_name }}")
        renderer = KidaRenderer(views, globals_={"site_name": "Warble"})
        assert renderer.render("site.html", {}) == "Warble"

    def test_missing_template(self, views) -> None:
        renderer = KidaRenderer(views)
        with pytest.raises(RenderError) as info:
            renderer.render("nope.html", {})
        assert info.value.template_name == "nope.html"
        assert info.value.__cause__ is info.value.cause


class TestJinja2Renderer:
    def test_render(self, views) -> None:
        (views / "hello.html").write_text("Hello, {{ name }}!")
        assert Jinja2Renderer(views).render("hello.html", {"name": "World"}) == "Hello, World!"

    def test_filters(self, views) -> None:
        (views / "price.html").write_text("{{ amount | money }}")
        renderer = Jinja2Renderer(views, filters={"money": lambda v: f"${v:,.2f}"})
        assert renderer.render("price.html", {"amount": 1234.5}) == "$1,234.50"

    def test_undefined_is_an_error(self, views) -> None:
        (views / "strict.html").write_text("{{ missing }}")
        with pytest.raises(RenderError, match="strict.html"):
            Jinja2Renderer(views).render("strict.html", {})

    def test_missing_template(self, views) -> None:
        with pytest.raises(RenderError):
            Jinja2Renderer(views).render("nope.html", {})


class TestCreateRenderer:
    def test_default_engine_is_kida(self, views) -> None:
        settings = Settings(environment="test", views=str(views)).freeze()
        renderer = create_renderer(settings)
        assert isinstance(renderer, KidaRenderer)
        assert renderer.engine == "kida"

    def test_jinja2_engine(self, views) -> None:
        settings = Settings(environment="test", views=str(views), template_engine="jinja2").freeze()
        assert isinstance(create_renderer(settings), Jinja2Renderer)

    def test_auto_reload_only_in_development(self, views) -> None:
        dev = create_renderer(Settings(environment="development", views=str(views), template_engine="jinja2").freeze())
        prod = create_renderer(Settings(environment="production", views=str(views), template_engine="jinja2").freeze())
        assert dev.env.auto_reload is True
        assert prod.env.auto_reload is False

    def test_unknown_engine(self, views, monkeypatch: pytest.MonkeyPatch) -> None:
        settings = Settings(environment="test", views=str(views)).freeze()
        monkeypatch.delitem(ENGINES, "kida")
        with pytest.raises(ConfigError, match="Unknown template_engine"):
            create_renderer(settings)
