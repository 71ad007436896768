"""Renderer boundary and the engine adapters behind it.

The dispatcher only ever sees ``Renderer.render(name, locals)``. The
concrete engine is picked once, in ``App.init()``, from the
``template_engine`` setting, and its environment is created then and
kept for the lifetime of the app. Compiled templates are cached by the
engine, so resolving a name is deterministic for the process lifetime.
The one exception is the ``development`` environment, where engines
check template modification times and reload changed files.
"""

from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, Protocol

from warble.config import SettingsSnapshot
from warble.errors import ConfigError, RenderError


class Renderer(Protocol):
    """Anything that turns a template name and locals into a body."""

    engine: str

    def render(self, template_name: str, locals_: Mapping[str, Any]) -> str: ...


class KidaRenderer:
    """Renderer backed by a kida ``Environment``."""

    __slots__ = ("env",)

    engine = "kida"

    def __init__(
        self,
        views: str | Path,
        *,
        auto_reload: bool = False,
        filters: Mapping[str, Callable[..., Any]] | None = None,
        globals_: Mapping[str, Any] | None = None,
    ) -> None:
        from kida import Environment, FileSystemLoader

        self.env = Environment(
            loader=FileSystemLoader(str(views)),
            autoescape=True,
            auto_reload=auto_reload,
        )
        if filters:
            self.env.update_filters(dict(filters))
        for name, value in (globals_ or {}).items():
            self.env.add_global(name, value)

    def render(self, template_name: str, locals_: Mapping[str, Any]) -> str:
        try:
            template = self.env.get_template(template_name)
            return template.render(dict(locals_))
        except Exception as exc:
            raise RenderError(template_name, exc) from exc


class Jinja2Renderer:
    """Renderer backed by a jinja2 ``Environment``."""

    __slots__ = ("env",)

    engine = "jinja2"

    def __init__(
        self,
        views: str | Path,
        *,
        auto_reload: bool = False,
        filters: Mapping[str, Callable[..., Any]] | None = None,
        globals_: Mapping[str, Any] | None = None,
    ) -> None:
        from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

        self.env = Environment(
            loader=FileSystemLoader(str(views)),
            autoescape=select_autoescape(["html", "xml"]),
            auto_reload=auto_reload,
            undefined=StrictUndefined,
        )
        self.env.filters.update(filters or {})
        self.env.globals.update(globals_ or {})

    def render(self, template_name: str, locals_: Mapping[str, Any]) -> str:
        try:
            template = self.env.get_template(template_name)
            return template.render(**locals_)
        except Exception as exc:
            raise RenderError(template_name, exc) from exc


ENGINES: dict[str, type[KidaRenderer] | type[Jinja2Renderer]] = {
    "kida": KidaRenderer,
    "jinja2": Jinja2Renderer,
}


def create_renderer(
    settings: SettingsSnapshot,
    filters: Mapping[str, Callable[..., Any]] | None = None,
    globals_: Mapping[str, Any] | None = None,
) -> Renderer:
    """Build the renderer selected by ``settings.template_engine``.

    Called once during ``App.init()``.
    """
    try:
        factory = ENGINES[settings.template_engine]
    except KeyError:
        msg = f"Unknown template_engine {settings.template_engine!r}."
        raise ConfigError(msg) from None

    return factory(
        settings.views,
        auto_reload=settings.development,
        filters=filters,
        globals_=globals_,
    )
