"""Application settings.

Two tiers: global defaults, and overrides tagged with an environment
name. During setup ``Settings`` is mutable; ``App.init()`` resolves it
against the active environment into a ``SettingsSnapshot``, which is
immutable for the lifetime of the app. A few keys have environment-dependent
defaults (``ENVIRONMENT_DEFAULTS``); any value the user sets wins over them.

    settings = Settings()
    settings.set("port", 9292)

    @settings.configure("development")
    def dev(scope):
        scope.set("show_exceptions", True)

    snapshot = settings.freeze()
    snapshot.port             # 9292
    snapshot.show_exceptions  # True when environment == "development"
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterator, Mapping
from types import MappingProxyType
from typing import Any

from warble.errors import ConfigError

ENVIRONMENTS = frozenset({"development", "test", "production"})

# Engines that ``warble.templating.create_renderer`` knows how to build
TEMPLATE_ENGINES = frozenset({"kida", "jinja2"})

DEFAULTS: dict[str, Any] = {
    "environment": "development",
    "show_exceptions": False,
    "dump_errors": True,
    "raise_errors": False,
    "session_secret": "",
    "bind": "127.0.0.1",
    "port": 4567,
    "template_engine": "kida",
    "views": "views",
    "strict_slashes": True,
}

# Per-environment defaults. They apply only to keys the user has not set,
# either globally or for that environment.
ENVIRONMENT_DEFAULTS: dict[str, dict[str, Any]] = {
    "development": {"show_exceptions": True},
    "test": {"dump_errors": False},
}

_BOOL_KEYS = ("show_exceptions", "dump_errors", "raise_errors", "strict_slashes")

_MISSING = object()


class EnvironmentScope:
    """Write handle passed to ``configure`` blocks.

    ``set`` installs overrides for the scope's environments, or global
    defaults when the scope has no environments.
    """

    __slots__ = ("_environments", "_settings")

    def __init__(self, settings: Settings, environments: tuple[str, ...]) -> None:
        self._settings = settings
        self._environments = environments

    @property
    def environments(self) -> tuple[str, ...]:
        return self._environments

    def set(self, key: str, value: Any) -> None:
        if not self._environments:
            self._settings.set(key, value)
            return
        for env in self._environments:
            self._settings.set_override(env, key, value)

    def get(self, key: str, default: Any = None) -> Any:
        return self._settings.get(key, default)


class Settings:
    """Mutable two-tier settings registry, used during setup only."""

    __slots__ = ("_defaults", "_explicit", "_overrides")

    def __init__(self, **defaults: Any) -> None:
        self._defaults: dict[str, Any] = dict(DEFAULTS)
        self._defaults["environment"] = os.environ.get("WARBLE_ENV", DEFAULTS["environment"])
        self._overrides: dict[str, dict[str, Any]] = {}
        # Keys given a global value by the user
        self._explicit: set[str] = set(defaults)
        self._defaults.update(defaults)

    @property
    def environment(self) -> str:
        return self._defaults["environment"]

    def set(self, key: str, value: Any) -> None:
        """Install a global default."""
        self._defaults[key] = value
        self._explicit.add(key)

    def set_override(self, environment: str, key: str, value: Any) -> None:
        """Install an override that applies only under *environment*."""
        if environment not in ENVIRONMENTS:
            msg = (
                f"Unknown environment {environment!r}. "
                f"Expected one of: {', '.join(sorted(ENVIRONMENTS))}"
            )
            raise ConfigError(msg)
        self._overrides.setdefault(environment, {})[key] = value

    def configure(self, *environments: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Run the decorated block with an ``EnvironmentScope``.

        With no environments the block writes global defaults.
        """

        def decorator(block: Callable[..., Any]) -> Callable[..., Any]:
            block(EnvironmentScope(self, environments))
            return block

        return decorator

    def get(self, key: str, default: Any = None) -> Any:
        """Resolve *key* for the active environment, falling back to *default*."""
        return self._resolved(self.environment).get(key, default)

    def __contains__(self, key: object) -> bool:
        return key in self._defaults or any(key in o for o in self._overrides.values())

    def _resolved(self, environment: str) -> dict[str, Any]:
        """User override, then user global, then environment default, then built-in."""
        resolved = dict(self._defaults)
        for key, value in ENVIRONMENT_DEFAULTS.get(environment, {}).items():
            if key not in self._explicit:
                resolved[key] = value
        resolved.update(self._overrides.get(environment, {}))
        return resolved

    def freeze(self) -> SettingsSnapshot:
        """Resolve every key for the active environment and validate the result."""
        environment = self.environment
        if environment not in ENVIRONMENTS:
            msg = (
                f"Unknown environment {environment!r}. "
                f"Expected one of: {', '.join(sorted(ENVIRONMENTS))}"
            )
            raise ConfigError(msg)

        resolved = self._resolved(environment)
        _validate(resolved)
        return SettingsSnapshot(resolved)


def _validate(values: Mapping[str, Any]) -> None:
    for key in _BOOL_KEYS:
        if not isinstance(values[key], bool):
            msg = f"Setting {key!r} must be a bool, got {values[key]!r}."
            raise ConfigError(msg)

    port = values["port"]
    if isinstance(port, bool) or not isinstance(port, int) or not 0 <= port <= 65535:
        msg = f"Setting 'port' must be an integer between 0 and 65535, got {port!r}."
        raise ConfigError(msg)

    if not isinstance(values["bind"], str) or not values["bind"]:
        msg = f"Setting 'bind' must be a non-empty host string, got {values['bind']!r}."
        raise ConfigError(msg)

    if values["template_engine"] not in TEMPLATE_ENGINES:
        msg = (
            f"Unknown template_engine {values['template_engine']!r}. "
            f"Supported engines: {', '.join(sorted(TEMPLATE_ENGINES))}"
        )
        raise ConfigError(msg)

    if not isinstance(values["session_secret"], str):
        msg = "Setting 'session_secret' must be a string."
        raise ConfigError(msg)


class SettingsSnapshot(Mapping[str, Any]):
    """Resolved, read-only settings for one environment.

    Implements ``Mapping[str, Any]`` and exposes keys as attributes::

        snapshot["port"] == snapshot.port
    """

    __slots__ = ("_values",)

    _values: MappingProxyType[str, Any]

    def __init__(self, values: Mapping[str, Any]) -> None:
        object.__setattr__(self, "_values", MappingProxyType(dict(values)))

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __getattr__(self, name: str) -> Any:
        try:
            return self._values[name]
        except KeyError:
            msg = f"No setting named {name!r}"
            raise AttributeError(msg) from None

    def __setattr__(self, name: str, value: Any) -> None:
        msg = "Settings are read-only after the app is built."
        raise AttributeError(msg)

    def get(self, key: str, default: Any = None) -> Any:
        value = self._values.get(key, _MISSING)
        return default if value is _MISSING else value

    @property
    def development(self) -> bool:
        return self._values["environment"] == "development"

    @property
    def production(self) -> bool:
        return self._values["environment"] == "production"

    @property
    def test(self) -> bool:
        return self._values["environment"] == "test"

    def __repr__(self) -> str:
        return f"SettingsSnapshot({dict(self._values)!r})"
