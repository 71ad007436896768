"""Tests for warble.extensions — bundles and operation registries."""

import logging
import types

import pytest

from warble.errors import ConfigError
from warble.extensions import (
    Bundle,
    OperationRegistry,
    Operations,
    as_bundle,
    registered_hook,
)


class Formatting:
    def money(ctx, value):
        return f"${value:,.2f}"

    def shout(ctx, text):
        return text.upper()

    def _private(ctx):
        return "hidden"

    def registered(app):
        app.seen = True


def _module_bundle() -> types.ModuleType:
    module = types.ModuleType("fake_helpers")

    def greet(ctx, name):
        return f"hi {name}"

    def registered(app):
        return None

    greet.__module__ = registered.__module__ = module.__name__
    module.greet = greet
    module.registered = registered
    module.imported = len  # not defined here, skipped
    return module


class TestAsBundle:
    def test_bundle_passthrough(self) -> None:
        bundle = Bundle("b", {"x": lambda ctx: 1})
        assert as_bundle(bundle) is bundle

    def test_mapping(self) -> None:
        bundle = as_bundle({"x": lambda ctx: 1})
        assert list(bundle.operations) == ["x"]

    def test_mapping_with_non_callable(self) -> None:
        with pytest.raises(ConfigError, match="not callable"):
            as_bundle({"x": 1})

    def test_class_collects_public_functions(self) -> None:
        bundle = as_bundle(Formatting)
        assert bundle.name == "Formatting"
        assert sorted(bundle.operations) == ["money", "shout"]

    def test_class_operations_are_unbound(self) -> None:
        bundle = as_bundle(Formatting)
        assert bundle.operations["shout"]("ctx", "hey") == "HEY"

    def test_instance_uses_its_class(self) -> None:
        assert sorted(as_bundle(Formatting()).operations) == ["money", "shout"]

    def test_module(self) -> None:
        bundle = as_bundle(_module_bundle())
        assert bundle.name == "fake_helpers"
        assert list(bundle.operations) == ["greet"]

    def test_empty_class(self) -> None:
        class Empty:
            pass

        with pytest.raises(ConfigError, match="no public operations"):
            as_bundle(Empty)


class TestRegisteredHook:
    def test_class_hook(self) -> None:
        hook = registered_hook(Formatting)
        assert hook is Formatting.__dict__["registered"]

    def test_module_hook(self) -> None:
        module = _module_bundle()
        assert registered_hook(module) is module.registered

    def test_bundles_have_no_hook(self) -> None:
        assert registered_hook(Bundle("b", {})) is None
        assert registered_hook({"x": len}) is None


class TestOperationRegistry:
    def test_compile_merges_in_order(self) -> None:
        registry = OperationRegistry("helper")
        registry.add(Bundle("a", {"one": lambda ctx: "a1", "two": lambda ctx: "a2"}))
        registry.add(Bundle("b", {"three": lambda ctx: "b3"}))
        ops = registry.compile()
        assert sorted(ops) == ["one", "three", "two"]

    def test_last_registration_wins(self, caplog: pytest.LogCaptureFixture) -> None:
        registry = OperationRegistry("helper")
        registry.add(Bundle("first", {"name": lambda ctx: "first"}))
        registry.add(Bundle("second", {"name": lambda ctx: "second"}))

        with caplog.at_level(logging.DEBUG, logger="warble.app"):
            ops = registry.compile()

        assert ops["name"](None) == "second"
        assert "replaced by 'second'" in caplog.text

    def test_add_after_compile(self) -> None:
        registry = OperationRegistry("extension")
        registry.compile()
        with pytest.raises(ConfigError, match="after the app is built"):
            registry.add(Bundle("late", {}))

    def test_preview_compile_does_not_freeze(self) -> None:
        registry = OperationRegistry("extension")
        registry.compile(freeze=False)
        registry.add(Bundle("ok", {"x": len}))
        assert "x" in registry.compile()

    def test_bundles_snapshot(self) -> None:
        registry = OperationRegistry("helper")
        bundle = Bundle("a", {})
        registry.add(bundle)
        assert registry.bundles == (bundle,)


class TestOperations:
    def test_attribute_access(self) -> None:
        ops = Operations({"double": lambda x: x * 2})
        assert ops.double(2) == 4
        assert ops["double"](3) == 6

    def test_missing(self) -> None:
        with pytest.raises(AttributeError, match="No operation named 'nope'"):
            Operations().nope

    def test_read_only(self) -> None:
        ops = Operations({"x": len})
        with pytest.raises(AttributeError):
            ops.y = len
        with pytest.raises(TypeError):
            ops._table["y"] = len  # type: ignore[index]
