"""Shared fixtures for the warble test suite."""

import pytest


@pytest.fixture(autouse=True)
def _no_ambient_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a WARBLE_ENV exported in the shell from leaking into tests."""
    monkeypatch.delenv("WARBLE_ENV", raising=False)


@pytest.fixture
def views(tmp_path):
    """A throwaway template directory."""
    directory = tmp_path / "views"
    directory.mkdir()
    return directory
