"""Shared pytest configuration and fixtures for FileInspector tests."""
from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from fileinspector.config import Settings, get_settings
from fileinspector.core.plugins import PluginLoader


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Settings built from defaults only (no environment, no .env file)."""
    return Settings(_env_file=None)


@pytest.fixture
def empty_loader(tmp_path: Path) -> PluginLoader:
    """A plugin loader that knows no bundles."""
    return PluginLoader([], tmp_path / "no-plugins")


@pytest.fixture
def scan_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "scan"
    directory.mkdir()
    return directory


@pytest.fixture
def make_file(scan_dir: Path) -> Callable[..., Path]:
    """Return a helper writing ``name`` with ``content`` into the scan directory."""

    def _make(name: str, content: bytes = b"hello world") -> Path:
        path = scan_dir / name
        path.write_bytes(content)
        return path

    return _make
