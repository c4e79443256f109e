"""Shared fixtures: isolated settings and captured logs."""

from __future__ import annotations

import os
from collections.abc import Iterator

import pytest

from safefn.foundation.config import clear_settings_cache
from safefn.runtime.observability import MemoryRenderer, configure_logging, reset_logging


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Drop SAFEFN_* variables from the environment and reload settings around each test."""
    for key in list(os.environ):
        if key.startswith("SAFEFN_"):
            monkeypatch.delenv(key)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def logs(isolated_settings: None) -> Iterator[MemoryRenderer]:
    """Capture structured log entries in memory."""
    renderer = MemoryRenderer()
    configure_logging(level="DEBUG", renderer=renderer)
    yield renderer
    reset_logging()
