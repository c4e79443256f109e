"""Tests for environment-based settings."""

from __future__ import annotations

import pytest

from safefn.foundation.config import ExecutionSettings, SafeFnSettings, clear_settings_cache, get_settings


def test_defaults() -> None:
    settings = get_settings()

    assert settings.debug is False
    assert settings.environment == "development"
    assert settings.logging.level == "INFO"
    assert settings.logging.format == "console"
    assert settings.execution.default_timeout == 30.0
    assert settings.execution.log_context_on_error is True
    assert settings.execution.warn_on_repeated_next is True


def test_cached_until_cleared(monkeypatch: pytest.MonkeyPatch) -> None:
    first = get_settings()
    assert get_settings() is first

    monkeypatch.setenv("SAFEFN_LOG_LEVEL", "DEBUG")
    assert get_settings().logging.level == "INFO"

    clear_settings_cache()
    assert get_settings().logging.level == "DEBUG"


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SAFEFN_ENVIRONMENT", "PRODUCTION")
    monkeypatch.setenv("SAFEFN_LOG_FORMAT", "json")
    monkeypatch.setenv("SAFEFN_EXEC_DEFAULT_TIMEOUT", "2.5")
    monkeypatch.setenv("SAFEFN_EXEC_WARN_ON_REPEATED_NEXT", "false")

    settings = SafeFnSettings()

    assert settings.is_production
    assert settings.logging.format == "json"
    assert settings.execution.default_timeout == 2.5
    assert settings.execution.warn_on_repeated_next is False


def test_invalid_timeout_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    from pydantic import ValidationError

    monkeypatch.setenv("SAFEFN_EXEC_DEFAULT_TIMEOUT", "-1")
    with pytest.raises(ValidationError):
        ExecutionSettings()
