"""Configuration management using pydantic-settings.

Provides environment-based configuration with type safety and validation.
"""

from .settings import (
    ExecutionSettings,
    LoggingSettings,
    SafeFnSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "ExecutionSettings",
    "LoggingSettings",
    "SafeFnSettings",
    "clear_settings_cache",
    "get_settings",
]
