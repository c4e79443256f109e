"""Engine configuration read from SAFEFN_* environment variables.

Settings are validated by pydantic-settings and cached process-wide; a .env
file in the working directory is read as well.

Example:
    >>> from safefn.foundation.config import get_settings
    >>> settings = get_settings()
    >>> settings.logging.level
    'INFO'

    # Or with environment variables:
    # SAFEFN_LOG_LEVEL=DEBUG
    # SAFEFN_EXEC_DEFAULT_TIMEOUT=5
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, PositiveFloat, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoggingSettings(BaseSettings):
    """Renderer selection and minimum level for the structured logger."""

    model_config = SettingsConfigDict(
        env_prefix="SAFEFN_LOG_",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json", "none"] = "console"
    colors: bool | None = Field(default=None, description="Force console colors (None = auto-detect)")


class ExecutionSettings(BaseSettings):
    """Invocation defaults for the engine and built-in middleware."""

    model_config = SettingsConfigDict(
        env_prefix="SAFEFN_EXEC_",
        extra="ignore",
    )

    default_timeout: PositiveFloat = Field(default=30.0, description="TimeoutMiddleware budget in seconds")
    log_context_on_error: bool = Field(
        default=True,
        description="Include the failing context in the default error hook's log line",
    )
    warn_on_repeated_next: bool = Field(
        default=True,
        description="Log a warning when a middleware calls next() more than once",
    )


class SafeFnSettings(BaseSettings):
    """Top-level settings. Nested groups use their own prefixes.

    Example environment:
        SAFEFN_DEBUG=true
        SAFEFN_LOG_LEVEL=DEBUG
        SAFEFN_LOG_FORMAT=json
        SAFEFN_EXEC_DEFAULT_TIMEOUT=10
    """

    model_config = SettingsConfigDict(
        env_prefix="SAFEFN_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    debug: bool = Field(default=False, description="Enable debug mode")
    environment: Literal["development", "staging", "production"] = "development"

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    execution: ExecutionSettings = Field(default_factory=ExecutionSettings)

    @field_validator("environment", mode="before")
    @classmethod
    def _normalize_env(cls, v: str) -> str:
        return v.lower() if isinstance(v, str) else v

    @computed_field
    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> SafeFnSettings:
    """Process-wide settings, built on first use."""
    return SafeFnSettings()


def clear_settings_cache() -> None:
    """Drop the cached settings so the next `get_settings()` re-reads the environment."""
    get_settings.cache_clear()
