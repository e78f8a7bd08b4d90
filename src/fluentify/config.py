"""Configuration management for fluentify."""

from __future__ import annotations

from typing import Any

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from fluentify.errors import ConfigurationError

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


class FluentSettings(BaseSettings):
    """Runtime settings for fluent sessions."""

    model_config = SettingsConfigDict(
        env_prefix="FLUENTIFY_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = Field(default="INFO", description="Log level for the fluentify logger")
    retain_partial_results: bool = Field(
        default=False,
        description="Keep results of calls completed before a failure visible through snapshot()",
    )
    warn_on_override: bool = Field(
        default=True,
        description="Log a warning when a wrapped target defines a reserved chain method",
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"unknown log level: {value}")
        return level


def load_settings(**overrides: Any) -> FluentSettings:
    """Load settings from the environment, applying keyword overrides."""

    try:
        return FluentSettings(**overrides)
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc
