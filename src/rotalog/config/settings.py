"""Environment-aware defaults for rotalog.

This module defines a `Settings` class (pydantic `BaseSettings`) holding the
defaults used when a logger or category does not spell out its level, size
limit or retention count, plus the knobs for the library's own diagnostics.
Every field can be overridden with a `ROTALOG_` environment variable.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import ConfigDict, field_validator
from pydantic_settings import BaseSettings

from rotalog.severity import parse_level

DIAGNOSTIC_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Top-level pydantic Settings container for rotalog defaults."""

    # Used when a Logger or Category leaves the value unset
    default_level: str = "info"
    default_max_bytes: int = 1024 * 1024
    default_max_generations: int = 5
    # Optional JSON file with category definitions, see CategoryRegistry.from_file
    categories_file: Path | None = None
    # Library diagnostics (loguru), never written into the managed log files
    diagnostics_level: str = "WARNING"
    diagnostics_file: Path | None = None

    model_config = ConfigDict(env_prefix="ROTALOG_")

    @field_validator("default_level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        parse_level(value)
        return value.strip().lower()

    @field_validator("default_max_bytes")
    @classmethod
    def _check_max_bytes(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("default_max_bytes must be positive")
        return value

    @field_validator("default_max_generations")
    @classmethod
    def _check_generations(cls, value: int) -> int:
        if value < 0:
            raise ValueError("default_max_generations must not be negative")
        return value

    @field_validator("diagnostics_level")
    @classmethod
    def _check_diagnostics_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in DIAGNOSTIC_LEVELS:
            raise ValueError(f"diagnostics_level must be one of {', '.join(DIAGNOSTIC_LEVELS)}")
        return level


settings = Settings()
