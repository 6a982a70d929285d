"""Configuration management for Shelfscan."""

from __future__ import annotations

import logging
from functools import lru_cache

import structlog
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger()


class MatchingSettings(BaseSettings):
    """Matching and expiry classification settings."""

    model_config = SettingsConfigDict(
        env_prefix="MATCHING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Days ahead of expiry at which an item counts as "expiring"
    soon_threshold_days: int = Field(default=90, ge=0)
    result_limit: int = Field(default=10, ge=1)
    # Shortest digit run a scan may fall back to when no GTIN was decoded
    short_code_min_digits: int = Field(default=5, ge=1)


class CatalogSettings(BaseSettings):
    """Catalog source settings used by the CLI."""

    model_config = SettingsConfigDict(
        env_prefix="CATALOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    path: str = ""

    @property
    def is_configured(self) -> bool:
        """Check if a default catalog file is configured."""
        return bool(self.path)


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"

    @property
    def matching(self) -> MatchingSettings:
        """Get matching settings."""
        return MatchingSettings()

    @property
    def catalog(self) -> CatalogSettings:
        """Get catalog source settings."""
        return CatalogSettings()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(level: str | None = None) -> None:
    """Apply the configured log level to structlog's bound loggers.

    Args:
        level: Level name such as "DEBUG". If None, uses Settings.log_level.
    """
    name = (level or get_settings().log_level).upper()
    numeric = logging.getLevelName(name)
    if not isinstance(numeric, int):
        logger.warning("unknown_log_level", level=name)
        numeric = logging.INFO

    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(numeric))
