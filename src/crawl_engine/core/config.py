"""Configuration management for the campaign game engine.

Settings are loaded with pydantic-settings from environment variables and
an optional ``.env`` file. The API key is held as a SecretStr.

Example:
    >>> from crawl_engine.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.game.boss_event_threshold
    20

Environment Variables:
    CRAWL_ENGINE_NARRATOR_API_KEY: OpenRouter API key
    CRAWL_ENGINE_NARRATOR_PROVIDER: "openrouter" or "offline"
    CRAWL_ENGINE_GAME_BOSS_EVENT_THRESHOLD: Event number that forces the boss
    CRAWL_ENGINE_STORAGE_DATABASE_PATH: Path to the SQLite database
    CRAWL_ENGINE_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from crawl_engine.core.exceptions import ConfigurationError


class NarratorSettings(BaseSettings):
    """Configuration for the narrator (text generation) service.

    Attributes:
        provider: Which narrator implementation to build.
        api_key: OpenRouter API key.
        base_url: OpenAI-compatible endpoint.
        model: Model identifier used for every narrator call.
        temperature: Sampling temperature.
        timeout_seconds: Hard deadline for a single narrator call.
        max_retries: Retry attempts on rate limiting.
    """

    model_config = SettingsConfigDict(
        env_prefix="CRAWL_ENGINE_NARRATOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    provider: Literal["openrouter", "offline"] = Field(
        default="offline",
        description="Narrator implementation",
    )
    api_key: SecretStr | None = Field(
        default=None,
        description="OpenRouter API key",
    )
    base_url: str = Field(
        default="https://openrouter.ai/api/v1",
        description="OpenAI-compatible API base URL",
    )
    model: str = Field(
        default="google/gemini-2.0-flash-001",
        description="Narrator model",
    )
    temperature: float = Field(
        default=0.8,
        ge=0.0,
        le=2.0,
        description="Sampling temperature",
    )
    timeout_seconds: float = Field(
        default=8.0,
        gt=0,
        le=30,
        description="Per-call narrator deadline",
    )
    max_retries: int = Field(
        default=2,
        ge=0,
        le=5,
        description="Retry attempts on rate limiting",
    )

    @model_validator(mode="after")
    def validate_api_key_for_provider(self) -> "NarratorSettings":
        """Ensure the OpenRouter provider has an API key.

        Raises:
            ConfigurationError: If provider is openrouter and no key is set.
        """
        if self.provider == "openrouter" and not self.api_key:
            raise ConfigurationError(
                "OpenRouter narrator selected but CRAWL_ENGINE_NARRATOR_API_KEY is not set",
                config_key="api_key",
            )
        return self


class GameSettings(BaseSettings):
    """Configuration for game engine pacing and limits.

    Attributes:
        boss_event_threshold: Event number at which the boss is forced.
        medium_after_event: Event number from which medium enemies dominate.
        hard_after_event: Event number from which hard enemies dominate.
        max_consecutive_descriptive: Descriptive events allowed in a row.
        inventory_capacity: Maximum inventory size.
        recent_event_window: Events passed to the narrator as history.
        flee_success_min_roll: Lowest roll that escapes combat.
        campaign_limit_per_account: Campaigns one account may own.
    """

    model_config = SettingsConfigDict(
        env_prefix="CRAWL_ENGINE_GAME_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    boss_event_threshold: int = Field(default=20, ge=2, description="Boss event number")
    medium_after_event: int = Field(default=5, ge=1, description="Medium tier start")
    hard_after_event: int = Field(default=12, ge=1, description="Hard tier start")
    max_consecutive_descriptive: int = Field(
        default=2,
        ge=1,
        description="Descriptive events allowed in a row",
    )
    inventory_capacity: int = Field(default=10, ge=1, le=100, description="Inventory size")
    recent_event_window: int = Field(default=10, ge=1, le=50, description="Narrator history")
    flee_success_min_roll: int = Field(
        default=11,
        ge=1,
        le=20,
        description="Minimum roll to flee",
    )
    campaign_limit_per_account: int = Field(
        default=5,
        ge=1,
        description="Campaigns per account",
    )

    @model_validator(mode="after")
    def validate_thresholds(self) -> "GameSettings":
        """Ensure difficulty thresholds are ordered before the boss.

        Raises:
            ConfigurationError: If the thresholds are out of order.
        """
        if not self.medium_after_event <= self.hard_after_event < self.boss_event_threshold:
            raise ConfigurationError(
                "Difficulty thresholds must satisfy medium <= hard < boss "
                f"(got {self.medium_after_event}, {self.hard_after_event}, "
                f"{self.boss_event_threshold})",
                config_key="hard_after_event",
            )
        return self


class StorageSettings(BaseSettings):
    """Configuration for the repository backend.

    Attributes:
        backend: Repository implementation to build.
        database_path: Path to the SQLite database file.
    """

    model_config = SettingsConfigDict(
        env_prefix="CRAWL_ENGINE_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    backend: Literal["memory", "sqlite"] = Field(
        default="sqlite",
        description="Repository backend",
    )
    database_path: Path = Field(
        default=Path("data/crawl_engine.db"),
        description="Path to SQLite database",
    )


class Settings(BaseSettings):
    """Main application settings aggregating all configuration domains.

    Attributes:
        app_name: Application name.
        debug: Enable debug mode.
        log_level: Application logging level.
        json_logs: Render logs as JSON.
        narrator: Narrator settings.
        game: Game engine settings.
        storage: Storage settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="CRAWL_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(default="Dungeon Crawl Campaign Engine", description="Application name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    json_logs: bool = Field(default=False, description="Render logs as JSON")

    narrator: NarratorSettings = Field(default_factory=NarratorSettings)
    game: GameSettings = Field(default_factory=GameSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return not self.debug


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The application Settings instance.

    Raises:
        ConfigurationError: If required configuration is missing or invalid.
    """
    try:
        return Settings()
    except ConfigurationError:
        raise
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access."""
    get_settings.cache_clear()


__all__ = [
    "NarratorSettings",
    "GameSettings",
    "StorageSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
