"""Tests for configuration management."""

from __future__ import annotations

from pathlib import Path

import pytest

from crawl_engine.core.config import (
    GameSettings,
    NarratorSettings,
    Settings,
    StorageSettings,
    clear_settings_cache,
    get_settings,
)
from crawl_engine.core.exceptions import ConfigurationError


class TestNarratorSettings:
    """Tests for NarratorSettings configuration."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test the offline narrator is the default."""
        monkeypatch.delenv("CRAWL_ENGINE_NARRATOR_PROVIDER", raising=False)

        settings = NarratorSettings()

        assert settings.provider == "offline"
        assert settings.timeout_seconds == 8.0
        assert settings.api_key is None

    def test_openrouter_requires_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that selecting OpenRouter without a key fails."""
        monkeypatch.delenv("CRAWL_ENGINE_NARRATOR_API_KEY", raising=False)

        with pytest.raises(ConfigurationError) as exc_info:
            NarratorSettings(provider="openrouter")

        assert exc_info.value.details["config_key"] == "api_key"

    def test_api_key_is_secret(self) -> None:
        """Test the API key never appears in the repr."""
        settings = NarratorSettings(provider="openrouter", api_key="sk-test")

        assert settings.api_key.get_secret_value() == "sk-test"
        assert "sk-test" not in repr(settings)


class TestGameSettings:
    """Tests for GameSettings configuration."""

    def test_default_values(self) -> None:
        """Test default pacing values."""
        settings = GameSettings()

        assert settings.boss_event_threshold == 20
        assert settings.max_consecutive_descriptive == 2
        assert settings.inventory_capacity == 10
        assert settings.flee_success_min_roll == 11
        assert settings.campaign_limit_per_account == 5

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test values can be overridden from the environment."""
        monkeypatch.setenv("CRAWL_ENGINE_GAME_BOSS_EVENT_THRESHOLD", "30")

        assert GameSettings().boss_event_threshold == 30

    def test_threshold_ordering(self) -> None:
        """Test that difficulty thresholds must come before the boss."""
        with pytest.raises(ConfigurationError) as exc_info:
            GameSettings(medium_after_event=5, hard_after_event=25, boss_event_threshold=20)

        assert "medium <= hard < boss" in str(exc_info.value)


class TestSettings:
    """Tests for main Settings configuration."""

    def test_default_settings(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test default settings initialization."""
        monkeypatch.chdir(tmp_path)

        settings = Settings()

        assert settings.debug is False
        assert settings.log_level == "INFO"
        assert settings.storage.backend == "sqlite"
        assert settings.storage.database_path == Path("data/crawl_engine.db")

    def test_is_production_property(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test is_production property."""
        monkeypatch.setenv("CRAWL_ENGINE_DEBUG", "true")
        monkeypatch.chdir(tmp_path)

        settings = Settings()

        assert settings.debug is True
        assert settings.is_production is False

    def test_storage_backend(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CRAWL_ENGINE_STORAGE_BACKEND", "memory")

        assert StorageSettings().backend == "memory"


class TestGetSettings:
    """Tests for get_settings singleton function."""

    def test_caching(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that settings are cached until the cache is cleared."""
        monkeypatch.chdir(tmp_path)

        first = get_settings()
        assert get_settings() is first

        clear_settings_cache()
        assert get_settings() is not first

    def test_invalid_environment(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that unparsable configuration surfaces as ConfigurationError."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("CRAWL_ENGINE_LOG_LEVEL", "LOUD")

        with pytest.raises(ConfigurationError):
            get_settings()
