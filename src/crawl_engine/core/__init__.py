"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        CrawlEngineError: Base exception for all application errors.
        ValidationError: Malformed or out-of-phase player actions.
        NotFoundOrForbiddenError: Missing or foreign records.

    Configuration:
        Settings: Main application settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up application logging.
        get_logger: Get a configured logger instance.
        bind_context: Add context to log entries.
        clear_context: Clear logging context.
        turn_context: Bind context for one turn.
"""

from __future__ import annotations

from crawl_engine.core.config import (
    GameSettings,
    NarratorSettings,
    Settings,
    StorageSettings,
    clear_settings_cache,
    get_settings,
)
from crawl_engine.core.exceptions import (
    ActionProcessingFailedError,
    CampaignForbiddenError,
    CampaignNotFoundError,
    CombatError,
    ConfigurationError,
    CrawlEngineError,
    DiceRollError,
    GameEngineError,
    InvalidActionError,
    InvalidRollError,
    ItemNotAvailableError,
    NarratorError,
    NarratorResponseError,
    NarratorUnavailableError,
    NotFoundOrForbiddenError,
    RecordNotFoundError,
    RepositoryError,
    StorageError,
    ValidationError,
)
from crawl_engine.core.logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    turn_context,
)


__all__ = [
    # Config
    "GameSettings",
    "NarratorSettings",
    "Settings",
    "StorageSettings",
    "clear_settings_cache",
    "get_settings",
    # Exceptions
    "ActionProcessingFailedError",
    "CampaignForbiddenError",
    "CampaignNotFoundError",
    "CombatError",
    "ConfigurationError",
    "CrawlEngineError",
    "DiceRollError",
    "GameEngineError",
    "InvalidActionError",
    "InvalidRollError",
    "ItemNotAvailableError",
    "NarratorError",
    "NarratorResponseError",
    "NarratorUnavailableError",
    "NotFoundOrForbiddenError",
    "RecordNotFoundError",
    "RepositoryError",
    "StorageError",
    "ValidationError",
    # Logging
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
    "turn_context",
]
