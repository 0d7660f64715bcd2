"""Custom exception hierarchy for the campaign game engine.

All exceptions inherit from CrawlEngineError, enabling unified error
handling at the engine boundary while preserving domain-specific context
in the ``details`` mapping.

Example:
    >>> from crawl_engine.core.exceptions import InvalidRollError
    >>> raise InvalidRollError("Roll out of range", roll_value=23)
"""

from __future__ import annotations

from typing import Any


class CrawlEngineError(Exception):
    """Base exception for all campaign engine errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Configuration & Validation Exceptions
# =============================================================================


class ConfigurationError(CrawlEngineError):
    """Raised when application configuration is invalid."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with config key context.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


class ValidationError(CrawlEngineError):
    """Raised when a player action is malformed or incomplete.

    These errors are user-correctable and are detected before any state
    is mutated.
    """

    def __init__(
        self,
        message: str,
        *,
        field_name: str | None = None,
        invalid_value: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize validation error with field context.

        Args:
            message: Human-readable error description.
            field_name: Name of the field that failed validation.
            invalid_value: The value that failed validation.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if field_name:
            combined_details["field_name"] = field_name
        if invalid_value is not None:
            combined_details["invalid_value"] = invalid_value
        super().__init__(message, details=combined_details)


class InvalidActionError(ValidationError):
    """Raised when an action is not allowed in the current game phase."""

    def __init__(
        self,
        message: str,
        *,
        current_phase: str | None = None,
        allowed_actions: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize invalid action error with phase context.

        Args:
            message: Human-readable error description.
            current_phase: The phase the campaign is in.
            allowed_actions: Actions that are valid in that phase.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if current_phase:
            combined_details["current_phase"] = current_phase
        if allowed_actions is not None:
            combined_details["allowed_actions"] = allowed_actions
        super().__init__(message, details=combined_details)


# =============================================================================
# Ownership Exceptions
# =============================================================================


class NotFoundOrForbiddenError(CrawlEngineError):
    """Base for lookups that fail because a record is missing or not owned.

    Callers see both cases as "not found"; the subclasses keep them apart
    for logging and tests.
    """


class CampaignNotFoundError(NotFoundOrForbiddenError):
    """Raised when a campaign does not exist."""

    def __init__(self, campaign_id: int) -> None:
        super().__init__("Campaign not found", details={"campaign_id": campaign_id})


class CampaignForbiddenError(NotFoundOrForbiddenError):
    """Raised when a campaign exists but belongs to another account."""

    def __init__(self, campaign_id: int, account_id: int) -> None:
        super().__init__(
            "Campaign not found",
            details={"campaign_id": campaign_id, "account_id": account_id},
        )


class ItemNotAvailableError(NotFoundOrForbiddenError):
    """Raised when an item is not in the inventory the action draws from."""

    def __init__(self, item_id: int, *, details: dict[str, Any] | None = None) -> None:
        combined_details = details or {}
        combined_details["item_id"] = item_id
        super().__init__("Item not available", details=combined_details)


# =============================================================================
# Game Engine Exceptions
# =============================================================================


class GameEngineError(CrawlEngineError):
    """Base exception for all game engine errors."""


class DiceRollError(GameEngineError):
    """Raised when dice rolling or roll interpretation fails."""

    def __init__(
        self,
        message: str,
        *,
        roll_value: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize dice roll error with the offending value.

        Args:
            message: Human-readable error description.
            roll_value: The roll value that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if roll_value is not None:
            combined_details["roll_value"] = roll_value
        super().__init__(message, details=combined_details)


class InvalidRollError(DiceRollError):
    """Raised when a roll value lies outside 1-20.

    This is a programming error; valid input never produces it.
    """


class CombatError(GameEngineError):
    """Raised when combat state is inconsistent."""

    def __init__(
        self,
        message: str,
        *,
        campaign_id: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        combined_details = details or {}
        if campaign_id is not None:
            combined_details["campaign_id"] = campaign_id
        super().__init__(message, details=combined_details)


class ActionProcessingFailedError(GameEngineError):
    """Raised when a turn cannot complete because storage failed.

    The turn's transient state is left untouched so the action can be
    retried.
    """


# =============================================================================
# Narrator Exceptions
# =============================================================================


class NarratorError(CrawlEngineError):
    """Base exception for narrator (text generation) errors."""

    def __init__(
        self,
        message: str,
        *,
        model: str | None = None,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize narrator error with model context.

        Args:
            message: Human-readable error description.
            model: Name of the model involved.
            operation: Narrator operation that failed.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if model:
            combined_details["model"] = model
        if operation:
            combined_details["operation"] = operation
        super().__init__(message, details=combined_details)


class NarratorUnavailableError(NarratorError):
    """Raised when the narrator service cannot be reached or times out."""


class NarratorResponseError(NarratorError):
    """Raised when a narrator response cannot be parsed into a valid shape."""


# =============================================================================
# Storage Exceptions
# =============================================================================


class StorageError(CrawlEngineError):
    """Base exception for durable storage errors."""


class RepositoryError(StorageError):
    """Raised when a repository read or write fails."""


class RecordNotFoundError(StorageError):
    """Raised when a repository lookup finds no record."""

    def __init__(self, record_type: str, record_id: Any) -> None:
        super().__init__(
            f"{record_type} not found",
            details={"record_type": record_type, "record_id": record_id},
        )


__all__ = [
    "CrawlEngineError",
    # Configuration & validation
    "ConfigurationError",
    "ValidationError",
    "InvalidActionError",
    # Ownership
    "NotFoundOrForbiddenError",
    "CampaignNotFoundError",
    "CampaignForbiddenError",
    "ItemNotAvailableError",
    # Game engine
    "GameEngineError",
    "DiceRollError",
    "InvalidRollError",
    "CombatError",
    "ActionProcessingFailedError",
    # Narrator
    "NarratorError",
    "NarratorUnavailableError",
    "NarratorResponseError",
    # Storage
    "StorageError",
    "RepositoryError",
    "RecordNotFoundError",
]
