"""Dice rolling for the campaign game engine.

Every roll in the game is a single d20 drawn with the d20 library. The
classification of a drawn value into bands is a pure function, so it can
be tested without rolling.
"""

from __future__ import annotations

import random
from dataclasses import dataclass

import d20

from crawl_engine.core.constants import (
    CRITICAL_FAILURE_MAX,
    CRITICAL_SUCCESS_MIN,
    DIE_SIDES,
)
from crawl_engine.core.exceptions import InvalidRollError
from crawl_engine.core.logging import get_logger
from crawl_engine.models.enums import RollClassification


logger = get_logger(__name__)


def validate_roll(value: int) -> int:
    """Ensure a roll value is a possible d20 face.

    Args:
        value: The value to check.

    Returns:
        The value unchanged.

    Raises:
        InvalidRollError: If the value lies outside 1-20.
    """
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= DIE_SIDES:
        raise InvalidRollError(
            f"Roll value must be an integer between 1 and {DIE_SIDES}",
            roll_value=value,
        )
    return value


def classify_roll(value: int) -> RollClassification:
    """Classify a d20 value into its band.

    Bands are inclusive and disjoint: 1-4 critical failure, 5-15 regular,
    16-20 critical success.

    Args:
        value: An already drawn d20 value.

    Returns:
        The band the value falls into.

    Raises:
        InvalidRollError: If the value lies outside 1-20.

    Example:
        >>> classify_roll(16)
        <RollClassification.CRITICAL_SUCCESS: 'critical_success'>
    """
    validate_roll(value)
    if value <= CRITICAL_FAILURE_MAX:
        return RollClassification.CRITICAL_FAILURE
    if value >= CRITICAL_SUCCESS_MIN:
        return RollClassification.CRITICAL_SUCCESS
    return RollClassification.REGULAR


@dataclass(frozen=True)
class RollOutcome:
    """A drawn d20 value and its band.

    Attributes:
        value: The face rolled.
        classification: Band the value falls into.
    """

    value: int
    classification: RollClassification

    @property
    def is_critical_success(self) -> bool:
        return self.classification is RollClassification.CRITICAL_SUCCESS

    @property
    def is_critical_failure(self) -> bool:
        return self.classification is RollClassification.CRITICAL_FAILURE


class DiceRoller:
    """Draws d20 rolls.

    Example:
        >>> roller = DiceRoller(seed=42)
        >>> outcome = roller.roll_classified()
        >>> 1 <= outcome.value <= 20
        True
    """

    def __init__(self, *, seed: int | None = None) -> None:
        """Initialize the dice roller.

        Args:
            seed: Optional random seed for reproducible rolls.
        """
        self._seed = seed
        if seed is not None:
            # d20 draws from the module-level random generator
            random.seed(seed)
        logger.debug("DiceRoller initialized", seed=seed)

    def roll(self) -> int:
        """Roll a single d20.

        Returns:
            An integer uniformly distributed in 1-20.
        """
        result = d20.roll(f"1d{DIE_SIDES}")
        value = validate_roll(int(result.total))
        logger.debug("Rolled d20", value=value)
        return value

    def roll_classified(self) -> RollOutcome:
        """Roll a d20 and classify it.

        Returns:
            The rolled value together with its band.
        """
        value = self.roll()
        return RollOutcome(value=value, classification=classify_roll(value))

    @staticmethod
    def classify(value: int) -> RollClassification:
        """Classify an already drawn value. See :func:`classify_roll`."""
        return classify_roll(value)


__all__ = [
    "validate_roll",
    "classify_roll",
    "RollOutcome",
    "DiceRoller",
]
