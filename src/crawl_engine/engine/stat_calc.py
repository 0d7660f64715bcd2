"""Stat modifier calculator.

Turns a narrator-proposed base change and a d20 roll into the change that
is actually applied:

* 1-4 (critical failure): 0, whatever the base.
* 5-15 (regular): ``base * (1 + (roll - 10) / 10)``, so 0.5x at 5,
  1.0x at 10 and 1.5x at 15.
* 16-20 (critical success): ``base * 2``.

Results are rounded half away from zero. The sign of the result always
follows the sign of the base, for every stat; nothing is floored here.
Clamping belongs to whoever applies the delta to a stat.
"""

from __future__ import annotations

import math
from fractions import Fraction

from crawl_engine.core.constants import DIE_SIDES, REGULAR_BAND_PIVOT
from crawl_engine.engine.dice import classify_roll
from crawl_engine.models.enums import RollClassification, StatType


def round_half_away_from_zero(value: Fraction) -> int:
    """Round to the nearest integer, ties away from zero.

    Args:
        value: Exact value to round.

    Returns:
        The rounded integer.
    """
    magnitude = math.floor(abs(value) + Fraction(1, 2))
    return magnitude if value >= 0 else -magnitude


def roll_multiplier(roll_value: int) -> Fraction:
    """Exact multiplier a roll applies to a base value.

    Raises:
        InvalidRollError: If the roll lies outside 1-20.
    """
    classification = classify_roll(roll_value)
    if classification is RollClassification.CRITICAL_FAILURE:
        return Fraction(0)
    if classification is RollClassification.CRITICAL_SUCCESS:
        return Fraction(2)
    return 1 + Fraction(roll_value - REGULAR_BAND_PIVOT, DIE_SIDES // 2)


def apply_roll(roll_value: int, stat_type: StatType, base_value: int) -> int:
    """Compute the final stat change for a roll.

    Args:
        roll_value: The d20 value rolled.
        stat_type: Stat being modified. The same policy applies to all
            stats; the argument is kept for logging and call-site clarity.
        base_value: Narrator-proposed change, negative for curses.

    Returns:
        The integer change to apply.

    Raises:
        InvalidRollError: If the roll lies outside 1-20.

    Example:
        >>> apply_roll(5, StatType.ATTACK, 3)
        2
        >>> apply_roll(5, StatType.HEALTH, -3)
        -2
    """
    return round_half_away_from_zero(roll_multiplier(roll_value) * base_value)


__all__ = [
    "round_half_away_from_zero",
    "roll_multiplier",
    "apply_roll",
]
