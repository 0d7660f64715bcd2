"""Application-wide constants for the campaign game engine.

This module defines the dice bands, fixed player-facing text and the
fallback content used when the narrator cannot answer.
"""

from __future__ import annotations

# =============================================================================
# Dice Bands
# =============================================================================

DIE_SIDES = 20
"""Every roll in the game is a single d20."""

CRITICAL_FAILURE_MAX = 4
"""Highest roll that counts as a critical failure."""

CRITICAL_SUCCESS_MIN = 16
"""Lowest roll that counts as a critical success."""

REGULAR_BAND_PIVOT = 10
"""Roll at which the regular-band multiplier is exactly 1.0."""

# =============================================================================
# Combat
# =============================================================================

MIN_DAMAGE = 1
"""Every hit deals at least this much damage."""

BONUS_STAT_MIN = 2
"""Smallest bonus stat granted on a critical-success reward."""

BONUS_STAT_MAX = 10
"""Largest bonus stat granted on a critical-success reward."""

# =============================================================================
# Player-facing Text
# =============================================================================

OPENING_MESSAGE = (
    "You stand at the entrance of an ancient dungeon. The air is thick with mystery."
)

CAMPAIGN_ENDED_MESSAGE = "This campaign has ended. Please start a new campaign."

DEFEAT_MESSAGE = "You have been defeated..."

VICTORY_MESSAGE = "The dungeon falls silent. You have conquered its master!"

ACTION_FAILED_MESSAGE = (
    "The world shimmers and the moment slips away. Something went wrong; try again."
)

PREVIEW_MESSAGES = {
    "Descriptive": "You notice something interesting in your surroundings...",
    "Environmental": "The environment around you begins to shift...",
    "Combat": "You sense danger approaching...",
    "Item_Drop": "Something catches your eye nearby...",
}
"""Short teaser shown when an event type is chosen."""

# =============================================================================
# Narrator Fallbacks
# =============================================================================

FALLBACK_DESCRIPTIONS = {
    "Descriptive": "The corridor stretches on, quiet but for the drip of distant water.",
    "Environmental": (
        "A strange glyph glows faintly on the wall ahead. You could investigate it."
    ),
    "Combat": "A hostile shape lunges out of the darkness!",
    "Item_Drop": "Something glints among the rubble at your feet.",
}

FALLBACK_STAT_BOOST_VALUE = 2
FALLBACK_BONUS_STAT_VALUE = 5
FALLBACK_LOOT_NAME = "Minor Health Potion"
FALLBACK_LOOT_VALUE = 10

# =============================================================================
# Enemy Selection
# =============================================================================

DIFFICULTY_WEIGHTS = {
    "early": {"easy": 70, "medium": 25, "hard": 5},
    "middle": {"easy": 30, "medium": 50, "hard": 20},
    "late": {"easy": 10, "medium": 35, "hard": 55},
}
"""Enemy tier weights by dungeon depth."""

FORCED_TYPE_WEIGHTS = {
    "Environmental": 15,
    "Combat": 15,
    "Item_Drop": 55,
}
"""Weights used when a Descriptive pick is replaced to keep the pace up."""
