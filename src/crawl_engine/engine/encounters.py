"""Event pacing and enemy selection.

Encounters get harder as the campaign's event count grows, and the boss
is forced once the next event reaches ``boss_event_threshold``. All the
cut-offs come from :class:`~crawl_engine.core.config.GameSettings`.
"""

from __future__ import annotations

import random
from collections.abc import Sequence

from crawl_engine.core.config import GameSettings
from crawl_engine.core.constants import DIFFICULTY_WEIGHTS, FORCED_TYPE_WEIGHTS
from crawl_engine.core.exceptions import RecordNotFoundError
from crawl_engine.core.logging import get_logger
from crawl_engine.models.enums import Difficulty, EventType
from crawl_engine.models.records import Enemy, GameEvent
from crawl_engine.storage.repository import GameRepository


logger = get_logger(__name__)


def should_force_boss(next_event_number: int, settings: GameSettings) -> bool:
    return next_event_number >= settings.boss_event_threshold


def depth_band(next_event_number: int, settings: GameSettings) -> str:
    """Name of the weight table that applies at this depth."""
    if next_event_number >= settings.hard_after_event:
        return "late"
    if next_event_number >= settings.medium_after_event:
        return "middle"
    return "early"


def pick_difficulty(
    next_event_number: int,
    settings: GameSettings,
    rng: random.Random,
) -> Difficulty:
    """Draw a regular (non-boss) difficulty weighted by depth."""
    weights = DIFFICULTY_WEIGHTS[depth_band(next_event_number, settings)]
    tiers = [Difficulty(name) for name in weights]
    return rng.choices(tiers, weights=list(weights.values()))[0]


def select_enemy(
    repository: GameRepository,
    next_event_number: int,
    settings: GameSettings,
    rng: random.Random,
) -> Enemy:
    """Choose the enemy for a combat event.

    Falls back to the other regular tiers when the drawn tier has no
    enemies in the catalog.

    Raises:
        RecordNotFoundError: If no suitable enemy exists at all.
    """
    if should_force_boss(next_event_number, settings):
        boss = repository.get_random_enemy(Difficulty.BOSS)
        if boss is None:
            raise RecordNotFoundError("Enemy", str(Difficulty.BOSS))
        return boss

    wanted = pick_difficulty(next_event_number, settings, rng)
    order = [wanted] + [
        tier for tier in (Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD) if tier != wanted
    ]
    for tier in order:
        enemy = repository.get_random_enemy(tier)
        if enemy is not None:
            if tier != wanted:
                logger.debug("Enemy tier unavailable", wanted=str(wanted), used=str(tier))
            return enemy
    raise RecordNotFoundError("Enemy", str(wanted))


def enforce_pacing(
    event_type: EventType,
    recent_events: Sequence[GameEvent],
    settings: GameSettings,
    rng: random.Random,
) -> EventType:
    """Replace a Descriptive pick after too many Descriptive events in a row.

    Args:
        event_type: Type the narrator picked.
        recent_events: Latest events, oldest first.
        settings: Game settings holding the streak limit.
        rng: Random generator for the replacement pick.

    Returns:
        The event type to use.
    """
    if event_type is not EventType.DESCRIPTIVE:
        return event_type
    limit = settings.max_consecutive_descriptive
    tail = list(recent_events)[-limit:]
    if len(tail) < limit or any(e.event_type is not EventType.DESCRIPTIVE for e in tail):
        return event_type
    types = [EventType(name) for name in FORCED_TYPE_WEIGHTS]
    forced = rng.choices(types, weights=list(FORCED_TYPE_WEIGHTS.values()))[0]
    logger.debug("Descriptive streak broken", forced=str(forced), streak=limit)
    return forced


def avoid_combat(event_type: EventType, rng: random.Random) -> EventType:
    """Replace a Combat pick with a weighted non-combat type.

    Applied to the event right after a successful flee, including past the
    boss threshold.
    """
    if event_type is not EventType.COMBAT:
        return event_type
    weights = {
        EventType(name): weight
        for name, weight in FORCED_TYPE_WEIGHTS.items()
        if name != EventType.COMBAT
    }
    replacement = rng.choices(list(weights), weights=list(weights.values()))[0]
    logger.debug("Combat skipped after flee", replacement=str(replacement))
    return replacement


__all__ = [
    "should_force_boss",
    "depth_band",
    "pick_difficulty",
    "select_enemy",
    "enforce_pacing",
    "avoid_combat",
]
