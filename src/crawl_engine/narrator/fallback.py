"""Deterministic narrator content.

These functions are the single home of fallback content: whenever the
narrator fails, times out or answers with something unusable, the
resilient wrapper substitutes the value produced here. The
:class:`OfflineNarrator` builds a complete narrator out of the same
tables so the engine can run without network access.
"""

from __future__ import annotations

import random

from crawl_engine.core.constants import (
    BONUS_STAT_MAX,
    BONUS_STAT_MIN,
    FALLBACK_BONUS_STAT_VALUE,
    FALLBACK_DESCRIPTIONS,
    FALLBACK_LOOT_NAME,
    FALLBACK_LOOT_VALUE,
    FALLBACK_STAT_BOOST_VALUE,
)
from crawl_engine.models.enums import EventType, StatType
from crawl_engine.models.records import ItemDraft
from crawl_engine.narrator.base import BonusStat, NarratorContext, StatBoost


# =============================================================================
# Fallback Values
# =============================================================================


def fallback_event_type() -> EventType:
    return EventType.DESCRIPTIVE


def fallback_description(event_type: EventType, loot: ItemDraft | None = None) -> str:
    """Fixed description for an event type, naming the loot if given."""
    description = FALLBACK_DESCRIPTIONS[str(event_type)]
    if loot is not None:
        description = f"{description} You find a {loot.name}."
    return description


def fallback_stat_boost() -> StatBoost:
    return StatBoost(stat_type=StatType.HEALTH, base_value=FALLBACK_STAT_BOOST_VALUE)


def fallback_item_drop() -> ItemDraft:
    return ItemDraft(
        name=FALLBACK_LOOT_NAME,
        stat_modified=StatType.HEALTH,
        stat_value=FALLBACK_LOOT_VALUE,
        rarity=1,
        description="A small vial of red liquid that restores a little health.",
    )


def fallback_bonus_stat() -> BonusStat:
    return BonusStat(stat_type=StatType.HEALTH, value=FALLBACK_BONUS_STAT_VALUE)


def clamp_bonus_value(value: int) -> int:
    """Keep a bonus stat within the allowed reward range."""
    return max(BONUS_STAT_MIN, min(BONUS_STAT_MAX, value))


# =============================================================================
# Offline Narrator
# =============================================================================

_EVENT_TYPE_WEIGHTS = {
    EventType.DESCRIPTIVE: 15,
    EventType.ENVIRONMENTAL: 15,
    EventType.COMBAT: 15,
    EventType.ITEM_DROP: 55,
}

_DESCRIPTIONS: dict[EventType, tuple[str, ...]] = {
    EventType.DESCRIPTIVE: (
        "Torchlight flickers across walls carved with forgotten battles.",
        "A cold draft carries the smell of old stone and older secrets.",
        "Bones crunch underfoot in a chamber long since abandoned.",
    ),
    EventType.ENVIRONMENTAL: (
        "A shrine of cracked marble hums faintly. You could investigate it.",
        "Strange mushrooms pulse with a soft blue light. You could investigate them.",
        "A pool of still, silver water reflects a face that is not quite yours.",
    ),
    EventType.COMBAT: (
        "Something snarls in the shadows and charges!",
        "Steel scrapes on stone as a foe steps into the light.",
    ),
    EventType.ITEM_DROP: (
        "Half buried in dust, something catches the light.",
        "A fallen adventurer's pack lies open on the floor.",
    ),
}

_LOOT_TABLE: tuple[ItemDraft, ...] = (
    ItemDraft(
        name="Minor Health Potion",
        stat_modified=StatType.HEALTH,
        stat_value=10,
        rarity=1,
        description="Restores a little health.",
    ),
    ItemDraft(
        name="Whetstone",
        stat_modified=StatType.ATTACK,
        stat_value=2,
        rarity=10,
        description="Sharpens your blade for the next fight.",
    ),
    ItemDraft(
        name="Iron Tonic",
        stat_modified=StatType.DEFENSE,
        stat_value=2,
        rarity=10,
        description="Your skin hardens for a short while.",
    ),
    ItemDraft(
        name="Cursed Draught",
        stat_modified=StatType.HEALTH,
        stat_value=-5,
        rarity=20,
        description="It smells wrong. It probably is.",
    ),
)


class OfflineNarrator:
    """Narrator built from fixed tables and a seeded random generator.

    Args:
        seed: Optional seed for reproducible narration.
    """

    def __init__(self, *, seed: int | None = None) -> None:
        self._rng = random.Random(seed)

    def generate_event_type(self, context: NarratorContext) -> EventType:
        types = list(_EVENT_TYPE_WEIGHTS)
        return self._rng.choices(types, weights=list(_EVENT_TYPE_WEIGHTS.values()))[0]

    def generate_description(
        self,
        event_type: EventType,
        context: NarratorContext,
        loot: ItemDraft | None = None,
    ) -> str:
        description = self._rng.choice(_DESCRIPTIONS[event_type])
        if context.enemy_name and event_type is EventType.COMBAT:
            description = f"{description} It is a {context.enemy_name}!"
        if loot is not None:
            description = f"{description} You find a {loot.name}."
        return description

    def request_stat_boost(self, context: NarratorContext, event_type: EventType) -> StatBoost:
        stat_type = self._rng.choice(list(StatType))
        upper = 10 if stat_type is StatType.HEALTH else 3
        base_value = self._rng.randint(1, upper)
        if self._rng.random() < 0.25:
            base_value = -base_value
        return StatBoost(stat_type=stat_type, base_value=base_value)

    def request_item_drop(self, context: NarratorContext) -> ItemDraft:
        return self._rng.choice(_LOOT_TABLE)

    def request_bonus_stat(self, context: NarratorContext) -> BonusStat:
        return BonusStat(
            stat_type=self._rng.choice(list(StatType)),
            value=self._rng.randint(BONUS_STAT_MIN, BONUS_STAT_MAX),
        )


__all__ = [
    "fallback_event_type",
    "fallback_description",
    "fallback_stat_boost",
    "fallback_item_drop",
    "fallback_bonus_stat",
    "clamp_bonus_value",
    "OfflineNarrator",
]
