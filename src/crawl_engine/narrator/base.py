"""Narrator contract.

The narrator is the text-generation collaborator: it picks event types,
writes descriptions and proposes stat changes and loot. It is treated as
unreliable. Implementations may raise; the engine only ever talks to a
:class:`~crawl_engine.narrator.resilient.ResilientNarrator`, which never
does.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from crawl_engine.models.enums import EventType, StatType
from crawl_engine.models.records import ItemDraft


class RecentEvent(BaseModel):
    """One line of history handed to the narrator."""

    model_config = ConfigDict(frozen=True)

    event_number: int
    event_type: EventType
    message: str


class NarratorContext(BaseModel):
    """What the narrator knows about the campaign when asked for content.

    Attributes:
        campaign_id: Campaign being narrated.
        character_name: Player character's name.
        current_health: Character hit points.
        max_health: Effective maximum hit points.
        attack: Effective attack.
        defense: Effective defense.
        next_event_number: Number the next logged event will get.
        recent_events: Most recent events, oldest first.
        enemy_name: Enemy being fought, when in combat.
    """

    model_config = ConfigDict(frozen=True)

    campaign_id: int
    character_name: str
    current_health: int
    max_health: int
    attack: int
    defense: int
    next_event_number: int = 1
    recent_events: list[RecentEvent] = Field(default_factory=list)
    enemy_name: str | None = None

    def history_text(self) -> str:
        """Render recent events as prompt-ready lines."""
        if not self.recent_events:
            return "(the adventure is just beginning)"
        return "\n".join(
            f"{event.event_number}. [{event.event_type}] {event.message}"
            for event in self.recent_events
        )


class StatBoost(BaseModel):
    """A proposed stat change before the roll is applied."""

    model_config = ConfigDict(frozen=True)

    stat_type: StatType
    base_value: int


class BonusStat(BaseModel):
    """A flat stat bonus granted on a critical-success reward."""

    model_config = ConfigDict(frozen=True)

    stat_type: StatType
    value: int


@runtime_checkable
class Narrator(Protocol):
    """Text-generation collaborator."""

    def generate_event_type(self, context: NarratorContext) -> EventType:
        """Pick the type of the next event."""
        ...

    def generate_description(
        self,
        event_type: EventType,
        context: NarratorContext,
        loot: ItemDraft | None = None,
    ) -> str:
        """Describe an event, mentioning the loot when one is given."""
        ...

    def request_stat_boost(self, context: NarratorContext, event_type: EventType) -> StatBoost:
        """Propose a stat change for an investigation or regular reward."""
        ...

    def request_item_drop(self, context: NarratorContext) -> ItemDraft:
        """Propose a loot item."""
        ...

    def request_bonus_stat(self, context: NarratorContext) -> BonusStat:
        """Propose a flat bonus for a critical-success reward."""
        ...


__all__ = [
    "RecentEvent",
    "NarratorContext",
    "StatBoost",
    "BonusStat",
    "Narrator",
]
