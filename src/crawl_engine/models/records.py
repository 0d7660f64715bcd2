"""Pydantic V2 schemas for durable campaign records.

These are the plain records exchanged with the repository. They are
frozen; the engine produces updated copies with ``model_copy(update=...)``
and hands them back to the repository to persist.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

from crawl_engine.models.enums import (
    CampaignState,
    Difficulty,
    EquipmentSlot,
    EventType,
    StatType,
)
from crawl_engine.models.events import EventData


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(UTC)


class Campaign(BaseModel):
    """One player's playthrough.

    Attributes:
        id: Campaign identifier.
        account_id: Owning account.
        name: Display name.
        state: Lifecycle state; only the engine moves it to a terminal state.
        created_at: Creation timestamp.
        updated_at: Last modification timestamp.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int
    account_id: int
    name: str = Field(min_length=1, max_length=100)
    state: CampaignState = CampaignState.ACTIVE
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Character(BaseModel):
    """The player character of a campaign.

    ``attack``, ``defense`` and ``max_health`` are base values. Equipment
    bonuses are added on top when effective values are derived.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int
    campaign_id: int
    name: str = Field(min_length=1, max_length=50)
    current_health: int = Field(ge=0)
    max_health: int = Field(ge=1)
    attack: int = Field(ge=0)
    defense: int = Field(ge=0)
    weapon_id: int | None = None
    armour_id: int | None = None
    shield_id: int | None = None
    sprite_path: str | None = None

    def equipped_ids(self) -> list[int]:
        """Ids of every equipped piece, in slot order."""
        return [
            equipment_id
            for equipment_id in (self.weapon_id, self.armour_id, self.shield_id)
            if equipment_id is not None
        ]


class CharacterDraft(BaseModel):
    """Input for creating a character alongside a new campaign."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1, max_length=50)
    max_health: int = Field(default=100, ge=1)
    attack: int = Field(default=10, ge=0)
    defense: int = Field(default=5, ge=0)
    weapon_id: int | None = None
    armour_id: int | None = None
    shield_id: int | None = None
    sprite_path: str | None = None


class Equipment(BaseModel):
    """Immutable catalog entry for a piece of equipment."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int
    slot: EquipmentSlot
    name: str
    bonus: int = Field(ge=0)
    rarity: int = Field(default=1, ge=1, le=100)
    description: str = ""
    sprite_path: str | None = None


class ItemDraft(BaseModel):
    """An item proposed by the narrator that has no id yet."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1, max_length=100)
    stat_modified: StatType
    stat_value: int
    rarity: int = Field(default=1, ge=1, le=100)
    description: str = ""
    sprite_path: str | None = None


class Item(ItemDraft):
    """A catalog item. Positive ``stat_value`` is a boon, negative a curse."""

    id: int


class Enemy(BaseModel):
    """Read-only enemy catalog entry."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int
    name: str
    difficulty: Difficulty
    health: int = Field(ge=1)
    attack: int = Field(ge=0)
    defense: int = Field(ge=0)
    sprite_path: str | None = None

    @property
    def is_boss(self) -> bool:
        """Check if this enemy is the campaign boss."""
        return self.difficulty is Difficulty.BOSS


class GameEvent(BaseModel):
    """An append-only, sequentially numbered log entry.

    ``event_number`` starts at 1 and is gapless per campaign.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int
    campaign_id: int
    event_number: int = Field(ge=1)
    message: str
    event_type: EventType
    data: EventData | None = None
    created_at: datetime = Field(default_factory=utc_now)


__all__ = [
    "utc_now",
    "Campaign",
    "Character",
    "CharacterDraft",
    "Equipment",
    "ItemDraft",
    "Item",
    "Enemy",
    "GameEvent",
]
