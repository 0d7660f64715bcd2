"""Pydantic V2 schemas for transient combat state.

A CombatSnapshot exists only while a fight is in progress. It holds a
live copy of the enemy, a baseline of the character's combat stats, an
inventory copy and temporary buffs. Nothing here is persisted; the
durable record of a fight is its encounter and conclusion events.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from crawl_engine.models.enums import Difficulty
from crawl_engine.models.records import Item, utc_now


class LiveEnemy(BaseModel):
    """The enemy being fought, with its current hit points.

    Attributes:
        enemy_id: Catalog id of the enemy.
        name: Enemy name.
        difficulty: Enemy tier.
        max_health: Catalog health.
        current_health: Hit points left in this fight.
        attack: Enemy attack.
        defense: Enemy defense.
        sprite_path: Optional sprite for the UI.
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    enemy_id: int
    name: str
    difficulty: Difficulty
    max_health: int = Field(ge=1)
    current_health: int = Field(ge=0)
    attack: int = Field(ge=0)
    defense: int = Field(ge=0)
    sprite_path: str | None = None

    @property
    def is_defeated(self) -> bool:
        """Check if the enemy has no hit points left."""
        return self.current_health <= 0


class CharacterBaseline(BaseModel):
    """Character combat stats captured when the fight started.

    ``current_health`` mirrors the durable character and is refreshed
    after every durable health change.
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    character_id: int
    base_attack: int = Field(ge=0)
    base_defense: int = Field(ge=0)
    weapon_bonus: int = Field(default=0, ge=0)
    shield_bonus: int = Field(default=0, ge=0)
    armour_bonus: int = Field(default=0, ge=0)
    effective_max_health: int = Field(ge=1)
    current_health: int = Field(ge=0)


class TemporaryBuffs(BaseModel):
    """Additive buffs that last only as long as the fight."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    attack: int = 0
    defense: int = 0


class CombatSnapshot(BaseModel):
    """In-memory record of an active fight.

    Attributes:
        campaign_id: Owning campaign; at most one snapshot per campaign.
        enemy: Live enemy copy.
        character: Character baseline.
        inventory: Inventory copy items are consumed from during the fight.
        original_item_ids: Inventory item ids when the fight started.
        temporary_buffs: Attack/defense buffs from consumed items.
        combat_log: Round-by-round narrative lines.
        created_at: When the fight started.
        is_boss: Whether this is the forced boss encounter.
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    campaign_id: int
    enemy: LiveEnemy
    character: CharacterBaseline
    inventory: list[Item] = Field(default_factory=list)
    original_item_ids: list[int] = Field(default_factory=list)
    temporary_buffs: TemporaryBuffs = Field(default_factory=TemporaryBuffs)
    combat_log: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    is_boss: bool = False


__all__ = [
    "LiveEnemy",
    "CharacterBaseline",
    "TemporaryBuffs",
    "CombatSnapshot",
]
