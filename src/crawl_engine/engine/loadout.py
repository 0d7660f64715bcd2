"""Effective character stats.

Durable characters store base stats only. Equipment bonuses (and, in
combat, temporary buffs) are layered on top whenever a stat is read, and
durable stat changes are clamped here when they are applied.
"""

from __future__ import annotations

from dataclasses import dataclass

from crawl_engine.core.exceptions import RecordNotFoundError
from crawl_engine.models.actions import EffectiveStats
from crawl_engine.models.combat import TemporaryBuffs
from crawl_engine.models.enums import StatType
from crawl_engine.models.records import Character, Equipment
from crawl_engine.storage.repository import GameRepository


@dataclass(frozen=True)
class Loadout:
    """Equipment a character currently wears.

    Attributes:
        weapon: Equipped weapon, boosting attack.
        armour: Equipped armour, boosting max health.
        shield: Equipped shield, boosting defense.
    """

    weapon: Equipment | None = None
    armour: Equipment | None = None
    shield: Equipment | None = None

    @property
    def weapon_bonus(self) -> int:
        return self.weapon.bonus if self.weapon else 0

    @property
    def armour_bonus(self) -> int:
        return self.armour.bonus if self.armour else 0

    @property
    def shield_bonus(self) -> int:
        return self.shield.bonus if self.shield else 0

    def pieces(self) -> list[Equipment]:
        return [piece for piece in (self.weapon, self.armour, self.shield) if piece]


def load_loadout(repository: GameRepository, character: Character) -> Loadout:
    """Fetch the equipment referenced by a character.

    Raises:
        RecordNotFoundError: If an equipped id is missing from the catalog.
    """

    def _fetch(equipment_id: int | None) -> Equipment | None:
        if equipment_id is None:
            return None
        equipment = repository.get_equipment(equipment_id)
        if equipment is None:
            raise RecordNotFoundError("Equipment", equipment_id)
        return equipment

    return Loadout(
        weapon=_fetch(character.weapon_id),
        armour=_fetch(character.armour_id),
        shield=_fetch(character.shield_id),
    )


def effective_max_health(character: Character, loadout: Loadout) -> int:
    return character.max_health + loadout.armour_bonus


def effective_stats(
    character: Character,
    loadout: Loadout,
    buffs: TemporaryBuffs | None = None,
) -> EffectiveStats:
    """Combine base stats, equipment and optional temporary buffs."""
    buffs = buffs or TemporaryBuffs()
    return EffectiveStats(
        attack=character.attack + loadout.weapon_bonus + buffs.attack,
        defense=character.defense + loadout.shield_bonus + buffs.defense,
        max_health=effective_max_health(character, loadout),
    )


def stat_value(character: Character, stat_type: StatType) -> int:
    """Durable value of the stat a delta applies to."""
    if stat_type is StatType.HEALTH:
        return character.current_health
    if stat_type is StatType.ATTACK:
        return character.attack
    return character.defense


def set_health(character: Character, loadout: Loadout, health: int) -> Character:
    """Set current health, clamped to ``[0, effective max]``."""
    clamped = max(0, min(health, effective_max_health(character, loadout)))
    return character.model_copy(update={"current_health": clamped})


def apply_stat_delta(
    character: Character,
    loadout: Loadout,
    stat_type: StatType,
    delta: int,
) -> Character:
    """Apply a delta to a durable stat.

    Health is clamped to ``[0, effective max]``; attack and defense never
    drop below zero.

    Returns:
        An updated copy of the character.
    """
    if stat_type is StatType.HEALTH:
        return set_health(character, loadout, character.current_health + delta)
    field_name = "attack" if stat_type is StatType.ATTACK else "defense"
    value = max(0, getattr(character, field_name) + delta)
    return character.model_copy(update={field_name: value})


__all__ = [
    "Loadout",
    "load_loadout",
    "effective_max_health",
    "effective_stats",
    "stat_value",
    "set_health",
    "apply_stat_delta",
]
