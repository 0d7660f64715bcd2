"""Combat snapshot construction and recovery.

Combat state lives only in memory. After a restart, a campaign whose
latest event is a combat ``encounter`` with no ``conclusion`` is still
mid-fight, and its snapshot is rebuilt from durable records. Recovery is
lossy: the enemy is back at full health, temporary buffs are zero, items
consumed before the restart are back in the inventory copy and the combat
log is empty.
"""

from __future__ import annotations

from collections.abc import Sequence

from crawl_engine.core.exceptions import RecordNotFoundError
from crawl_engine.core.logging import get_logger
from crawl_engine.engine.loadout import Loadout, effective_max_health, load_loadout
from crawl_engine.models.combat import CharacterBaseline, CombatSnapshot, LiveEnemy
from crawl_engine.models.enums import EventType
from crawl_engine.models.events import CombatEventData
from crawl_engine.models.records import Character, Enemy, GameEvent, Item
from crawl_engine.storage.repository import GameRepository


logger = get_logger(__name__)


def build_snapshot(
    campaign_id: int,
    enemy: Enemy,
    character: Character,
    loadout: Loadout,
    inventory: Sequence[Item],
    *,
    is_boss: bool = False,
) -> CombatSnapshot:
    """Create a fresh snapshot for a fight that is just starting.

    Args:
        campaign_id: Campaign the fight belongs to.
        enemy: Catalog enemy being fought.
        character: Durable character.
        loadout: Character's equipment.
        inventory: Durable inventory.
        is_boss: Whether this is the forced boss encounter.

    Returns:
        A snapshot with the enemy at full health and no buffs.
    """
    return CombatSnapshot(
        campaign_id=campaign_id,
        enemy=LiveEnemy(
            enemy_id=enemy.id,
            name=enemy.name,
            difficulty=enemy.difficulty,
            max_health=enemy.health,
            current_health=enemy.health,
            attack=enemy.attack,
            defense=enemy.defense,
            sprite_path=enemy.sprite_path,
        ),
        character=CharacterBaseline(
            character_id=character.id,
            base_attack=character.attack,
            base_defense=character.defense,
            weapon_bonus=loadout.weapon_bonus,
            shield_bonus=loadout.shield_bonus,
            armour_bonus=loadout.armour_bonus,
            effective_max_health=effective_max_health(character, loadout),
            current_health=character.current_health,
        ),
        inventory=list(inventory),
        original_item_ids=[item.id for item in inventory],
        is_boss=is_boss,
    )


def find_open_encounter(recent_events: Sequence[GameEvent]) -> CombatEventData | None:
    """Return the encounter payload if the latest event opens a fight.

    Args:
        recent_events: Latest events, oldest first.

    Returns:
        The encounter payload, or None when no fight is open.
    """
    if not recent_events:
        return None
    latest = recent_events[-1]
    data = latest.data
    if (
        latest.event_type is EventType.COMBAT
        and isinstance(data, CombatEventData)
        and data.phase == "encounter"
    ):
        return data
    return None


def recover_snapshot(repository: GameRepository, campaign_id: int) -> CombatSnapshot | None:
    """Rebuild the snapshot of a fight interrupted by a restart.

    Args:
        repository: Durable storage.
        campaign_id: Campaign to inspect.

    Returns:
        A rebuilt snapshot, or None if the campaign is not mid-fight.

    Raises:
        RecordNotFoundError: If the logged enemy or the character is gone.
    """
    encounter = find_open_encounter(repository.get_recent_events(campaign_id, 1))
    if encounter is None:
        return None

    enemy = repository.get_enemy(encounter.enemy_id)
    if enemy is None:
        raise RecordNotFoundError("Enemy", encounter.enemy_id)
    character = repository.get_character(campaign_id)
    if character is None:
        raise RecordNotFoundError("Character", campaign_id)

    snapshot = build_snapshot(
        campaign_id,
        enemy,
        character,
        load_loadout(repository, character),
        repository.get_inventory(campaign_id),
        is_boss=encounter.is_boss,
    )
    logger.warning(
        "Recovered combat snapshot from event log",
        campaign_id=campaign_id,
        enemy=enemy.name,
        lossy=True,
    )
    return snapshot


__all__ = [
    "build_snapshot",
    "find_open_encounter",
    "recover_snapshot",
]
