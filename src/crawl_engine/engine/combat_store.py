"""Combat session store.

Holds the single active CombatSnapshot per campaign. Every operation is a
read-modify-write under one store lock, and callers only ever see deep
copies, so no caller can mutate a stored snapshot behind the store's back.
"""

from __future__ import annotations

import threading
from collections import Counter

from crawl_engine.core.exceptions import CombatError
from crawl_engine.core.logging import get_logger
from crawl_engine.models.combat import CombatSnapshot
from crawl_engine.models.enums import StatType


logger = get_logger(__name__)


# =============================================================================
# Derived Values
# =============================================================================


def effective_attack(snapshot: CombatSnapshot) -> int:
    """Base attack plus weapon bonus plus temporary buffs."""
    return (
        snapshot.character.base_attack
        + snapshot.character.weapon_bonus
        + snapshot.temporary_buffs.attack
    )


def effective_defense(snapshot: CombatSnapshot) -> int:
    """Base defense plus shield bonus plus temporary buffs."""
    return (
        snapshot.character.base_defense
        + snapshot.character.shield_bonus
        + snapshot.temporary_buffs.defense
    )


def consumed_item_ids(snapshot: CombatSnapshot) -> list[int]:
    """Item ids used up during the fight, one entry per instance.

    Args:
        snapshot: The combat snapshot.

    Returns:
        Ids present at the start of the fight but no longer in the
        snapshot inventory, repeated once per consumed instance.
    """
    remaining = Counter(item.id for item in snapshot.inventory)
    consumed = Counter(snapshot.original_item_ids) - remaining
    return sorted(consumed.elements())


# =============================================================================
# Store
# =============================================================================


class CombatSessionStore:
    """Thread-safe map of campaign id to its active CombatSnapshot.

    Example:
        >>> store = CombatSessionStore()
        >>> store.create(snapshot)
        >>> store.update_enemy_hp(snapshot.campaign_id, 5)
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshots: dict[int, CombatSnapshot] = {}

    def _require(self, campaign_id: int) -> CombatSnapshot:
        snapshot = self._snapshots.get(campaign_id)
        if snapshot is None:
            raise CombatError("No active combat", campaign_id=campaign_id)
        return snapshot

    def create(self, snapshot: CombatSnapshot) -> CombatSnapshot:
        """Install a snapshot, replacing any stale one for the campaign.

        Returns:
            A copy of the stored snapshot.
        """
        with self._lock:
            replaced = snapshot.campaign_id in self._snapshots
            stored = snapshot.model_copy(deep=True)
            self._snapshots[snapshot.campaign_id] = stored
            logger.debug(
                "Combat snapshot created",
                campaign_id=snapshot.campaign_id,
                enemy=snapshot.enemy.name,
                replaced=replaced,
            )
            return stored.model_copy(deep=True)

    def get(self, campaign_id: int) -> CombatSnapshot | None:
        """Get a copy of the campaign's snapshot, if any."""
        with self._lock:
            snapshot = self._snapshots.get(campaign_id)
            return snapshot.model_copy(deep=True) if snapshot is not None else None

    def has(self, campaign_id: int) -> bool:
        """Check whether the campaign has an active fight."""
        with self._lock:
            return campaign_id in self._snapshots

    def update_enemy_hp(self, campaign_id: int, health: int) -> CombatSnapshot:
        """Set the enemy's hit points, clamped to ``[0, max]``.

        Raises:
            CombatError: If the campaign has no active fight.
        """
        with self._lock:
            snapshot = self._require(campaign_id)
            snapshot.enemy.current_health = max(0, min(health, snapshot.enemy.max_health))
            return snapshot.model_copy(deep=True)

    def update_character_hp(self, campaign_id: int, health: int) -> CombatSnapshot:
        """Mirror the character's hit points, clamped to ``[0, max]``.

        Raises:
            CombatError: If the campaign has no active fight.
        """
        with self._lock:
            snapshot = self._require(campaign_id)
            snapshot.character.current_health = max(
                0, min(health, snapshot.character.effective_max_health)
            )
            return snapshot.model_copy(deep=True)

    def apply_temporary_buff(
        self,
        campaign_id: int,
        stat_type: StatType,
        delta: int,
    ) -> CombatSnapshot:
        """Add ``delta`` to the attack or defense buff.

        Raises:
            CombatError: If there is no active fight or the stat is health.
        """
        with self._lock:
            snapshot = self._require(campaign_id)
            if stat_type is StatType.ATTACK:
                snapshot.temporary_buffs.attack += delta
            elif stat_type is StatType.DEFENSE:
                snapshot.temporary_buffs.defense += delta
            else:
                raise CombatError(
                    "Only attack and defense can be buffed",
                    campaign_id=campaign_id,
                    details={"stat_type": str(stat_type)},
                )
            return snapshot.model_copy(deep=True)

    def remove_one_item(self, campaign_id: int, item_id: int) -> bool:
        """Remove exactly one instance of an item from the inventory copy.

        Returns:
            True if an instance was removed, False if none was present.

        Raises:
            CombatError: If the campaign has no active fight.
        """
        with self._lock:
            snapshot = self._require(campaign_id)
            for index, item in enumerate(snapshot.inventory):
                if item.id == item_id:
                    inventory = list(snapshot.inventory)
                    del inventory[index]
                    snapshot.inventory = inventory
                    return True
            return False

    def append_log(self, campaign_id: int, line: str) -> CombatSnapshot:
        """Append a line to the fight's narrative log.

        Raises:
            CombatError: If the campaign has no active fight.
        """
        with self._lock:
            snapshot = self._require(campaign_id)
            snapshot.combat_log = [*snapshot.combat_log, line]
            return snapshot.model_copy(deep=True)

    def clear(self, campaign_id: int) -> None:
        """Forget the campaign's snapshot. Clearing twice is harmless."""
        with self._lock:
            if self._snapshots.pop(campaign_id, None) is not None:
                logger.debug("Combat snapshot cleared", campaign_id=campaign_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._snapshots)


__all__ = [
    "effective_attack",
    "effective_defense",
    "consumed_item_ids",
    "CombatSessionStore",
]
