"""Repository contract and the in-memory implementation.

The engine never issues queries itself; every durable read and write goes
through a :class:`GameRepository`. A turn's writes are grouped in
``transaction()`` so they apply together or not at all.
"""

from __future__ import annotations

import copy
import random
import threading
from collections.abc import Iterable, Iterator
from contextlib import AbstractContextManager, contextmanager
from typing import Protocol, runtime_checkable

from crawl_engine.core.logging import get_logger
from crawl_engine.models.enums import CampaignState, Difficulty, EventType
from crawl_engine.models.events import EventData
from crawl_engine.models.records import (
    Campaign,
    Character,
    CharacterDraft,
    Enemy,
    Equipment,
    GameEvent,
    Item,
    ItemDraft,
    utc_now,
)
from crawl_engine.storage import seed


logger = get_logger(__name__)


@runtime_checkable
class GameRepository(Protocol):
    """Durable storage the engine depends on."""

    # Campaigns
    def get_campaign(self, campaign_id: int) -> Campaign | None: ...
    def update_campaign(self, campaign: Campaign) -> Campaign: ...
    def create_campaign(
        self, account_id: int, name: str, character: CharacterDraft
    ) -> tuple[Campaign, Character]: ...
    def count_campaigns(self, account_id: int) -> int: ...

    # Characters and equipment
    def get_character(self, campaign_id: int) -> Character | None: ...
    def update_character(self, character: Character) -> Character: ...
    def get_equipment(self, equipment_id: int) -> Equipment | None: ...
    def equip_item(self, campaign_id: int, equipment: Equipment) -> Character: ...

    # Enemies
    def get_enemy(self, enemy_id: int) -> Enemy | None: ...
    def get_random_enemy(self, difficulty: Difficulty) -> Enemy | None: ...

    # Inventory
    def get_inventory(self, campaign_id: int) -> list[Item]: ...
    def add_item_to_inventory(self, campaign_id: int, item: Item | ItemDraft) -> Item: ...
    def remove_item_from_inventory(self, campaign_id: int, item_id: int) -> bool: ...

    # Events
    def save_event(
        self,
        campaign_id: int,
        message: str,
        event_type: EventType,
        data: EventData | None = None,
    ) -> GameEvent: ...
    def get_recent_events(self, campaign_id: int, limit: int) -> list[GameEvent]: ...
    def get_events(self, campaign_id: int) -> list[GameEvent]: ...

    def transaction(self) -> AbstractContextManager[None]: ...


class InMemoryRepository:
    """Dictionary-backed repository for tests and offline play.

    ``transaction()`` snapshots the whole store and restores it if the
    block raises, so a failed turn leaves no partial writes behind.

    Args:
        enemies: Enemy catalog; defaults to the seeded catalog.
        equipment: Equipment catalog; defaults to the seeded catalog.
        items: Starter item catalog; defaults to the seeded catalog.
        rng: Random generator used to pick enemies.
    """

    def __init__(
        self,
        *,
        enemies: Iterable[Enemy] = seed.ENEMIES,
        equipment: Iterable[Equipment] = seed.EQUIPMENT,
        items: Iterable[Item] = seed.ITEMS,
        rng: random.Random | None = None,
    ) -> None:
        self._lock = threading.RLock()
        self._rng = rng or random.Random()
        self._depth = 0

        self._enemies = {enemy.id: enemy for enemy in enemies}
        self._equipment = {piece.id: piece for piece in equipment}
        self._items = {item.id: item for item in items}
        self._campaigns: dict[int, Campaign] = {}
        self._characters: dict[int, Character] = {}
        self._inventories: dict[int, list[int]] = {}
        self._events: dict[int, list[GameEvent]] = {}
        self._ids = {
            "campaign": 0,
            "character": 0,
            "event": 0,
            "item": max(self._items, default=0),
        }

    def _next_id(self, kind: str) -> int:
        self._ids[kind] += 1
        return self._ids[kind]

    def _state(self) -> dict[str, object]:
        return {
            "_items": self._items,
            "_campaigns": self._campaigns,
            "_characters": self._characters,
            "_inventories": self._inventories,
            "_events": self._events,
            "_ids": self._ids,
        }

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Apply every write in the block, or none of them."""
        with self._lock:
            saved = copy.deepcopy(self._state()) if self._depth == 0 else None
            self._depth += 1
            try:
                yield
            except BaseException:
                if saved is not None:
                    for name, value in saved.items():
                        setattr(self, name, value)
                    logger.debug("In-memory transaction rolled back")
                raise
            finally:
                self._depth -= 1

    # -------------------------------------------------------------------------
    # Campaigns
    # -------------------------------------------------------------------------

    def get_campaign(self, campaign_id: int) -> Campaign | None:
        with self._lock:
            return self._campaigns.get(campaign_id)

    def update_campaign(self, campaign: Campaign) -> Campaign:
        with self._lock:
            updated = campaign.model_copy(update={"updated_at": utc_now()})
            self._campaigns[campaign.id] = updated
            return updated

    def create_campaign(
        self,
        account_id: int,
        name: str,
        character: CharacterDraft,
    ) -> tuple[Campaign, Character]:
        with self._lock:
            campaign = Campaign(
                id=self._next_id("campaign"),
                account_id=account_id,
                name=name,
                state=CampaignState.ACTIVE,
            )
            created = Character(
                id=self._next_id("character"),
                campaign_id=campaign.id,
                current_health=character.max_health,
                **character.model_dump(),
            )
            self._campaigns[campaign.id] = campaign
            self._characters[campaign.id] = created
            self._inventories[campaign.id] = []
            self._events[campaign.id] = []
            return campaign, created

    def count_campaigns(self, account_id: int) -> int:
        with self._lock:
            return sum(1 for c in self._campaigns.values() if c.account_id == account_id)

    # -------------------------------------------------------------------------
    # Characters and equipment
    # -------------------------------------------------------------------------

    def get_character(self, campaign_id: int) -> Character | None:
        with self._lock:
            return self._characters.get(campaign_id)

    def update_character(self, character: Character) -> Character:
        with self._lock:
            self._characters[character.campaign_id] = character
            return character

    def get_equipment(self, equipment_id: int) -> Equipment | None:
        with self._lock:
            return self._equipment.get(equipment_id)

    def equip_item(self, campaign_id: int, equipment: Equipment) -> Character:
        with self._lock:
            character = self._characters[campaign_id]
            updated = character.model_copy(update={f"{equipment.slot}_id": equipment.id})
            self._characters[campaign_id] = updated
            return updated

    # -------------------------------------------------------------------------
    # Enemies
    # -------------------------------------------------------------------------

    def get_enemy(self, enemy_id: int) -> Enemy | None:
        with self._lock:
            return self._enemies.get(enemy_id)

    def get_random_enemy(self, difficulty: Difficulty) -> Enemy | None:
        with self._lock:
            candidates = sorted(
                (e for e in self._enemies.values() if e.difficulty is difficulty),
                key=lambda e: e.id,
            )
            return self._rng.choice(candidates) if candidates else None

    # -------------------------------------------------------------------------
    # Inventory
    # -------------------------------------------------------------------------

    def get_inventory(self, campaign_id: int) -> list[Item]:
        with self._lock:
            return [self._items[item_id] for item_id in self._inventories.get(campaign_id, [])]

    def add_item_to_inventory(self, campaign_id: int, item: Item | ItemDraft) -> Item:
        with self._lock:
            stored = self._catalog_item(item)
            self._inventories.setdefault(campaign_id, []).append(stored.id)
            return stored

    def _catalog_item(self, item: Item | ItemDraft) -> Item:
        if isinstance(item, Item):
            return self._items.setdefault(item.id, item)
        for existing in self._items.values():
            if (
                existing.name == item.name
                and existing.stat_modified == item.stat_modified
                and existing.stat_value == item.stat_value
            ):
                return existing
        stored = Item(id=self._next_id("item"), **item.model_dump())
        self._items[stored.id] = stored
        return stored

    def remove_item_from_inventory(self, campaign_id: int, item_id: int) -> bool:
        with self._lock:
            inventory = self._inventories.get(campaign_id, [])
            if item_id not in inventory:
                return False
            inventory.remove(item_id)
            return True

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def save_event(
        self,
        campaign_id: int,
        message: str,
        event_type: EventType,
        data: EventData | None = None,
    ) -> GameEvent:
        with self._lock:
            events = self._events.setdefault(campaign_id, [])
            event = GameEvent(
                id=self._next_id("event"),
                campaign_id=campaign_id,
                event_number=events[-1].event_number + 1 if events else 1,
                message=message,
                event_type=event_type,
                data=data,
            )
            events.append(event)
            return event

    def get_recent_events(self, campaign_id: int, limit: int) -> list[GameEvent]:
        with self._lock:
            if limit <= 0:
                return []
            return list(self._events.get(campaign_id, [])[-limit:])

    def get_events(self, campaign_id: int) -> list[GameEvent]:
        with self._lock:
            return list(self._events.get(campaign_id, []))


__all__ = [
    "GameRepository",
    "InMemoryRepository",
]
