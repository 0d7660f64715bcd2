"""Pytest configuration and shared fixtures.

This module provides common fixtures and test doubles for the campaign
engine test suite: scripted dice, a scripted narrator and an engine
wired to the in-memory repository.
"""

from __future__ import annotations

import random
import threading
from collections.abc import Iterable
from typing import TYPE_CHECKING

import pytest

from crawl_engine.core.config import GameSettings
from crawl_engine.core.exceptions import NarratorUnavailableError
from crawl_engine.engine.dice import DiceRoller, validate_roll
from crawl_engine.engine.game_engine import GameEngine
from crawl_engine.models.enums import Difficulty, EventType, StatType
from crawl_engine.models.records import CharacterDraft, Enemy, ItemDraft
from crawl_engine.narrator.base import BonusStat, NarratorContext, StatBoost
from crawl_engine.narrator.resilient import ResilientNarrator
from crawl_engine.storage import seed
from crawl_engine.storage.repository import InMemoryRepository


if TYPE_CHECKING:
    from collections.abc import Generator


ACCOUNT_ID = 1

SPIDER = Enemy(id=101, name="Cave Spider", difficulty=Difficulty.EASY, health=12, attack=8, defense=3)
WARDEN = Enemy(id=102, name="Crypt Warden", difficulty=Difficulty.BOSS, health=15, attack=8, defense=3)


# =============================================================================
# Test Doubles
# =============================================================================


class ScriptedDiceRoller(DiceRoller):
    """DiceRoller that returns pre-scripted values in order."""

    def __init__(self, values: Iterable[int] = ()) -> None:
        super().__init__()
        self._values = list(values)
        self.rolled: list[int] = []

    def push(self, *values: int) -> None:
        self._values.extend(values)

    def roll(self) -> int:
        if not self._values:
            raise AssertionError("No scripted dice rolls left")
        value = validate_roll(self._values.pop(0))
        self.rolled.append(value)
        return value


class ScriptedNarrator:
    """Narrator with configurable answers that records every call.

    Event types are consumed in order; once exhausted the narrator
    answers Descriptive. Setting ``fail`` makes every call raise.
    """

    def __init__(
        self,
        *,
        event_types: Iterable[EventType] = (),
        boost: StatBoost | None = None,
        loot: ItemDraft | None = None,
        bonus: BonusStat | None = None,
        fail: bool = False,
        delay: float = 0.0,
    ) -> None:
        self.event_types = list(event_types)
        self.boost = boost or StatBoost(stat_type=StatType.ATTACK, base_value=10)
        self.loot = loot or ItemDraft(
            name="Ember Tonic",
            stat_modified=StatType.ATTACK,
            stat_value=3,
            rarity=20,
        )
        self.bonus = bonus or BonusStat(stat_type=StatType.DEFENSE, value=4)
        self.fail = fail
        self.delay = delay
        self.calls: list[str] = []
        self.contexts: list[NarratorContext] = []
        self._lock = threading.Lock()

    def _record(self, name: str, context: NarratorContext) -> None:
        with self._lock:
            self.calls.append(name)
            self.contexts.append(context)
        if self.delay:
            threading.Event().wait(self.delay)
        if self.fail:
            raise NarratorUnavailableError("Narrator offline", operation=name)

    def generate_event_type(self, context: NarratorContext) -> EventType:
        self._record("generate_event_type", context)
        if self.event_types:
            return self.event_types.pop(0)
        return EventType.DESCRIPTIVE

    def generate_description(
        self,
        event_type: EventType,
        context: NarratorContext,
        loot: ItemDraft | None = None,
    ) -> str:
        self._record("generate_description", context)
        if loot is not None:
            return f"A {event_type} scene with a {loot.name}."
        if context.enemy_name:
            return f"A {event_type} scene with a {context.enemy_name}."
        return f"A {event_type} scene."

    def request_stat_boost(self, context: NarratorContext, event_type: EventType) -> StatBoost:
        self._record("request_stat_boost", context)
        return self.boost

    def request_item_drop(self, context: NarratorContext) -> ItemDraft:
        self._record("request_item_drop", context)
        return self.loot

    def request_bonus_stat(self, context: NarratorContext) -> BonusStat:
        self._record("request_bonus_stat", context)
        return self.bonus


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache before and after each test."""
    from crawl_engine.core.config import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def game_settings() -> GameSettings:
    """Default game settings, independent of the environment."""
    return GameSettings(
        boss_event_threshold=20,
        medium_after_event=5,
        hard_after_event=12,
        max_consecutive_descriptive=2,
        inventory_capacity=10,
        recent_event_window=10,
        flee_success_min_roll=11,
        campaign_limit_per_account=5,
    )


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def repository() -> InMemoryRepository:
    """In-memory repository with the seeded catalog."""
    return InMemoryRepository(rng=random.Random(7))


@pytest.fixture
def spider_repository() -> InMemoryRepository:
    """In-memory repository whose only regular enemy is a 12/8/3 spider."""
    return InMemoryRepository(enemies=[SPIDER, WARDEN], rng=random.Random(7))


@pytest.fixture
def dice() -> ScriptedDiceRoller:
    return ScriptedDiceRoller()


@pytest.fixture
def narrator() -> ScriptedNarrator:
    return ScriptedNarrator()


@pytest.fixture
def resilient_narrator(narrator: ScriptedNarrator) -> Generator[ResilientNarrator, None, None]:
    """ScriptedNarrator behind a short-deadline resilient wrapper."""
    wrapped = ResilientNarrator(narrator, timeout_seconds=2.0)
    yield wrapped
    wrapped.close()


@pytest.fixture
def engine(
    spider_repository: InMemoryRepository,
    resilient_narrator: ResilientNarrator,
    dice: ScriptedDiceRoller,
    game_settings: GameSettings,
) -> GameEngine:
    """Engine over the spider repository with scripted dice and narrator."""
    return GameEngine(
        spider_repository,
        resilient_narrator,
        settings=game_settings,
        dice=dice,
        rng=random.Random(3),
    )


@pytest.fixture
def hero() -> CharacterDraft:
    """Character with 50 max health, 10 attack and 5 defense, unequipped."""
    return CharacterDraft(name="Ayla", max_health=50, attack=10, defense=5)


@pytest.fixture
def equipped_hero() -> CharacterDraft:
    """Character wearing a Short Sword, Leather Armour and Wooden Shield."""
    weapon = next(e for e in seed.EQUIPMENT if e.name == "Short Sword")
    armour = next(e for e in seed.EQUIPMENT if e.name == "Leather Armour")
    shield = next(e for e in seed.EQUIPMENT if e.name == "Wooden Shield")
    return CharacterDraft(
        name="Bram",
        max_health=50,
        attack=10,
        defense=5,
        weapon_id=weapon.id,
        armour_id=armour.id,
        shield_id=shield.id,
    )
