"""Tests for the resilient narrator wrapper and fallback content."""

from __future__ import annotations

import pytest

from crawl_engine.core.constants import (
    BONUS_STAT_MAX,
    FALLBACK_DESCRIPTIONS,
    FALLBACK_LOOT_NAME,
)
from crawl_engine.models import EventType, ItemDraft, StatType
from crawl_engine.narrator.base import BonusStat, Narrator, NarratorContext
from crawl_engine.narrator.fallback import (
    OfflineNarrator,
    clamp_bonus_value,
    fallback_description,
    fallback_stat_boost,
)
from crawl_engine.narrator.resilient import ResilientNarrator


@pytest.fixture
def context() -> NarratorContext:
    return NarratorContext(
        campaign_id=1,
        character_name="Ayla",
        current_health=50,
        max_health=50,
        attack=10,
        defense=5,
    )


class TestFallbacks:
    """Tests for deterministic fallback content."""

    def test_description_names_loot(self) -> None:
        loot = ItemDraft(name="Ember Tonic", stat_modified=StatType.ATTACK, stat_value=3)

        text = fallback_description(EventType.ITEM_DROP, loot)

        assert text.startswith(FALLBACK_DESCRIPTIONS["Item_Drop"])
        assert text.endswith("You find a Ember Tonic.")

    def test_stat_boost_is_small_heal(self) -> None:
        boost = fallback_stat_boost()

        assert boost.stat_type == StatType.HEALTH
        assert boost.base_value > 0

    @pytest.mark.parametrize(("value", "expected"), [(0, 2), (7, 7), (99, BONUS_STAT_MAX)])
    def test_bonus_clamp(self, value: int, expected: int) -> None:
        assert clamp_bonus_value(value) == expected


class TestOfflineNarrator:
    """Tests for the table-driven narrator."""

    def test_satisfies_contract(self) -> None:
        assert isinstance(OfflineNarrator(seed=1), Narrator)

    def test_seeded_narration_repeats(self, context: NarratorContext) -> None:
        first = OfflineNarrator(seed=5)
        second = OfflineNarrator(seed=5)

        assert [first.generate_event_type(context) for _ in range(10)] == [
            second.generate_event_type(context) for _ in range(10)
        ]

    def test_combat_description_names_enemy(self, context: NarratorContext) -> None:
        fight = context.model_copy(update={"enemy_name": "Goblin"})

        text = OfflineNarrator(seed=2).generate_description(EventType.COMBAT, fight)

        assert text.endswith("It is a Goblin!")

    def test_bonus_within_range(self, context: NarratorContext) -> None:
        narrator = OfflineNarrator(seed=3)

        values = [narrator.request_bonus_stat(context).value for _ in range(30)]

        assert all(2 <= value <= BONUS_STAT_MAX for value in values)


class TestResilientNarrator:
    """Tests for deadline and error handling."""

    def test_passes_good_answers_through(
        self, resilient_narrator: ResilientNarrator, narrator, context: NarratorContext
    ) -> None:
        narrator.event_types = [EventType.COMBAT]

        assert resilient_narrator.generate_event_type(context) == EventType.COMBAT
        assert resilient_narrator.request_stat_boost(context, EventType.ENVIRONMENTAL).base_value == 10

    def test_exception_falls_back(
        self, resilient_narrator: ResilientNarrator, narrator, context: NarratorContext
    ) -> None:
        narrator.fail = True

        assert resilient_narrator.generate_event_type(context) == EventType.DESCRIPTIVE
        assert resilient_narrator.generate_description(EventType.COMBAT, context) == (
            FALLBACK_DESCRIPTIONS["Combat"]
        )
        assert resilient_narrator.request_item_drop(context).name == FALLBACK_LOOT_NAME

    def test_timeout_falls_back(self, narrator, context: NarratorContext) -> None:
        """A call slower than the deadline is abandoned."""
        narrator.delay = 0.5
        with ResilientNarrator(narrator, timeout_seconds=0.05) as slow:
            boost = slow.request_stat_boost(context, EventType.ENVIRONMENTAL)

        assert boost == fallback_stat_boost()

    def test_bonus_is_clamped(
        self, resilient_narrator: ResilientNarrator, narrator, context: NarratorContext
    ) -> None:
        narrator.bonus = BonusStat(stat_type=StatType.ATTACK, value=50)

        bonus = resilient_narrator.request_bonus_stat(context)

        assert bonus.value == BONUS_STAT_MAX

    def test_loot_and_bonus_together(
        self, resilient_narrator: ResilientNarrator, context: NarratorContext
    ) -> None:
        loot, bonus = resilient_narrator.request_loot_and_bonus(context)

        assert loot.name == "Ember Tonic"
        assert bonus.stat_type == StatType.DEFENSE

    def test_loot_and_bonus_fall_back_together(
        self, resilient_narrator: ResilientNarrator, narrator, context: NarratorContext
    ) -> None:
        narrator.fail = True

        loot, bonus = resilient_narrator.request_loot_and_bonus(context)

        assert loot.name == FALLBACK_LOOT_NAME
        assert bonus.stat_type == StatType.HEALTH
