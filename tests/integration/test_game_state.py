"""Integration tests for campaign lifecycle and state reads.

Covers campaign creation, ownership, terminal campaigns, equipment and
the failure response returned when storage breaks mid-turn.
"""

from __future__ import annotations

import random
from typing import Any

import pytest

from crawl_engine.core.constants import (
    ACTION_FAILED_MESSAGE,
    CAMPAIGN_ENDED_MESSAGE,
    OPENING_MESSAGE,
)
from crawl_engine.core.exceptions import (
    CampaignForbiddenError,
    CampaignNotFoundError,
    NotFoundOrForbiddenError,
    RepositoryError,
    ValidationError,
)
from crawl_engine.engine.game_engine import GameEngine
from crawl_engine.models import (
    ActionType,
    CampaignStartEventData,
    CampaignState,
    Character,
    CharacterDraft,
    Difficulty,
    Enemy,
    EquipEventData,
    EventType,
    GamePhase,
    GameEvent,
    PlayerAction,
)
from crawl_engine.storage.repository import InMemoryRepository


ACCOUNT = 1
OTHER_ACCOUNT = 2


class FlakyRepository(InMemoryRepository):
    """In-memory repository whose writes can be made to fail.

    ``fail_writes`` fails every write. ``saves_left`` lets that many more
    events through and then fails each following ``save_event``.
    """

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.fail_writes = False
        self.saves_left: int | None = None

    def save_event(self, *args: Any, **kwargs: Any) -> GameEvent:
        if self.fail_writes:
            raise RepositoryError("disk full")
        if self.saves_left is not None:
            if self.saves_left == 0:
                raise RepositoryError("disk full")
            self.saves_left -= 1
        return super().save_event(*args, **kwargs)

    def update_character(self, character: Character) -> Character:
        if self.fail_writes:
            raise RepositoryError("disk full")
        return super().update_character(character)


class TestStartCampaign:
    """Tests for creating campaigns."""

    def test_initial_state(self, engine, spider_repository, hero) -> None:
        """A new campaign opens in exploration with the opening event."""
        state = engine.start_campaign(ACCOUNT, "First Steps", hero)

        assert state.phase == GamePhase.EXPLORATION
        assert state.campaign_state == CampaignState.ACTIVE
        assert state.message == OPENING_MESSAGE
        assert state.event_count == 1
        assert state.character.current_health == 50

        opening = spider_repository.get_events(state.campaign_id)[0]
        assert opening.event_type == EventType.DESCRIPTIVE
        assert isinstance(opening.data, CampaignStartEventData)
        assert opening.data.character_name == "Ayla"

    def test_equipment_counts_toward_stats(self, engine, equipped_hero) -> None:
        """Starting equipment raises effective stats and starting health."""
        state = engine.start_campaign(ACCOUNT, "Armed", equipped_hero)

        assert state.effective_stats.attack == 20
        assert state.effective_stats.defense == 10
        assert state.effective_stats.max_health == 70
        assert state.character.current_health == 70
        assert {piece.name for piece in state.equipment} == {
            "Short Sword",
            "Leather Armour",
            "Wooden Shield",
        }

    def test_campaign_limit(self, engine, hero) -> None:
        """An account can hold at most five campaigns."""
        for index in range(5):
            engine.start_campaign(ACCOUNT, f"Run {index}", hero)

        with pytest.raises(ValidationError, match="Limit of 5 campaigns"):
            engine.start_campaign(ACCOUNT, "One Too Many", hero)

        # Other accounts are unaffected
        engine.start_campaign(OTHER_ACCOUNT, "Fresh", hero)

    def test_wrong_slot_rejected(self, engine) -> None:
        """Armour cannot be equipped as a weapon."""
        draft = CharacterDraft(name="Dane", weapon_id=4)

        with pytest.raises(ValidationError, match="Invalid starting weapon"):
            engine.start_campaign(ACCOUNT, "Mismatch", draft)


class TestGameStateReads:
    """Tests for get_game_state."""

    def test_reads_are_idempotent(self, engine, hero) -> None:
        """Reading the state does not advance the story."""
        campaign_id = engine.start_campaign(ACCOUNT, "Steady", hero).campaign_id

        first = engine.get_game_state(campaign_id, account_id=ACCOUNT)
        second = engine.get_game_state(campaign_id, account_id=ACCOUNT)

        assert first == second

    def test_other_account_sees_not_found(self, engine, hero) -> None:
        """A foreign campaign is indistinguishable from a missing one."""
        campaign_id = engine.start_campaign(ACCOUNT, "Private", hero).campaign_id

        with pytest.raises(CampaignForbiddenError) as forbidden:
            engine.get_game_state(campaign_id, account_id=OTHER_ACCOUNT)
        with pytest.raises(CampaignNotFoundError) as missing:
            engine.get_game_state(9999, account_id=ACCOUNT)

        assert forbidden.value.message == missing.value.message
        assert isinstance(forbidden.value, NotFoundOrForbiddenError)

    def test_foreign_action_raises(self, engine, hero) -> None:
        """Actions on a foreign campaign raise before anything happens."""
        campaign_id = engine.start_campaign(ACCOUNT, "Private", hero).campaign_id

        with pytest.raises(CampaignForbiddenError):
            engine.process_action(
                PlayerAction(campaign_id=campaign_id, action_type=ActionType.CONTINUE),
                account_id=OTHER_ACCOUNT,
            )

    def test_event_log_export(self, engine, hero) -> None:
        """The full log comes back in event order."""
        campaign_id = engine.start_campaign(ACCOUNT, "Chronicle", hero).campaign_id
        for _ in range(2):
            engine.process_action(
                PlayerAction(campaign_id=campaign_id, action_type=ActionType.CONTINUE),
                account_id=ACCOUNT,
            )

        events = engine.get_event_log(campaign_id, account_id=ACCOUNT)

        assert [event.event_number for event in events] == list(range(1, len(events) + 1))
        assert events[0].message == OPENING_MESSAGE


class TestTerminalCampaigns:
    """Tests for completed and game-over campaigns."""

    @pytest.mark.parametrize(
        ("state", "phase"),
        [
            (CampaignState.COMPLETED, GamePhase.VICTORY),
            (CampaignState.GAME_OVER, GamePhase.GAME_OVER),
        ],
    )
    def test_actions_rejected(self, engine, spider_repository, hero, state, phase) -> None:
        """Any action on a finished campaign reports that it has ended."""
        campaign_id = engine.start_campaign(ACCOUNT, "Finished", hero).campaign_id
        campaign = spider_repository.get_campaign(campaign_id)
        spider_repository.update_campaign(campaign.model_copy(update={"state": state}))

        response = engine.process_action(
            PlayerAction(campaign_id=campaign_id, action_type=ActionType.CONTINUE),
            account_id=ACCOUNT,
        )

        assert not response.success
        assert response.error == "campaign_ended"
        assert response.message == CAMPAIGN_ENDED_MESSAGE
        assert response.choices == []
        assert response.game_state.phase == phase
        assert len(spider_repository.get_events(campaign_id)) == 1


class TestEquipment:
    """Tests for equipping gear between events."""

    def test_equip_raises_max_health(self, engine, spider_repository, hero) -> None:
        """Armour raises the effective maximum but does not heal."""
        campaign_id = engine.start_campaign(ACCOUNT, "Gear Up", hero).campaign_id

        response = engine.equip_item(campaign_id, 5, account_id=ACCOUNT)

        assert response.success
        assert response.game_state.effective_stats.max_health == 90
        assert response.game_state.character.current_health == 50
        latest = spider_repository.get_recent_events(campaign_id, 1)[-1]
        assert isinstance(latest.data, EquipEventData)
        assert latest.data.equipment_name == "Chainmail"

    def test_swapping_armour_clamps_health(self, engine, spider_repository) -> None:
        """Trading down armour clamps health to the new maximum."""
        draft = CharacterDraft(name="Bram", max_health=50, armour_id=5)
        campaign_id = engine.start_campaign(ACCOUNT, "Downgrade", draft).campaign_id
        assert spider_repository.get_character(campaign_id).current_health == 90

        engine.equip_item(campaign_id, 4, account_id=ACCOUNT)

        assert spider_repository.get_character(campaign_id).current_health == 70

    def test_unknown_equipment(self, engine, hero) -> None:
        """Unknown equipment ids are rejected."""
        campaign_id = engine.start_campaign(ACCOUNT, "Gear Up", hero).campaign_id

        response = engine.equip_item(campaign_id, 404, account_id=ACCOUNT)

        assert not response.success
        assert response.error == "validation_error"


class TestStorageFailures:
    """Tests for turns interrupted by storage errors."""

    @pytest.fixture
    def flaky(self) -> FlakyRepository:
        spider = Enemy(
            id=1, name="Cave Spider", difficulty=Difficulty.EASY, health=12, attack=8, defense=3
        )
        return FlakyRepository(enemies=[spider], rng=random.Random(7))

    @pytest.fixture
    def flaky_engine(self, flaky, resilient_narrator, dice, game_settings) -> GameEngine:
        return GameEngine(flaky, resilient_narrator, settings=game_settings, dice=dice)

    def test_failed_write_reports_failure(self, flaky, flaky_engine, hero) -> None:
        """A failed write returns a retryable failure response."""
        campaign_id = flaky_engine.start_campaign(ACCOUNT, "Fragile", hero).campaign_id
        flaky.fail_writes = True

        response = flaky_engine.process_action(
            PlayerAction(campaign_id=campaign_id, action_type=ActionType.CONTINUE),
            account_id=ACCOUNT,
        )

        assert not response.success
        assert response.error == "action_processing_failed"
        assert response.message == ACTION_FAILED_MESSAGE
        assert response.choices == [ActionType.CONTINUE]
        assert response.game_state is not None
        assert len(flaky.get_events(campaign_id)) == 1

    def test_failed_attack_leaves_fight_untouched(
        self, flaky, flaky_engine, narrator, dice, hero
    ) -> None:
        """The snapshot is only updated after the durable write succeeds."""
        campaign_id = flaky_engine.start_campaign(ACCOUNT, "Fragile", hero).campaign_id
        narrator.event_types = [EventType.COMBAT]
        flaky_engine.process_action(
            PlayerAction(campaign_id=campaign_id, action_type=ActionType.CONTINUE),
            account_id=ACCOUNT,
        )
        flaky.fail_writes = True
        dice.push(10)

        response = flaky_engine.process_action(
            PlayerAction(campaign_id=campaign_id, action_type=ActionType.ATTACK),
            account_id=ACCOUNT,
        )

        assert not response.success
        snapshot = flaky_engine.combat_store.get(campaign_id)
        assert snapshot.enemy.current_health == 12
        assert snapshot.combat_log == []
        assert flaky.get_character(campaign_id).current_health == 50

    def test_failed_follow_up_keeps_fight_after_flee(
        self, flaky, flaky_engine, narrator, dice, hero
    ) -> None:
        """An escape and the event after it are written together or not at all."""
        campaign_id = flaky_engine.start_campaign(ACCOUNT, "Fragile", hero).campaign_id
        narrator.event_types = [EventType.COMBAT]
        flaky_engine.process_action(
            PlayerAction(campaign_id=campaign_id, action_type=ActionType.CONTINUE),
            account_id=ACCOUNT,
        )
        flaky.saves_left = 1
        dice.push(15)

        response = flaky_engine.process_action(
            PlayerAction(campaign_id=campaign_id, action_type=ActionType.FLEE),
            account_id=ACCOUNT,
        )

        assert not response.success
        assert response.error == "action_processing_failed"
        assert flaky_engine.combat_store.has(campaign_id)
        assert response.game_state.phase == GamePhase.COMBAT
        events = flaky.get_events(campaign_id)
        assert len(events) == 2
        assert events[-1].data.phase == "encounter"

        flaky.saves_left = None
        dice.push(15)
        retry = flaky_engine.process_action(
            PlayerAction(campaign_id=campaign_id, action_type=ActionType.FLEE),
            account_id=ACCOUNT,
        )

        assert retry.success
        assert not flaky_engine.combat_store.has(campaign_id)
        assert [e.data.kind for e in flaky.get_events(campaign_id)[1:]] == [
            "combat",
            "combat",
            "descriptive",
        ]

    def test_failed_follow_up_keeps_prompt_after_decline(
        self, flaky, flaky_engine, narrator, hero
    ) -> None:
        """Declining records nothing and keeps the prompt when the next event fails."""
        campaign_id = flaky_engine.start_campaign(ACCOUNT, "Fragile", hero).campaign_id
        narrator.event_types = [EventType.ENVIRONMENTAL]
        prompt = flaky_engine.process_action(
            PlayerAction(campaign_id=campaign_id, action_type=ActionType.CONTINUE),
            account_id=ACCOUNT,
        )
        assert prompt.game_state.phase == GamePhase.INVESTIGATION_PROMPT
        flaky.saves_left = 1

        response = flaky_engine.process_action(
            PlayerAction(campaign_id=campaign_id, action_type=ActionType.DECLINE),
            account_id=ACCOUNT,
        )

        assert not response.success
        assert response.error == "action_processing_failed"
        assert flaky_engine.investigations.has(campaign_id)
        assert response.game_state.phase == GamePhase.INVESTIGATION_PROMPT
        events = flaky.get_events(campaign_id)
        assert [type(e.data) for e in events] == [CampaignStartEventData]
