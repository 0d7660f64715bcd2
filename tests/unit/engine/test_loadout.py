"""Tests for equipment, effective stats and phase derivation."""

from __future__ import annotations

import pytest

from crawl_engine.core.exceptions import RecordNotFoundError
from crawl_engine.engine.loadout import (
    apply_stat_delta,
    effective_stats,
    load_loadout,
    set_health,
)
from crawl_engine.engine.phases import ALLOWED_ACTIONS, choices_for, derive_phase
from crawl_engine.models import (
    ActionType,
    CampaignState,
    Character,
    GamePhase,
    StatType,
    TemporaryBuffs,
)
from crawl_engine.storage.repository import InMemoryRepository


@pytest.fixture
def character() -> Character:
    return Character(
        id=1,
        campaign_id=1,
        name="Ayla",
        current_health=50,
        max_health=50,
        attack=10,
        defense=5,
        weapon_id=1,
        armour_id=4,
        shield_id=7,
    )


class TestLoadout:
    """Tests for loadout and effective stats."""

    def test_effective_stats(self, repository: InMemoryRepository, character: Character) -> None:
        loadout = load_loadout(repository, character)

        stats = effective_stats(character, loadout, TemporaryBuffs(attack=3, defense=-2))

        assert stats.attack == 23
        assert stats.defense == 8
        assert stats.max_health == 70

    def test_missing_equipment(self, repository: InMemoryRepository, character: Character) -> None:
        with pytest.raises(RecordNotFoundError):
            load_loadout(repository, character.model_copy(update={"weapon_id": 999}))

    def test_health_clamped_to_effective_max(
        self, repository: InMemoryRepository, character: Character
    ) -> None:
        loadout = load_loadout(repository, character)

        assert set_health(character, loadout, 500).current_health == 70
        assert set_health(character, loadout, -20).current_health == 0

    def test_attack_never_negative(
        self, repository: InMemoryRepository, character: Character
    ) -> None:
        loadout = load_loadout(repository, character)

        updated = apply_stat_delta(character, loadout, StatType.ATTACK, -25)

        assert updated.attack == 0
        assert character.attack == 10

    def test_defense_delta(self, repository: InMemoryRepository, character: Character) -> None:
        loadout = load_loadout(repository, character)

        assert apply_stat_delta(character, loadout, StatType.DEFENSE, 4).defense == 9


class TestPhases:
    """Tests for phase derivation."""

    @pytest.mark.parametrize(
        ("state", "in_combat", "prompt", "expected"),
        [
            (CampaignState.ACTIVE, False, False, GamePhase.EXPLORATION),
            (CampaignState.ACTIVE, False, True, GamePhase.INVESTIGATION_PROMPT),
            (CampaignState.ACTIVE, True, False, GamePhase.COMBAT),
            (CampaignState.GAME_OVER, True, False, GamePhase.GAME_OVER),
            (CampaignState.COMPLETED, False, True, GamePhase.VICTORY),
        ],
    )
    def test_derive_phase(
        self,
        state: CampaignState,
        in_combat: bool,
        prompt: bool,
        expected: GamePhase,
    ) -> None:
        assert derive_phase(state, in_combat=in_combat, prompt_pending=prompt) == expected

    def test_terminal_phases_allow_nothing(self) -> None:
        assert choices_for(GamePhase.GAME_OVER) == []
        assert ALLOWED_ACTIONS[GamePhase.VICTORY] == frozenset()

    def test_prompt_accepts_continue(self) -> None:
        assert ActionType.CONTINUE in ALLOWED_ACTIONS[GamePhase.INVESTIGATION_PROMPT]
        assert ActionType.CONTINUE not in choices_for(GamePhase.INVESTIGATION_PROMPT)
