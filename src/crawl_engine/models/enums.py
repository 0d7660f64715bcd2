"""Enumerations shared across the campaign game engine."""

from __future__ import annotations

from enum import StrEnum


class CampaignState(StrEnum):
    """Durable campaign lifecycle states."""

    ACTIVE = "active"
    COMPLETED = "completed"
    GAME_OVER = "game_over"

    @property
    def is_terminal(self) -> bool:
        """Check whether no further actions can change the campaign."""
        return self is not CampaignState.ACTIVE


class EventType(StrEnum):
    """Narrative event categories chosen by the narrator."""

    DESCRIPTIVE = "Descriptive"
    ENVIRONMENTAL = "Environmental"
    COMBAT = "Combat"
    ITEM_DROP = "Item_Drop"


class StatType(StrEnum):
    """Character stats that items and investigations can modify."""

    HEALTH = "health"
    ATTACK = "attack"
    DEFENSE = "defense"


class EquipmentSlot(StrEnum):
    """Equipment slots on a character.

    Each slot boosts exactly one stat: weapon -> attack,
    armour -> max health, shield -> defense.
    """

    WEAPON = "weapon"
    ARMOUR = "armour"
    SHIELD = "shield"


class Difficulty(StrEnum):
    """Enemy difficulty tiers."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    BOSS = "boss"


class RollClassification(StrEnum):
    """Bands a d20 roll falls into."""

    CRITICAL_FAILURE = "critical_failure"
    REGULAR = "regular"
    CRITICAL_SUCCESS = "critical_success"


class ActionType(StrEnum):
    """Player actions accepted by the game engine."""

    CONTINUE = "continue"
    INVESTIGATE = "investigate"
    DECLINE = "decline"
    ATTACK = "attack"
    FLEE = "flee"
    USE_ITEM_COMBAT = "use_item_combat"


class GamePhase(StrEnum):
    """State machine position derived from durable and transient state."""

    EXPLORATION = "exploration"
    INVESTIGATION_PROMPT = "investigation_prompt"
    COMBAT = "combat"
    GAME_OVER = "game_over"
    VICTORY = "victory"


class CombatOutcome(StrEnum):
    """How a fight ended."""

    VICTORY = "victory"
    DEFEAT = "defeat"
    FLED = "fled"


__all__ = [
    "CampaignState",
    "EventType",
    "StatType",
    "EquipmentSlot",
    "Difficulty",
    "RollClassification",
    "ActionType",
    "GamePhase",
    "CombatOutcome",
]
