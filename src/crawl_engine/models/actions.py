"""Pydantic V2 schemas for the engine's inbound and outbound surface."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from crawl_engine.models.combat import LiveEnemy, TemporaryBuffs
from crawl_engine.models.enums import (
    ActionType,
    CampaignState,
    CombatOutcome,
    EventType,
    GamePhase,
    RollClassification,
)
from crawl_engine.models.events import RewardSummary
from crawl_engine.models.records import Character, Equipment, Item, utc_now


# =============================================================================
# Inbound
# =============================================================================


class ActionData(BaseModel):
    """Optional arguments of a player action."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    item_id: int | None = None


class PlayerAction(BaseModel):
    """A single player action submitted by the UI."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    campaign_id: int
    action_type: ActionType
    action_data: ActionData | None = None


# =============================================================================
# Transient
# =============================================================================


class PendingInvestigation(BaseModel):
    """An environmental event waiting for investigate or decline."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    campaign_id: int
    event_type: EventType = EventType.ENVIRONMENTAL
    message: str
    created_at: datetime = Field(default_factory=utc_now)


# =============================================================================
# Outbound
# =============================================================================


class EffectiveStats(BaseModel):
    """Character stats after equipment and temporary buffs."""

    model_config = ConfigDict(frozen=True)

    attack: int
    defense: int
    max_health: int


class CombatResult(BaseModel):
    """Mechanical outcome of one combat action.

    Attributes:
        roll: The d20 value rolled for the action.
        classification: Band the roll fell into.
        damage_dealt: Damage the player dealt to the enemy.
        damage_taken: Damage the enemy dealt to the player.
        enemy_health: Enemy hit points after the action.
        character_health: Character hit points after the action.
        enemy_defeated: Whether the enemy died.
        character_defeated: Whether the character died.
        outcome: How the fight ended, if it did.
        reward: Rewards granted on victory.
    """

    model_config = ConfigDict(frozen=True)

    roll: int | None = None
    classification: RollClassification | None = None
    damage_dealt: int = 0
    damage_taken: int = 0
    enemy_health: int
    character_health: int
    enemy_defeated: bool = False
    character_defeated: bool = False
    outcome: CombatOutcome | None = None
    reward: RewardSummary | None = None


class GameState(BaseModel):
    """Everything the UI needs to render a campaign."""

    model_config = ConfigDict(frozen=True)

    campaign_id: int
    campaign_name: str
    campaign_state: CampaignState
    phase: GamePhase
    message: str
    character: Character
    effective_stats: EffectiveStats
    equipment: list[Equipment] = Field(default_factory=list)
    inventory: list[Item] = Field(default_factory=list)
    enemy: LiveEnemy | None = None
    temporary_buffs: TemporaryBuffs | None = None
    combat_log: list[str] = Field(default_factory=list)
    event_count: int = 0


class GameServiceResponse(BaseModel):
    """Result of processing one player action."""

    model_config = ConfigDict(frozen=True)

    success: bool
    game_state: GameState | None = None
    message: str
    choices: list[ActionType] = Field(default_factory=list)
    combat_result: CombatResult | None = None
    item_found: Item | None = None
    error: str | None = None


__all__ = [
    "ActionData",
    "PlayerAction",
    "PendingInvestigation",
    "EffectiveStats",
    "CombatResult",
    "GameState",
    "GameServiceResponse",
]
