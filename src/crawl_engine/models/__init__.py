"""Data models for the campaign game engine.

This package contains Pydantic V2 schemas for durable records, typed
event payloads, transient combat state and the engine's action surface.
"""

from crawl_engine.models.actions import (
    ActionData,
    CombatResult,
    EffectiveStats,
    GameServiceResponse,
    GameState,
    PendingInvestigation,
    PlayerAction,
)
from crawl_engine.models.combat import (
    CharacterBaseline,
    CombatSnapshot,
    LiveEnemy,
    TemporaryBuffs,
)
from crawl_engine.models.enums import (
    ActionType,
    CampaignState,
    CombatOutcome,
    Difficulty,
    EquipmentSlot,
    EventType,
    GamePhase,
    RollClassification,
    StatType,
)
from crawl_engine.models.events import (
    CampaignStartEventData,
    CombatEventData,
    DeclinedEventData,
    DescriptiveEventData,
    EquipEventData,
    EventData,
    InvestigationEventData,
    ItemDropEventData,
    RewardSummary,
    parse_event_data,
)
from crawl_engine.models.records import (
    Campaign,
    Character,
    CharacterDraft,
    Enemy,
    Equipment,
    GameEvent,
    Item,
    ItemDraft,
)


__all__ = [
    # Enums
    "ActionType",
    "CampaignState",
    "CombatOutcome",
    "Difficulty",
    "EquipmentSlot",
    "EventType",
    "GamePhase",
    "RollClassification",
    "StatType",
    # Records
    "Campaign",
    "Character",
    "CharacterDraft",
    "Enemy",
    "Equipment",
    "GameEvent",
    "Item",
    "ItemDraft",
    # Event payloads
    "CampaignStartEventData",
    "CombatEventData",
    "DeclinedEventData",
    "DescriptiveEventData",
    "EquipEventData",
    "EventData",
    "InvestigationEventData",
    "ItemDropEventData",
    "RewardSummary",
    "parse_event_data",
    # Combat
    "CharacterBaseline",
    "CombatSnapshot",
    "LiveEnemy",
    "TemporaryBuffs",
    # Actions
    "ActionData",
    "CombatResult",
    "EffectiveStats",
    "GameServiceResponse",
    "GameState",
    "PendingInvestigation",
    "PlayerAction",
]
