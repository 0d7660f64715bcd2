"""Typed payloads attached to GameEvent records.

Every payload carries a ``kind`` literal so the union can be validated
back from JSON without guessing. Combat recovery reads these payloads
instead of poking at loosely structured dictionaries.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from crawl_engine.models.enums import (
    CombatOutcome,
    EventType,
    RollClassification,
    StatType,
)


class _EventData(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class CampaignStartEventData(_EventData):
    """Opening event of a new campaign."""

    kind: Literal["campaign_start"] = "campaign_start"
    character_name: str


class DescriptiveEventData(_EventData):
    """Flavour event with no mechanical effect."""

    kind: Literal["descriptive"] = "descriptive"


class InvestigationEventData(_EventData):
    """Outcome of investigating an environmental event.

    Attributes:
        roll: The d20 value rolled.
        classification: Band the roll fell into.
        stat: Stat the narrator proposed to modify.
        base_value: Narrator-proposed change before the roll.
        delta: Change actually applied.
        resulting_value: Stat value after applying the change.
    """

    kind: Literal["investigation"] = "investigation"
    roll: int
    classification: RollClassification
    stat: StatType
    base_value: int
    delta: int
    resulting_value: int


class DeclinedEventData(_EventData):
    """The player walked away from an investigation prompt."""

    kind: Literal["declined"] = "declined"
    declined_event_type: EventType = EventType.ENVIRONMENTAL


class ItemDropEventData(_EventData):
    """Loot found while exploring."""

    kind: Literal["item_drop"] = "item_drop"
    item_id: int | None = Field(default=None, description="None when the item was left behind")
    item_name: str
    stat: StatType
    value: int
    added: bool = Field(description="False when the inventory was full")


class RewardSummary(_EventData):
    """What the player received after defeating an enemy."""

    roll: int
    classification: RollClassification
    stat: StatType | None = None
    delta: int = 0
    item_id: int | None = None
    item_name: str | None = None
    item_added: bool = False


class CombatEventData(_EventData):
    """Start or end of a fight.

    An ``encounter`` event with no later ``conclusion`` marks a fight in
    progress, which is how combat survives a restart.
    """

    kind: Literal["combat"] = "combat"
    phase: Literal["encounter", "conclusion"]
    enemy_id: int
    enemy_name: str
    is_boss: bool = False
    outcome: CombatOutcome | None = None
    reward: RewardSummary | None = None
    consumed_item_ids: list[int] = Field(default_factory=list)


class EquipEventData(_EventData):
    """The player changed equipment."""

    kind: Literal["equip"] = "equip"
    equipment_id: int
    equipment_name: str
    slot: str
    bonus: int


EventData = Annotated[
    Union[
        CampaignStartEventData,
        DescriptiveEventData,
        InvestigationEventData,
        DeclinedEventData,
        ItemDropEventData,
        CombatEventData,
        EquipEventData,
    ],
    Field(discriminator="kind"),
]

_event_data_adapter: TypeAdapter[EventData] = TypeAdapter(EventData)


def parse_event_data(raw: str | dict | None) -> EventData | None:
    """Validate a stored payload back into its typed model.

    Args:
        raw: JSON text or an already decoded mapping, or None.

    Returns:
        The typed payload, or None when nothing was stored.
    """
    if raw is None or raw == "":
        return None
    if isinstance(raw, str):
        return _event_data_adapter.validate_json(raw)
    return _event_data_adapter.validate_python(raw)


__all__ = [
    "CampaignStartEventData",
    "DescriptiveEventData",
    "InvestigationEventData",
    "DeclinedEventData",
    "ItemDropEventData",
    "RewardSummary",
    "CombatEventData",
    "EquipEventData",
    "EventData",
    "parse_event_data",
]
