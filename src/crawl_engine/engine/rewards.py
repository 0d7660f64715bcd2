"""Rewards for defeating an enemy.

A fresh roll decides the reward tier:

* critical failure: nothing.
* regular: one narrator stat boost, run through the stat calculator.
* critical success: a loot item and a flat bonus stat, requested from the
  narrator concurrently.

Narrator calls happen in :func:`plan_rewards`, before the turn's
transaction opens; :func:`apply_rewards` only performs durable writes.
"""

from __future__ import annotations

from dataclasses import dataclass

from crawl_engine.engine.dice import RollOutcome
from crawl_engine.engine.loadout import Loadout, apply_stat_delta
from crawl_engine.engine.stat_calc import apply_roll
from crawl_engine.models.enums import EventType, RollClassification, StatType
from crawl_engine.models.events import RewardSummary
from crawl_engine.models.records import Character, Item, ItemDraft
from crawl_engine.narrator.base import NarratorContext
from crawl_engine.narrator.resilient import ResilientNarrator
from crawl_engine.storage.repository import GameRepository


@dataclass(frozen=True)
class RewardPlan:
    """Rewards decided for a victory, not yet written.

    Attributes:
        roll: The reward roll.
        stat: Stat to change, if any.
        delta: Change to apply to that stat.
        loot: Item to add, if any.
    """

    roll: RollOutcome
    stat: StatType | None = None
    delta: int = 0
    loot: ItemDraft | None = None


@dataclass(frozen=True)
class AppliedRewards:
    """Outcome of writing a reward plan."""

    character: Character
    item: Item | None
    summary: RewardSummary


def plan_rewards(
    roll: RollOutcome,
    narrator: ResilientNarrator,
    context: NarratorContext,
) -> RewardPlan:
    """Ask the narrator for rewards matching the roll.

    Args:
        roll: The fresh reward roll.
        narrator: Resilient narrator; never raises.
        context: Narrator context for the victory.

    Returns:
        The planned rewards.
    """
    if roll.classification is RollClassification.CRITICAL_FAILURE:
        return RewardPlan(roll=roll)

    if roll.classification is RollClassification.REGULAR:
        boost = narrator.request_stat_boost(context, EventType.COMBAT)
        return RewardPlan(
            roll=roll,
            stat=boost.stat_type,
            delta=apply_roll(roll.value, boost.stat_type, boost.base_value),
        )

    loot, bonus = narrator.request_loot_and_bonus(context)
    return RewardPlan(roll=roll, stat=bonus.stat_type, delta=bonus.value, loot=loot)


def apply_rewards(
    repository: GameRepository,
    plan: RewardPlan,
    character: Character,
    loadout: Loadout,
    *,
    inventory_capacity: int,
) -> AppliedRewards:
    """Write a reward plan. Call inside the turn's transaction.

    Loot is only added while the inventory is below capacity.
    """
    updated = character
    if plan.stat is not None and plan.delta:
        updated = apply_stat_delta(character, loadout, plan.stat, plan.delta)
        repository.update_character(updated)

    item: Item | None = None
    if plan.loot is not None:
        if len(repository.get_inventory(character.campaign_id)) < inventory_capacity:
            item = repository.add_item_to_inventory(character.campaign_id, plan.loot)

    summary = RewardSummary(
        roll=plan.roll.value,
        classification=plan.roll.classification,
        stat=plan.stat,
        delta=plan.delta,
        item_id=item.id if item else None,
        item_name=plan.loot.name if plan.loot else None,
        item_added=item is not None,
    )
    return AppliedRewards(character=updated, item=item, summary=summary)


def describe_rewards(summary: RewardSummary) -> str:
    """Player-facing text for a reward summary."""
    if summary.classification is RollClassification.CRITICAL_FAILURE:
        return f"You search the remains but find nothing of use. (Roll: {summary.roll})"
    parts: list[str] = []
    if summary.stat is not None and summary.delta:
        sign = "+" if summary.delta > 0 else ""
        parts.append(f"{sign}{summary.delta} {summary.stat}")
    if summary.item_name:
        if summary.item_added:
            parts.append(f"found {summary.item_name}")
        else:
            parts.append(f"left {summary.item_name} behind (pack full)")
    if not parts:
        return f"The victory leaves you unchanged. (Roll: {summary.roll})"
    prefix = ""
    if summary.classification is RollClassification.CRITICAL_SUCCESS:
        prefix = "Critical reward! "
    return f"{prefix}Reward: {', '.join(parts)}. (Roll: {summary.roll})"


__all__ = [
    "RewardPlan",
    "AppliedRewards",
    "plan_rewards",
    "apply_rewards",
    "describe_rewards",
]
