"""Game phase derivation and the actions each phase allows."""

from __future__ import annotations

from crawl_engine.models.enums import ActionType, CampaignState, GamePhase


CHOICES_BY_PHASE: dict[GamePhase, list[ActionType]] = {
    GamePhase.EXPLORATION: [ActionType.CONTINUE],
    GamePhase.INVESTIGATION_PROMPT: [ActionType.INVESTIGATE, ActionType.DECLINE],
    GamePhase.COMBAT: [ActionType.ATTACK, ActionType.FLEE, ActionType.USE_ITEM_COMBAT],
    GamePhase.GAME_OVER: [],
    GamePhase.VICTORY: [],
}
"""Choices shown to the player in each phase."""

ALLOWED_ACTIONS: dict[GamePhase, frozenset[ActionType]] = {
    GamePhase.EXPLORATION: frozenset({ActionType.CONTINUE}),
    # continue during a prompt is treated as decline
    GamePhase.INVESTIGATION_PROMPT: frozenset(
        {ActionType.INVESTIGATE, ActionType.DECLINE, ActionType.CONTINUE}
    ),
    GamePhase.COMBAT: frozenset(
        {ActionType.ATTACK, ActionType.FLEE, ActionType.USE_ITEM_COMBAT}
    ),
    GamePhase.GAME_OVER: frozenset(),
    GamePhase.VICTORY: frozenset(),
}


def derive_phase(
    campaign_state: CampaignState,
    *,
    in_combat: bool,
    prompt_pending: bool,
) -> GamePhase:
    """Work out where the campaign sits in the state machine.

    Args:
        campaign_state: Durable campaign state.
        in_combat: Whether a combat snapshot exists.
        prompt_pending: Whether an investigation prompt is stashed.

    Returns:
        The current phase.
    """
    if campaign_state is CampaignState.COMPLETED:
        return GamePhase.VICTORY
    if campaign_state is CampaignState.GAME_OVER:
        return GamePhase.GAME_OVER
    if in_combat:
        return GamePhase.COMBAT
    if prompt_pending:
        return GamePhase.INVESTIGATION_PROMPT
    return GamePhase.EXPLORATION


def choices_for(phase: GamePhase) -> list[ActionType]:
    return list(CHOICES_BY_PHASE[phase])


__all__ = [
    "CHOICES_BY_PHASE",
    "ALLOWED_ACTIONS",
    "derive_phase",
    "choices_for",
]
