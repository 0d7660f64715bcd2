"""Game engine module for the dungeon crawler.

This module provides the turn-processing engine and the pieces it is
built from: d20 rolls, the roll-to-stat calculator, transient combat and
investigation stores, encounter pacing and per-campaign locking.

Submodules:
    dice: d20 rolls and roll classification (d20 library)
    stat_calc: Turns a roll and a base value into a stat delta
    combat_store: In-memory combat snapshots
    investigation: Pending investigation prompts
    encounters: Event pacing, difficulty scaling and boss gating
    recovery: Rebuilding an interrupted fight from the event log
    rewards: Victory rewards
    game_engine: The state machine tying it all together

Example:
    >>> from crawl_engine.engine import build_engine
    >>> engine = build_engine()
    >>> state = engine.start_campaign(1, "Into the Deep", CharacterDraft(name="Ayla"))
    >>> state.phase
    <GamePhase.EXPLORATION: 'exploration'>
"""

from __future__ import annotations

from crawl_engine.core.config import Settings, get_settings
from crawl_engine.core.logging import configure_logging

# =============================================================================
# Dice Rolling
# =============================================================================
from crawl_engine.engine.dice import (
    DiceRoller,
    RollOutcome,
    classify_roll,
    validate_roll,
)
from crawl_engine.engine.stat_calc import apply_roll

# =============================================================================
# Transient State
# =============================================================================
from crawl_engine.engine.combat_store import CombatSessionStore
from crawl_engine.engine.investigation import PendingInvestigationStore
from crawl_engine.engine.locks import KeyedLock

# =============================================================================
# Game Engine
# =============================================================================
from crawl_engine.engine.game_engine import GameEngine
from crawl_engine.narrator import build_narrator
from crawl_engine.storage import build_repository


def build_engine(settings: Settings | None = None) -> GameEngine:
    """Build an engine wired to the configured repository and narrator.

    Args:
        settings: Application settings; read from the environment if omitted.

    Returns:
        A ready GameEngine.
    """
    settings = settings or get_settings()
    configure_logging(settings)
    return GameEngine(
        build_repository(settings.storage),
        build_narrator(settings.narrator),
        settings=settings.game,
    )


__all__ = [
    # Dice Rolling
    "DiceRoller",
    "RollOutcome",
    "classify_roll",
    "validate_roll",
    "apply_roll",
    # Transient State
    "CombatSessionStore",
    "PendingInvestigationStore",
    "KeyedLock",
    # Game Engine
    "GameEngine",
    "build_engine",
]
