"""Crawl Engine - turn-based dungeon crawler game engine.

A single-player text dungeon crawl where an LLM narrator writes the story
and the engine owns every number.

ARCHITECTURE:
- Python owns TRUTH (campaign records, d20 rolls, stat arithmetic, combat)
- The narrator handles TEXT (event types, descriptions, proposed rewards)
- Narrator output is validated and clamped; a failing narrator falls back
  to deterministic defaults and never blocks a turn

Example:
    >>> from crawl_engine import build_engine, CharacterDraft, PlayerAction
    >>>
    >>> engine = build_engine()
    >>> state = engine.start_campaign(1, "Into the Deep", CharacterDraft(name="Ayla"))
    >>> response = engine.process_action(
    ...     PlayerAction(campaign_id=state.campaign_id, action_type="continue"),
    ...     account_id=1,
    ... )
    >>> print(response.message)

Modules:
    core: Configuration, logging, and base exceptions.
    models: Pydantic V2 schemas for records, events and responses.
    engine: Game engine, dice, combat and pacing.
    narrator: Narrator contract, OpenRouter client and offline fallback.
    storage: In-memory and SQLite repositories.
"""

from __future__ import annotations

# Core
from crawl_engine.core.config import Settings, get_settings
from crawl_engine.core.exceptions import CrawlEngineError
from crawl_engine.core.logging import configure_logging, get_logger

# Models
from crawl_engine.models import (
    ActionData,
    ActionType,
    CharacterDraft,
    GamePhase,
    GameServiceResponse,
    GameState,
    PlayerAction,
)

# Engine
from crawl_engine.engine import GameEngine, build_engine


__version__ = "0.1.0"
__all__ = [
    # Version info
    "__version__",
    # Core
    "CrawlEngineError",
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    # Models
    "ActionData",
    "ActionType",
    "CharacterDraft",
    "GamePhase",
    "GameServiceResponse",
    "GameState",
    "PlayerAction",
    # Engine
    "GameEngine",
    "build_engine",
]
