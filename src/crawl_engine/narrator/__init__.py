"""Narrator (text generation) layer.

Exports the narrator contract, its OpenRouter and offline
implementations, the resilient wrapper and a factory that builds the
configured narrator.
"""

from __future__ import annotations

from crawl_engine.core.config import NarratorSettings, get_settings
from crawl_engine.narrator.base import (
    BonusStat,
    Narrator,
    NarratorContext,
    RecentEvent,
    StatBoost,
)
from crawl_engine.narrator.fallback import OfflineNarrator
from crawl_engine.narrator.openrouter import OpenRouterNarrator
from crawl_engine.narrator.resilient import ResilientNarrator


def build_narrator(settings: NarratorSettings | None = None) -> ResilientNarrator:
    """Build the configured narrator, wrapped so it never raises.

    Args:
        settings: Narrator settings; read from the environment if omitted.

    Returns:
        A ResilientNarrator around the configured implementation.
    """
    settings = settings or get_settings().narrator
    inner: Narrator
    if settings.provider == "openrouter":
        inner = OpenRouterNarrator(settings)
    else:
        inner = OfflineNarrator()
    return ResilientNarrator(inner, timeout_seconds=settings.timeout_seconds)


__all__ = [
    "BonusStat",
    "Narrator",
    "NarratorContext",
    "RecentEvent",
    "StatBoost",
    "OfflineNarrator",
    "OpenRouterNarrator",
    "ResilientNarrator",
    "build_narrator",
]
