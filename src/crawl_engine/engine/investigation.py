"""Pending investigation prompts.

An environmental event is not written anywhere durable until the player
investigates or declines it. Until then it lives here, keyed by campaign.
The store is in-memory only; after a restart the prompt is gone and the
next ``continue`` simply continues.
"""

from __future__ import annotations

import threading

from crawl_engine.models.actions import PendingInvestigation


class PendingInvestigationStore:
    """Thread-safe map of campaign id to its pending prompt."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._prompts: dict[int, PendingInvestigation] = {}

    def stash(self, prompt: PendingInvestigation) -> None:
        """Store a prompt, replacing any earlier one for the campaign."""
        with self._lock:
            self._prompts[prompt.campaign_id] = prompt

    def get(self, campaign_id: int) -> PendingInvestigation | None:
        with self._lock:
            return self._prompts.get(campaign_id)

    def pop(self, campaign_id: int) -> PendingInvestigation | None:
        """Remove and return the campaign's prompt, if any."""
        with self._lock:
            return self._prompts.pop(campaign_id, None)

    def clear(self, campaign_id: int) -> None:
        with self._lock:
            self._prompts.pop(campaign_id, None)

    def has(self, campaign_id: int) -> bool:
        with self._lock:
            return campaign_id in self._prompts


__all__ = ["PendingInvestigationStore"]
