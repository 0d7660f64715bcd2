"""Storage module for campaign persistence.

Provides the repository contract plus two implementations:
- InMemoryRepository for tests and offline play
- SQLiteRepository for persistent storage on disk
"""

from __future__ import annotations

from crawl_engine.core.config import StorageSettings, get_settings
from crawl_engine.storage.database import SQLiteRepository
from crawl_engine.storage.repository import GameRepository, InMemoryRepository


def build_repository(settings: StorageSettings | None = None) -> GameRepository:
    """Build the configured repository.

    Args:
        settings: Storage settings; read from the environment if omitted.

    Returns:
        A repository ready for use.
    """
    settings = settings or get_settings().storage
    if settings.backend == "memory":
        return InMemoryRepository()
    return SQLiteRepository(settings.database_path)


__all__ = [
    "GameRepository",
    "InMemoryRepository",
    "SQLiteRepository",
    "build_repository",
]
