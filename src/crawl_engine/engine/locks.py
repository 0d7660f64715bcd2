"""Per-campaign locking.

Every turn for a campaign runs under that campaign's lock, so a double
click or a client retry cannot interleave two mutations. Different
campaigns never share a lock.
"""

from __future__ import annotations

import threading
from collections.abc import Hashable, Iterator
from contextlib import contextmanager


class KeyedLock:
    """A lock per key, created on demand and dropped when idle.

    Example:
        >>> locks = KeyedLock()
        >>> with locks.hold(7):
        ...     pass
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[Hashable, threading.RLock] = {}
        self._waiters: dict[Hashable, int] = {}

    def _acquire_entry(self, key: Hashable) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
                self._waiters[key] = 0
            self._waiters[key] += 1
            return lock

    def _release_entry(self, key: Hashable) -> None:
        with self._guard:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                del self._locks[key]

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        """Hold the lock for ``key`` for the duration of the block.

        The lock is re-entrant, so a turn may call another locked
        operation on the same campaign.
        """
        lock = self._acquire_entry(key)
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            self._release_entry(key)

    def active_keys(self) -> int:
        """Number of keys currently held or waited on."""
        with self._guard:
            return len(self._locks)


__all__ = ["KeyedLock"]
