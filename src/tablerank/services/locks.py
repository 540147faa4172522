# src/tablerank/services/locks.py

"""Per-key asyncio locks for serializing match updates.

Every match touches several player records that the store cannot update in
one multi-key transaction across concurrent requests. Holding a lock per
player (and per match on deletion) for the whole read-compute-write sequence
keeps two overlapping submissions from computing against the same snapshot.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator

logger = logging.getLogger(__name__)


@dataclass
class _LockEntry:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class KeyedLockManager:
    """Hands out one lock per string key.

    Keys are always acquired in sorted order, so two callers holding
    overlapping key sets cannot deadlock. Idle locks are dropped.
    """

    def __init__(self) -> None:
        self._locks: dict[str, _LockEntry] = {}

    def _checkout(self, key: str) -> _LockEntry:
        entry = self._locks.get(key)
        if entry is None:
            entry = self._locks[key] = _LockEntry()
        entry.users += 1
        return entry

    def _checkin(self, key: str) -> None:
        entry = self._locks[key]
        entry.users -= 1
        if entry.users == 0:
            del self._locks[key]

    def is_locked(self, key: str) -> bool:
        entry = self._locks.get(key)
        return entry is not None and entry.lock.locked()

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, *keys: str) -> AsyncIterator[None]:
        """Hold every given key for the duration of the block."""
        held: list[tuple[str, _LockEntry]] = []
        try:
            for key in sorted(set(keys)):
                entry = self._checkout(key)
                try:
                    await entry.lock.acquire()
                except BaseException:
                    self._checkin(key)
                    raise
                held.append((key, entry))
            logger.debug("Acquired locks", extra={"keys": [k for k, _ in held]})
            yield
        finally:
            for key, entry in reversed(held):
                entry.lock.release()
                self._checkin(key)
