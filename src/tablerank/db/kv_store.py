# src/tablerank/db/kv_store.py

"""Async key-value access to the kv_store table.

Writes are flushed but never committed here. Transaction boundaries belong to
the caller, so several writes made through one store either all become
visible on commit or all disappear on rollback.
"""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tablerank.exceptions import StorageFailureError

from .models import KeyValueEntry

logger = logging.getLogger(__name__)


class KeyValueStore:
    """Get/set/delete JSON documents by opaque string key."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _load(self, key: str, refresh: bool = False) -> KeyValueEntry | None:
        # Reads refresh the row so a snapshot taken under a lock reflects the
        # latest committed value. Writes reuse the loaded row, so its version
        # is the one seen by that snapshot.
        return await self.db.get(KeyValueEntry, key, populate_existing=refresh)

    async def get(self, key: str) -> dict | None:
        try:
            entry = await self._load(key, refresh=True)
        except SQLAlchemyError as e:
            raise StorageFailureError("read", key, str(e)) from e
        return dict(entry.value) if entry is not None else None

    async def mget(self, keys: Iterable[str]) -> dict[str, dict | None]:
        return {key: await self.get(key) for key in keys}

    async def set(self, key: str, value: dict) -> None:
        try:
            entry = await self._load(key)
            if entry is None:
                self.db.add(KeyValueEntry(key=key, value=value))
            else:
                entry.value = value
            await self.db.flush()
        except SQLAlchemyError as e:
            raise StorageFailureError("write", key, str(e)) from e
        logger.debug("Stored key", extra={"key": key})

    async def delete(self, key: str) -> bool:
        """Delete a key. Returns False if it did not exist."""
        try:
            entry = await self._load(key)
            if entry is None:
                return False
            await self.db.delete(entry)
            await self.db.flush()
        except SQLAlchemyError as e:
            raise StorageFailureError("delete", key, str(e)) from e
        logger.debug("Deleted key", extra={"key": key})
        return True

    async def commit(self, key: str) -> None:
        """Commit the session's transaction. `key` names the record for errors."""
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            raise StorageFailureError("commit", key, str(e)) from e
        logger.debug("Committed", extra={"key": key})

    async def get_by_prefix(self, prefix: str) -> list[tuple[str, dict]]:
        try:
            entries = await KeyValueEntry.find_by_prefix(self.db, prefix)
        except SQLAlchemyError as e:
            raise StorageFailureError("scan", f"{prefix}*", str(e)) from e
        return [(entry.key, dict(entry.value)) for entry in entries]
