# src/tablerank/db/models.py

"""Database models for the TableRank application.

All core records (player profiles, match ledger entries, group records) live
in one key-value table. Keys are opaque strings such as `player:{id}` or
`match:{id}`; values are JSON documents owned by the rating store.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Sequence

from sqlalchemy import JSON, String, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

Base = declarative_base()


# ===============================================
# Mixins for Common Columns
# ===============================================


class TimestampMixin:
    """Mixin providing created_at and updated_at timestamp columns."""

    created_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        default=None,
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=True,
    )


# ===============================================
# Key-Value Table
# ===============================================


class KeyValueEntry(Base, TimestampMixin):
    """A single JSON document stored under an opaque string key.

    The version column drives SQLAlchemy's optimistic locking: an UPDATE or
    DELETE that finds the row at a different version than it was loaded at
    raises StaleDataError instead of silently overwriting it.
    """

    __tablename__ = "kv_store"
    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[dict] = mapped_column(JSON, nullable=False)
    version: Mapped[int] = mapped_column(nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __init__(self, key: str, value: dict, **kw: Any):
        super().__init__(**kw)
        self.key = key
        self.value = value

    @classmethod
    async def find_by_prefix(
        cls, db: AsyncSession, prefix: str
    ) -> Sequence["KeyValueEntry"]:
        """Find all entries whose key starts with the given prefix."""
        escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        query = (
            select(cls)
            .where(cls.key.like(f"{escaped}%", escape="\\"))
            .order_by(cls.key)
        )
        result = await db.execute(query)
        return result.scalars().all()
