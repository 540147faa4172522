# src/tablerank/db/rating_store.py

"""Typed access to player profiles, rating states and match ledger entries.

Key layout inside the key-value table:

    player:{player_id}   PlayerProfile (singles + doubles rating state)
    match:{match_id}     MatchLedgerEntry
    group:{group_code}   group record, only its "admins" list is read here
    group_matches:{group_code}:{match_id}
                         index entry, so a group's matches are one prefix scan
"""

from __future__ import annotations

from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from tablerank.exceptions import LedgerEntryNotFoundError, ParticipantNotFoundError
from tablerank.schemas.common import MODE_TO_RATING_MODE, MatchMode, PlayerRatingState
from tablerank.schemas.match import MatchLedgerEntry
from tablerank.schemas.player import PlayerProfile

from .kv_store import KeyValueStore

PLAYER_PREFIX = "player:"
MATCH_PREFIX = "match:"
GROUP_PREFIX = "group:"
GROUP_MATCHES_PREFIX = "group_matches:"


def player_key(player_id: str) -> str:
    return f"{PLAYER_PREFIX}{player_id}"


def match_key(match_id: str) -> str:
    return f"{MATCH_PREFIX}{match_id}"


def group_key(group_code: str) -> str:
    return f"{GROUP_PREFIX}{group_code}"


def group_match_key(group_code: str, match_id: str) -> str:
    return f"{GROUP_MATCHES_PREFIX}{group_code}:{match_id}"


class RatingStore:
    """The storage collaborator used by the match ledger.

    Lookups return None for missing records; callers decide which error
    that means in their context.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.kv = KeyValueStore(db)

    # -------------------------------------------------------------------------
    # Player profiles and per-mode rating state
    # -------------------------------------------------------------------------

    async def get_player_profile(self, player_id: str) -> PlayerProfile | None:
        value = await self.kv.get(player_key(player_id))
        return PlayerProfile.model_validate(value) if value is not None else None

    async def get_player_profiles(
        self, player_ids: Iterable[str]
    ) -> dict[str, PlayerProfile | None]:
        return {pid: await self.get_player_profile(pid) for pid in player_ids}

    async def put_player_profile(self, profile: PlayerProfile) -> None:
        await self.kv.set(player_key(profile.id), profile.model_dump(mode="json"))

    async def get_player_rating_state(
        self, player_id: str, mode: MatchMode
    ) -> PlayerRatingState | None:
        profile = await self.get_player_profile(player_id)
        if profile is None:
            return None
        return profile.state_for(MODE_TO_RATING_MODE[mode])

    async def put_player_rating_state(
        self, player_id: str, mode: MatchMode, state: PlayerRatingState
    ) -> None:
        profile = await self.get_player_profile(player_id)
        if profile is None:
            raise ParticipantNotFoundError(player_id, mode)
        await self.put_player_profile(
            profile.with_state(MODE_TO_RATING_MODE[mode], state)
        )

    # -------------------------------------------------------------------------
    # Match ledger entries
    # -------------------------------------------------------------------------

    async def get_ledger_entry(self, match_id: str) -> MatchLedgerEntry | None:
        value = await self.kv.get(match_key(match_id))
        return MatchLedgerEntry.model_validate(value) if value is not None else None

    async def put_ledger_entry(self, entry: MatchLedgerEntry) -> None:
        await self.kv.set(match_key(entry.match_id), entry.model_dump(mode="json"))
        await self.kv.set(
            group_match_key(entry.group_code, entry.match_id),
            {"group_code": entry.group_code, "match_id": entry.match_id},
        )

    async def delete_ledger_entry(self, match_id: str) -> None:
        entry = await self.get_ledger_entry(match_id)
        if entry is None:
            raise LedgerEntryNotFoundError(match_id)
        await self.kv.delete(group_match_key(entry.group_code, match_id))
        await self.kv.delete(match_key(match_id))

    async def list_ledger_entries(self, group_code: str) -> list[MatchLedgerEntry]:
        """All entries of one group, newest first."""
        # Group codes may contain ':', so the prefix can also catch a longer code
        match_ids = [
            value["match_id"]
            for _, value in await self.kv.get_by_prefix(
                group_match_key(group_code, "")
            )
            if value.get("group_code") == group_code
        ]
        entries = [
            MatchLedgerEntry.model_validate(value)
            for value in (await self.kv.mget(map(match_key, match_ids))).values()
            if value is not None
        ]
        entries.sort(key=lambda e: e.created_at, reverse=True)
        return entries

    async def commit(self, key: str) -> None:
        await self.kv.commit(key)

    # -------------------------------------------------------------------------
    # Groups (read-only; owned by the group membership service)
    # -------------------------------------------------------------------------

    async def get_group_admins(self, group_code: str) -> list[str]:
        value = await self.kv.get(group_key(group_code))
        if value is None:
            return []
        return list(value.get("admins", []))
