# src/tablerank/services/player_service.py

"""Business logic for player profiles."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from tablerank.db.rating_store import RatingStore, player_key
from tablerank.exceptions import PlayerAlreadyExistsError, PlayerNotFoundError
from tablerank.schemas.player import PlayerCreate, PlayerProfile
from tablerank.services.match_service import match_locks

logger = logging.getLogger(__name__)


async def create_player(db: AsyncSession, player_in: PlayerCreate) -> PlayerProfile:
    """
    Creates a profile with fresh singles and doubles ratings.

    Raises:
        PlayerAlreadyExistsError: If a profile with this ID already exists.
    """
    store = RatingStore(db)
    async with match_locks.hold(player_key(player_in.id)):
        try:
            if await store.get_player_profile(player_in.id) is not None:
                raise PlayerAlreadyExistsError(player_in.id)
            profile = PlayerProfile(id=player_in.id, name=player_in.name)
            await store.put_player_profile(profile)
            await store.commit(player_key(player_in.id))
        except Exception:
            await db.rollback()
            raise

    logger.info("Created player profile", extra={"player_id": profile.id})
    return profile


async def get_player(db: AsyncSession, player_id: str) -> PlayerProfile:
    profile = await RatingStore(db).get_player_profile(player_id)
    if profile is None:
        raise PlayerNotFoundError(player_id)
    return profile
