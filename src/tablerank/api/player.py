# src/tablerank/api/player.py

"""API endpoints for managing player profiles."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from tablerank.db.session import get_db
from tablerank.exceptions import PlayerAlreadyExistsError
from tablerank.schemas import player as player_schema
from tablerank.schemas.player import PlayerProfile
from tablerank.services import player_service

# - prefix="/players": All routes here will be prefixed with /players
# - tags=["Players"]: Groups these endpoints under "Players" in the API docs
router = APIRouter(prefix="/players", tags=["Players"])


@router.post(
    "/",
    response_model=player_schema.PlayerRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_player(
    player_in: player_schema.PlayerCreate, db: AsyncSession = Depends(get_db)
) -> PlayerProfile:
    """
    Create a new player profile.

    - **id**: The identifier issued by the identity service.
    - **name**: Display name.

    Both singles and doubles start at 1200 with a 0-0 record.

    Raises:
        409 Conflict: If a profile with the same ID already exists.
    """
    try:
        return await player_service.create_player(db, player_in)
    except PlayerAlreadyExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)


@router.get("/{player_id}", response_model=player_schema.PlayerRead)
async def read_player(
    player_id: str, db: AsyncSession = Depends(get_db)
) -> PlayerProfile:
    """
    Retrieve a single player profile with its singles and doubles ratings.
    """
    return await player_service.get_player(db, player_id)
