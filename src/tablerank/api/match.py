# src/tablerank/api/match.py

"""API endpoints for recording, reading and deleting matches."""

from fastapi import APIRouter, Depends, Header, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from tablerank.db.session import get_db
from tablerank.schemas import match as match_schema
from tablerank.schemas.pagination import PaginatedResponse
from tablerank.services import match_service

router = APIRouter(prefix="/matches", tags=["Matches"])


@router.get("/", response_model=PaginatedResponse[match_schema.MatchLedgerEntry])
async def read_matches(
    group_code: str = Query(..., min_length=1, description="Group to list"),
    skip: int = Query(0, ge=0, description="Records to skip"),
    limit: int = Query(50, ge=1, le=100, description="Max records to return"),
    db: AsyncSession = Depends(get_db),
) -> PaginatedResponse[match_schema.MatchLedgerEntry]:
    """
    Retrieve a paginated list of a group's matches, newest first.

    - **group_code**: The group whose matches to list
    - **skip**: Number of records to skip (for pagination)
    - **limit**: Maximum number of records to return (1-100)
    """
    items, total = await match_service.list_matches(db, group_code, skip, limit)
    return PaginatedResponse(
        items=items,
        total=total,
        skip=skip,
        limit=limit,
        has_more=(skip + len(items)) < total,
    )


@router.post(
    "/", response_model=match_schema.RecordedMatch, status_code=status.HTTP_201_CREATED
)
async def create_match(
    submission: match_schema.MatchSubmission,
    player_id: str | None = Header(None, alias="X-Player-ID"),
    db: AsyncSession = Depends(get_db),
) -> match_schema.RecordedMatch:
    """
    Record a match, apply its rating changes and return the ledger entry.

    The `X-Player-ID` header names the recorder; only the recorder or a
    group admin can delete the match later.

    Raises:
        404: If a registered participant has no profile
        422: If mode-specific fields are missing or invalid
        503: If storage failed mid-operation (safe to retry)
    """
    return await match_service.record_match(db, submission, recorded_by=player_id)


@router.get("/{match_id}", response_model=match_schema.MatchLedgerEntry)
async def read_match(
    match_id: str, db: AsyncSession = Depends(get_db)
) -> match_schema.MatchLedgerEntry:
    """
    Retrieve a single match ledger entry, including its frozen rating deltas.
    """
    return await match_service.get_match(db, match_id)


@router.delete("/{match_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_match(
    match_id: str,
    player_id: str | None = Header(None, alias="X-Player-ID"),
    db: AsyncSession = Depends(get_db),
) -> None:
    """
    Delete a match and restore every participant's rating and record.

    Raises:
        403: If the requester is neither the recorder nor a group admin
        404: If the match does not exist (including an already deleted one)
    """
    await match_service.delete_match(db, match_id, requesting_player_id=player_id)
