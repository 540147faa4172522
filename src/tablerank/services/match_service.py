# src/tablerank/services/match_service.py

"""Business logic for recording and deleting matches."""

from __future__ import annotations

import logging
import time
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from tablerank.db.rating_store import RatingStore, match_key, player_key
from tablerank.exceptions import (
    DuplicatePlayerError,
    LedgerEntryNotFoundError,
    MatchDeletionForbiddenError,
    MatchValidationError,
    ParticipantNotFoundError,
)
from tablerank.rating.ledger_builder import build_ledger_entry
from tablerank.schemas.match import (
    MatchLedgerEntry,
    MatchParticipantIn,
    MatchSubmission,
    RecordedMatch,
)
from tablerank.services.locks import KeyedLockManager
from tablerank.services.stats_engine import apply_ledger_entry, reverse_ledger_entry

logger = logging.getLogger(__name__)

# Players per team for each mode.
TEAM_SIZE = {"1v1": 1, "2v2": 2}

# Shared by every request handled by this process.
match_locks = KeyedLockManager()


def _new_match_id() -> str:
    return f"match_{int(time.time() * 1000)}_{uuid.uuid4().hex[:12]}"


# =============================================================================
# Validation
# =============================================================================


def _validate_slot(slot: MatchParticipantIn, team: int, index: int) -> None:
    if slot.is_guest:
        if not (slot.name or slot.player_id):
            raise MatchValidationError(
                f"Guest in team {team} slot {index} needs a name",
                team=team,
                slot=index,
            )
    elif not slot.player_id:
        raise MatchValidationError(
            f"Missing player for team {team} slot {index}", team=team, slot=index
        )


def _validate_series(submission: MatchSubmission) -> None:
    """
    Checks a best-of-3 series score, when one is given, against the outcome.

    A finished bo3 has the winner on 2 games and the loser on 0 or 1; a sweep
    is exactly 2-0.
    """
    if submission.series_type != "bo3":
        return
    scores = {1: submission.score1, 2: submission.score2}
    if scores[1] == 0 and scores[2] == 0:
        return

    winner = submission.winning_team
    loser = 2 if winner == 1 else 1
    if scores[winner] != 2 or scores[loser] not in (0, 1):
        raise MatchValidationError(
            f"Best of 3 score {scores[1]}-{scores[2]} does not match "
            f"team {winner} winning",
            score1=scores[1],
            score2=scores[2],
            winning_team=winner,
        )
    if submission.is_sweep != (scores[loser] == 0):
        raise MatchValidationError(
            f"Sweep flag does not match series score {scores[1]}-{scores[2]}",
            is_sweep=submission.is_sweep,
        )


def validate_submission(submission: MatchSubmission) -> None:
    """
    Validates mode-specific required fields before any calculation.

    Raises:
        MatchValidationError: If a slot is missing, the team sizes do not fit
            the mode, the winning side is missing, or a bo3 score is invalid
        DuplicatePlayerError: If the same registered player fills two slots
    """
    size = TEAM_SIZE[submission.mode]
    for team_number, team in ((1, submission.team1), (2, submission.team2)):
        if len(team) != size:
            raise MatchValidationError(
                f"A {submission.mode} match needs {size} player(s) per team, "
                f"team {team_number} has {len(team)}",
                mode=submission.mode,
                team=team_number,
                count=len(team),
            )
        for index, slot in enumerate(team, start=1):
            _validate_slot(slot, team_number, index)

    if submission.winning_team not in (1, 2):
        raise MatchValidationError(
            "Winning team must be 1 or 2", winning_team=submission.winning_team
        )

    seen: set[str] = set()
    duplicates: list[str] = []
    for slot in [*submission.team1, *submission.team2]:
        if slot.is_guest or slot.player_id is None:
            continue
        if slot.player_id in seen:
            duplicates.append(slot.player_id)
        seen.add(slot.player_id)
    if duplicates:
        raise DuplicatePlayerError(sorted(set(duplicates)))

    _validate_series(submission)


def _has_guest(submission: MatchSubmission) -> bool:
    return any(slot.is_guest for slot in [*submission.team1, *submission.team2])


def _registered_player_ids(submission: MatchSubmission) -> list[str]:
    return [
        slot.player_id
        for slot in [*submission.team1, *submission.team2]
        if not slot.is_guest and slot.player_id is not None
    ]


# =============================================================================
# Record / delete
# =============================================================================


async def record_match(
    db: AsyncSession,
    submission: MatchSubmission,
    recorded_by: str | None = None,
) -> RecordedMatch:
    """
    Records a new match.

    This service is responsible for:
    1. Validating the submission (rejected before any calculation)
    2. Locking every registered participant
    3. Reading all participant profiles as one snapshot
    4. Building the ledger entry (deltas frozen in)
    5. Applying the stats and persisting the entry

    Steps 4-5 run in one transaction. If any step fails the transaction is
    rolled back, so neither the stats nor the entry survive.

    Raises:
        MatchValidationError: If required fields are missing or invalid
        DuplicatePlayerError: If the same player appears multiple times
        ParticipantNotFoundError: If a player in a rated match has no profile
        StorageFailureError: If the store fails mid-operation (retryable)
    """
    validate_submission(submission)

    match_id = _new_match_id()
    player_ids = _registered_player_ids(submission)
    logger.info(
        "Recording match",
        extra={
            "match_id": match_id,
            "mode": submission.mode,
            "group_code": submission.group_code,
            "player_ids": player_ids,
        },
    )

    async with match_locks.hold(*(player_key(pid) for pid in player_ids)):
        try:
            store = RatingStore(db)
            snapshot = await store.get_player_profiles(player_ids)
            # Guest matches are unrated, so their registered players need no profile
            if not _has_guest(submission):
                for pid, profile in snapshot.items():
                    if profile is None:
                        raise ParticipantNotFoundError(
                            pid, submission.mode, match_id
                        )

            entry = build_ledger_entry(
                submission, snapshot, match_id, recorded_by=recorded_by
            )
            await apply_ledger_entry(store, entry, snapshot)
            await store.put_ledger_entry(entry)

            await store.commit(match_key(match_id))
        except Exception as e:
            logger.error(
                "Failed to record match",
                extra={"match_id": match_id, "mode": submission.mode, "error": str(e)},
                exc_info=True,
            )
            await db.rollback()
            raise

    logger.info("Match recorded successfully", extra={"match_id": match_id})
    return RecordedMatch(ledger_entry=entry, computed_deltas=dict(entry.deltas))


async def _check_delete_permission(
    store: RatingStore, entry: MatchLedgerEntry, requesting_player_id: str | None
) -> None:
    if requesting_player_id is not None:
        if entry.recorded_by == requesting_player_id:
            return
        if requesting_player_id in await store.get_group_admins(entry.group_code):
            return
    raise MatchDeletionForbiddenError(entry.match_id, requesting_player_id)


async def delete_match(
    db: AsyncSession, match_id: str, requesting_player_id: str | None
) -> None:
    """
    Deletes a match and reverses its effect on every rated participant.

    The match and all of its participants are locked together. The entry is
    re-read under the lock, so a second delete of the same match finds
    nothing and is rejected instead of reversing twice.

    Raises:
        LedgerEntryNotFoundError: If the match does not exist (or is gone)
        MatchDeletionForbiddenError: If the requester may not delete it
        ParticipantNotFoundError: If a participant's profile is missing
        StorageFailureError: If the store fails mid-operation (retryable)
    """
    store = RatingStore(db)
    entry = await store.get_ledger_entry(match_id)
    if entry is None:
        raise LedgerEntryNotFoundError(match_id)

    lock_keys = [match_key(match_id)] + [
        player_key(p.player_id)
        for p in entry.rated_participants
        if p.player_id is not None
    ]
    logger.info(
        "Deleting match",
        extra={"match_id": match_id, "requested_by": requesting_player_id},
    )

    async with match_locks.hold(*lock_keys):
        try:
            entry = await store.get_ledger_entry(match_id)
            if entry is None:
                raise LedgerEntryNotFoundError(match_id)
            await _check_delete_permission(store, entry, requesting_player_id)

            await reverse_ledger_entry(store, entry)
            await store.delete_ledger_entry(match_id)

            await store.commit(match_key(match_id))
        except Exception as e:
            logger.error(
                "Failed to delete match",
                extra={"match_id": match_id, "error": str(e)},
                exc_info=True,
            )
            await db.rollback()
            raise

    logger.info("Match deleted successfully", extra={"match_id": match_id})


async def get_match(db: AsyncSession, match_id: str) -> MatchLedgerEntry:
    entry = await RatingStore(db).get_ledger_entry(match_id)
    if entry is None:
        raise LedgerEntryNotFoundError(match_id)
    return entry


async def list_matches(
    db: AsyncSession, group_code: str, skip: int = 0, limit: int = 50
) -> tuple[list[MatchLedgerEntry], int]:
    """Returns one page of a group's matches (newest first) and the total."""
    entries = await RatingStore(db).list_ledger_entries(group_code)
    return entries[skip : skip + limit], len(entries)
