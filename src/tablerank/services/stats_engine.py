# src/tablerank/services/stats_engine.py

"""Applies a ledger entry's effects to player records, and reverses them.

Both directions work in two phases: first every participant profile is read
and every new state computed, then the new profiles are written. A missing
profile therefore fails the operation before anything is written. Writes go
through the caller's session and only become visible when the caller commits.
"""

from __future__ import annotations

import logging
from typing import Mapping

from tablerank.db.rating_store import RatingStore
from tablerank.exceptions import ParticipantNotFoundError, RatingCalculationError
from tablerank.schemas.common import (
    MODE_TO_RATING_MODE,
    PlayerRatingState,
    RatingDeltaRecord,
)
from tablerank.schemas.match import MatchLedgerEntry
from tablerank.schemas.player import PlayerProfile

logger = logging.getLogger(__name__)


# ===============================================
# == Single-state transitions
# ===============================================


def apply_result(
    state: PlayerRatingState, delta: RatingDeltaRecord, won: bool
) -> PlayerRatingState:
    """Count the result and move the rating to the delta's new rating."""
    return PlayerRatingState(
        rating=delta.new_rating,
        wins=state.wins + (1 if won else 0),
        losses=state.losses + (0 if won else 1),
    )


def reverse_result(
    state: PlayerRatingState, delta: RatingDeltaRecord, won: bool
) -> PlayerRatingState:
    """
    Undo apply_result: uncount the result and restore the stored old rating.

    Counters are clamped at zero; a negative count would mean an earlier
    apply was lost, and clamping keeps the record valid.
    """
    return PlayerRatingState(
        rating=delta.old_rating,
        wins=max(0, state.wins - (1 if won else 0)),
        losses=max(0, state.losses - (0 if won else 1)),
    )


# ===============================================
# == Whole-entry apply / reverse
# ===============================================


async def _load_profiles(
    store: RatingStore,
    entry: MatchLedgerEntry,
    snapshot: Mapping[str, PlayerProfile | None] | None,
) -> dict[str, PlayerProfile]:
    profiles: dict[str, PlayerProfile] = {}
    for participant in entry.rated_participants:
        pid = participant.player_id
        assert pid is not None
        if snapshot is not None and pid in snapshot:
            profile = snapshot[pid]
        else:
            profile = await store.get_player_profile(pid)
        if profile is None:
            raise ParticipantNotFoundError(pid, entry.mode, entry.match_id)
        profiles[pid] = profile
    return profiles


async def apply_ledger_entry(
    store: RatingStore,
    entry: MatchLedgerEntry,
    snapshot: Mapping[str, PlayerProfile | None] | None = None,
) -> dict[str, PlayerProfile]:
    """
    Write the entry's results to every rated participant's profile.

    `snapshot` holds the profiles the deltas were computed from. Each
    participant's current rating must still equal the delta's old rating;
    anything else means the snapshot went stale and the deltas are unsafe.

    Returns the updated profiles keyed by player ID.
    """
    mode = MODE_TO_RATING_MODE[entry.mode]
    profiles = await _load_profiles(store, entry, snapshot)

    updated: dict[str, PlayerProfile] = {}
    for participant in entry.rated_participants:
        pid = participant.player_id
        assert pid is not None
        profile = profiles[pid]
        delta = entry.deltas[pid]
        state = profile.state_for(mode)
        if state.rating != delta.old_rating:
            raise RatingCalculationError(
                f"Rating for {pid} changed from {delta.old_rating} to "
                f"{state.rating} before match {entry.match_id} was applied",
                player_id=pid,
            )
        updated[pid] = profile.with_state(
            mode, apply_result(state, delta, participant.won)
        )

    for profile in updated.values():
        await store.put_player_profile(profile)

    logger.info(
        "Applied match stats",
        extra={"match_id": entry.match_id, "players": sorted(updated)},
    )
    return updated


async def reverse_ledger_entry(
    store: RatingStore, entry: MatchLedgerEntry
) -> dict[str, PlayerProfile]:
    """
    Undo the entry's results on every rated participant's profile.

    Ratings are restored from the old ratings frozen in the entry, never
    recomputed. Returns the updated profiles keyed by player ID.
    """
    mode = MODE_TO_RATING_MODE[entry.mode]
    profiles = await _load_profiles(store, entry, None)

    updated: dict[str, PlayerProfile] = {}
    for participant in entry.rated_participants:
        pid = participant.player_id
        assert pid is not None
        profile = profiles[pid]
        delta = entry.deltas[pid]
        state = profile.state_for(mode)
        if state.rating != delta.new_rating:
            # A later match of this player was applied on top of this one.
            logger.warning(
                "Reversing match that is not the player's latest",
                extra={
                    "match_id": entry.match_id,
                    "player_id": pid,
                    "current_rating": state.rating,
                    "restored_rating": delta.old_rating,
                },
            )
        updated[pid] = profile.with_state(
            mode, reverse_result(state, delta, participant.won)
        )

    for profile in updated.values():
        await store.put_player_profile(profile)

    logger.info(
        "Reversed match stats",
        extra={"match_id": entry.match_id, "players": sorted(updated)},
    )
    return updated
