# src/tablerank/rating/ledger_builder.py

"""Builds the immutable ledger entry for a submitted match.

The builder runs the rating calculator exactly once against the profiles
read before any write, then freezes each rated player's old and new rating
into the entry. Later reversal relies only on what is frozen here.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Mapping

from tablerank.exceptions import MatchValidationError, ParticipantNotFoundError
from tablerank.schemas.common import RatingDeltaRecord
from tablerank.schemas.match import LedgerParticipant, MatchLedgerEntry, MatchSubmission
from tablerank.schemas.player import PlayerProfile

from .elo_engine import (
    PlayerInfo,
    RatingDelta,
    calculate_1v1_changes,
    calculate_2v2_changes,
    sweep_multiplier,
)

logger = logging.getLogger(__name__)


def ledger_participants(submission: MatchSubmission) -> list[LedgerParticipant]:
    """Flatten both teams into ledger slots, marking which side won."""
    participants = []
    for team_number, team in ((1, submission.team1), (2, submission.team2)):
        for slot in team:
            participants.append(
                LedgerParticipant(
                    team=team_number,
                    player_id=None if slot.is_guest else slot.player_id,
                    name=slot.name or slot.player_id,
                    is_guest=slot.is_guest,
                    won=submission.winning_team == team_number,
                )
            )
    return participants


def _profile_for(
    participant: LedgerParticipant,
    profiles: Mapping[str, PlayerProfile | None],
    submission: MatchSubmission,
    match_id: str,
) -> PlayerProfile:
    assert participant.player_id is not None
    profile = profiles.get(participant.player_id)
    if profile is None:
        raise ParticipantNotFoundError(participant.player_id, submission.mode, match_id)
    return profile


def compute_deltas(
    submission: MatchSubmission,
    participants: list[LedgerParticipant],
    profiles: Mapping[str, PlayerProfile | None],
    multiplier: float,
    match_id: str,
) -> dict[str, RatingDelta]:
    """
    Dispatch to the 1v1 or 2v2 calculator.

    A match with any guest in it is unrated: guests have no rating, and the
    calculators need every slot filled with a rated player.
    """
    if any(p.is_guest for p in participants):
        logger.info(
            "Match includes a guest, skipping rating calculation",
            extra={"match_id": match_id},
        )
        return {}

    team1 = [p for p in participants if p.team == 1]
    team2 = [p for p in participants if p.team == 2]
    team1_won = submission.winning_team == 1

    if submission.mode == "1v1":
        p1 = _profile_for(team1[0], profiles, submission, match_id)
        p2 = _profile_for(team2[0], profiles, submission, match_id)
        singles = calculate_1v1_changes(
            p1.singles.rating, p2.singles.rating, team1_won, multiplier
        )
        return {p1.id: singles.player1, p2.id: singles.player2}

    t1 = [_profile_for(p, profiles, submission, match_id) for p in team1]
    t2 = [_profile_for(p, profiles, submission, match_id) for p in team2]

    def info(profile: PlayerProfile) -> PlayerInfo:
        return PlayerInfo(
            rating=profile.doubles.rating, games_played=profile.games_played
        )

    doubles = calculate_2v2_changes(
        (info(t1[0]), info(t1[1])),
        (info(t2[0]), info(t2[1])),
        team1_won,
        multiplier,
    )
    return {
        t1[0].id: doubles.team1_player1,
        t1[1].id: doubles.team1_player2,
        t2[0].id: doubles.team2_player1,
        t2[1].id: doubles.team2_player2,
    }


def build_ledger_entry(
    submission: MatchSubmission,
    profiles: Mapping[str, PlayerProfile | None],
    match_id: str,
    recorded_by: str | None = None,
    created_at: datetime | None = None,
) -> MatchLedgerEntry:
    """Compute the match's rating deltas and freeze them into a ledger entry."""
    if submission.winning_team not in (1, 2):
        raise MatchValidationError(
            "Winning team must be 1 or 2",
            match_id=match_id,
            winning_team=submission.winning_team,
        )
    is_sweep = submission.series_type == "bo3" and submission.is_sweep
    multiplier = sweep_multiplier(submission.series_type, is_sweep)
    participants = ledger_participants(submission)

    deltas = compute_deltas(submission, participants, profiles, multiplier, match_id)

    extra = {} if created_at is None else {"created_at": created_at}
    entry = MatchLedgerEntry(
        match_id=match_id,
        group_code=submission.group_code,
        mode=submission.mode,
        series_type=submission.series_type,
        winning_team=submission.winning_team,
        is_sweep=is_sweep,
        multiplier=multiplier,
        participants=participants,
        deltas={
            pid: RatingDeltaRecord.model_validate(delta)
            for pid, delta in deltas.items()
        },
        score1=submission.score1,
        score2=submission.score2,
        game_results=list(submission.game_results),
        recorded_by=recorded_by,
        **extra,
    )
    logger.debug(
        "Built ledger entry",
        extra={"match_id": match_id, "mode": entry.mode, "multiplier": multiplier},
    )
    return entry
