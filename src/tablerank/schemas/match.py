# src/tablerank/schemas/match.py

"""Pydantic schemas for match submissions and match ledger entries."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from .common import MatchMode, RatingDeltaRecord, SeriesType

# ===============================================
# == Match Participant Schemas
# ===============================================


class MatchParticipantIn(BaseModel):
    """One slot of a submitted match.

    A slot is either a registered player or a guest:
    - {"player_id": "alice"}: reference to an existing profile
    - {"name": "Cousin Joe", "is_guest": true}: display name only, unrated

    Mode-specific completeness is checked by the match service so that it
    can report errors in the service's own error types.
    """

    player_id: str | None = Field(default=None, description="Registered player ID")
    name: str | None = Field(default=None, description="Display name (guests)")
    is_guest: bool = False


class LedgerParticipant(BaseModel):
    """A participant as frozen into a ledger entry."""

    team: int = Field(..., ge=1, le=2)
    player_id: str | None = None
    name: str | None = None
    is_guest: bool = False
    won: bool

    model_config = ConfigDict(frozen=True)


# ===============================================
# == Match Submission
# ===============================================


class MatchSubmission(BaseModel):
    """
    Properties to receive via API on create.
    This is the main payload for submitting a new match.

    For 1v1 each team holds exactly one participant; for 2v2 exactly two.
    """

    group_code: str = Field(..., min_length=1)
    mode: MatchMode
    series_type: SeriesType = "bo1"

    team1: list[MatchParticipantIn] = Field(default_factory=list)
    team2: list[MatchParticipantIn] = Field(default_factory=list)
    winning_team: int | None = Field(default=None, description="1 or 2")

    # Best-of-3 details. For bo1 these are informational only.
    score1: int = Field(0, ge=0)
    score2: int = Field(0, ge=0)
    game_results: list[int] = Field(default_factory=list)
    is_sweep: bool = False


# ===============================================
# == Match Ledger Entry
# ===============================================


class MatchLedgerEntry(BaseModel):
    """The immutable record of one match and its effect on ratings.

    `deltas` maps each rated participant's player ID to the rating change
    computed when the match was recorded. Guests never appear in it.
    """

    match_id: str
    group_code: str
    mode: MatchMode
    series_type: SeriesType
    winning_team: int = Field(..., ge=1, le=2)
    is_sweep: bool
    multiplier: float

    participants: list[LedgerParticipant]
    deltas: dict[str, RatingDeltaRecord] = Field(default_factory=dict)

    score1: int = 0
    score2: int = 0
    game_results: list[int] = Field(default_factory=list)

    recorded_by: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(frozen=True)

    @property
    def rated_participants(self) -> list[LedgerParticipant]:
        """Participants whose stats this entry changed."""
        return [
            p
            for p in self.participants
            if p.player_id is not None and p.player_id in self.deltas
        ]


class RecordedMatch(BaseModel):
    """Result of recording a match: the persisted entry and its deltas."""

    ledger_entry: MatchLedgerEntry
    computed_deltas: dict[str, RatingDeltaRecord]
