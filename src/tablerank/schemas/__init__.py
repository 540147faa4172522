# src/tablerank/schemas/__init__.py

"""Pydantic schemas for API validation, serialization and storage."""

from .common import (
    MODE_TO_RATING_MODE,
    MatchMode,
    PlayerRatingState,
    RatingDeltaRecord,
    RatingMode,
    SeriesType,
)
from .match import (
    LedgerParticipant,
    MatchLedgerEntry,
    MatchParticipantIn,
    MatchSubmission,
    RecordedMatch,
)
from .pagination import PaginatedResponse
from .player import PlayerBase, PlayerCreate, PlayerProfile, PlayerRead

__all__ = [
    # Common
    "MODE_TO_RATING_MODE",
    "MatchMode",
    "PlayerRatingState",
    "RatingDeltaRecord",
    "RatingMode",
    "SeriesType",
    # Match
    "LedgerParticipant",
    "MatchLedgerEntry",
    "MatchParticipantIn",
    "MatchSubmission",
    "RecordedMatch",
    # Pagination
    "PaginatedResponse",
    # Player
    "PlayerBase",
    "PlayerCreate",
    "PlayerProfile",
    "PlayerRead",
]
