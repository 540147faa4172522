# src/tablerank/exceptions.py

"""Custom exception hierarchy for TableRank.

This module provides a structured exception hierarchy that enables:
1. Proper HTTP status code mapping in API endpoints
2. Detailed error context (match id, player id, mode) for logging and retries
3. Clear distinction between caller mistakes and storage trouble
"""

from __future__ import annotations


class TableRankError(Exception):
    """Base exception for all TableRank errors.

    Attributes:
        message: Human-readable error description
        details: Optional dict with additional context for logging/debugging
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


# =============================================================================
# Resource Not Found Errors (HTTP 404)
# =============================================================================


class ResourceNotFoundError(TableRankError):
    """Base class for resource not found errors."""

    pass


class PlayerNotFoundError(ResourceNotFoundError):
    """Raised when a player profile does not exist."""

    def __init__(self, player_id: str) -> None:
        super().__init__(
            message=f"Player with ID {player_id} not found",
            details={"player_id": player_id},
        )


class ParticipantNotFoundError(ResourceNotFoundError):
    """Raised when a rated participant of a match has no stored rating record.

    The match is rejected as a whole; no participant is updated.
    """

    def __init__(
        self, player_id: str, mode: str, match_id: str | None = None
    ) -> None:
        super().__init__(
            message=f"No {mode} rating record for participant {player_id}",
            details={"player_id": player_id, "mode": mode, "match_id": match_id},
        )


class LedgerEntryNotFoundError(ResourceNotFoundError):
    """Raised when a match ledger entry does not exist.

    This also covers a second delete of the same match: the entry was removed
    together with its reversal, so there is nothing left to reverse.
    """

    def __init__(self, match_id: str) -> None:
        super().__init__(
            message=f"Match with ID {match_id} not found",
            details={"match_id": match_id},
        )


# =============================================================================
# Permission Errors (HTTP 403)
# =============================================================================


class MatchDeletionForbiddenError(TableRankError):
    """Raised when someone other than the recorder or a group admin deletes."""

    def __init__(self, match_id: str, player_id: str | None) -> None:
        super().__init__(
            message="Only group admins or the match recorder can delete matches",
            details={"match_id": match_id, "player_id": player_id},
        )


# =============================================================================
# Conflict Errors (HTTP 409)
# =============================================================================


class PlayerAlreadyExistsError(TableRankError):
    """Raised when a player profile with the same ID already exists."""

    def __init__(self, player_id: str) -> None:
        super().__init__(
            message=f"Player with ID '{player_id}' already exists",
            details={"player_id": player_id},
        )


# =============================================================================
# Validation Errors (HTTP 422)
# =============================================================================


class ValidationError(TableRankError):
    """Base class for validation errors."""

    pass


class MatchValidationError(ValidationError):
    """Raised when a match submission is missing or has invalid fields."""

    def __init__(self, message: str, **details: object) -> None:
        super().__init__(message=message, details=dict(details))


class DuplicatePlayerError(MatchValidationError):
    """Raised when the same player appears multiple times in a match."""

    def __init__(self, player_ids: list[str]) -> None:
        super().__init__(
            f"Duplicate player(s) in match: {player_ids}",
            duplicate_player_ids=player_ids,
        )


# =============================================================================
# Storage Errors (HTTP 503)
# =============================================================================


class StorageFailureError(TableRankError):
    """Raised when a backing store read or write fails mid-operation.

    The surrounding transaction is rolled back, so the caller may retry.
    """

    retryable = True

    def __init__(self, operation: str, key: str, reason: str) -> None:
        super().__init__(
            message=f"Storage {operation} failed for key {key}: {reason}",
            details={"operation": operation, "key": key, "reason": reason},
        )


# =============================================================================
# Rating Engine Errors (HTTP 500)
# =============================================================================


class RatingEngineError(TableRankError):
    """Base class for rating calculation errors."""

    pass


class RatingCalculationError(RatingEngineError):
    """Raised when rating calculation fails due to invalid data."""

    def __init__(self, message: str, player_id: str | None = None) -> None:
        details = {"player_id": player_id} if player_id else {}
        super().__init__(message=message, details=details)
