# src/tablerank/schemas/common.py

"""Common Pydantic schemas used across multiple resources."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from tablerank.rating.elo_engine import INITIAL_RATING

MatchMode = Literal["1v1", "2v2"]
RatingMode = Literal["singles", "doubles"]
SeriesType = Literal["bo1", "bo3"]

# Which per-mode rating state a match mode reads and writes.
MODE_TO_RATING_MODE: dict[str, RatingMode] = {"1v1": "singles", "2v2": "doubles"}


class PlayerRatingState(BaseModel):
    """A player's rating and record in one mode.

    Instances are frozen: applying or reversing a match produces a new
    state instead of mutating this one.

    Attributes:
        rating: Elo rating (default: 1200). No floor is enforced.
        wins: Matches won in this mode
        losses: Matches lost in this mode
    """

    rating: int = Field(INITIAL_RATING, description="Elo rating")
    wins: int = Field(0, ge=0, description="Matches won")
    losses: int = Field(0, ge=0, description="Matches lost")

    model_config = ConfigDict(frozen=True)

    @property
    def games_played(self) -> int:
        return self.wins + self.losses


class RatingDeltaRecord(BaseModel):
    """A frozen rating change as stored inside a match ledger entry.

    The old rating is kept so that deleting the match can restore it
    directly instead of inverting the (rounded) forward formula.
    """

    old_rating: int
    new_rating: int
    change: int

    model_config = ConfigDict(frozen=True, from_attributes=True)

    @model_validator(mode="after")
    def _check_consistency(self) -> "RatingDeltaRecord":
        if self.new_rating != self.old_rating + self.change:
            raise ValueError("new_rating must equal old_rating + change")
        return self
