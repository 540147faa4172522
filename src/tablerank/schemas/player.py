# src/tablerank/schemas/player.py

"""Pydantic schemas for the player profile resource."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .common import PlayerRatingState, RatingMode


# ===============================================
# Base Schema: Defines shared attributes for creation
# ===============================================
class PlayerBase(BaseModel):
    """Shared properties for a player."""

    name: str = Field(..., min_length=1, max_length=100)


# ===============================================
# Create Schema: The identity comes from the auth collaborator
# ===============================================
class PlayerCreate(PlayerBase):
    """Properties to receive via API on create."""

    id: str = Field(
        ...,
        min_length=1,
        max_length=64,
        pattern=r"^[A-Za-z0-9_.@-]+$",
        description="Opaque player identifier issued by the identity service",
    )


# ===============================================
# Stored profile: one key-value record per player
# ===============================================
class PlayerProfile(PlayerBase):
    """A player's stored profile, holding one rating state per mode."""

    id: str
    singles: PlayerRatingState = Field(default_factory=PlayerRatingState)
    doubles: PlayerRatingState = Field(default_factory=PlayerRatingState)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(frozen=True)

    def state_for(self, mode: RatingMode) -> PlayerRatingState:
        return self.singles if mode == "singles" else self.doubles

    def with_state(self, mode: RatingMode, state: PlayerRatingState) -> "PlayerProfile":
        """Return a copy of this profile with one mode's state replaced."""
        return self.model_copy(update={mode: state})

    @property
    def games_played(self) -> int:
        """Combined singles + doubles games, the experience signal for K."""
        return self.singles.games_played + self.doubles.games_played


# ===============================================
# Read Schema: Defines attributes for returning data
# ===============================================
class PlayerRead(PlayerBase):
    """Properties to return to the client."""

    id: str
    singles: PlayerRatingState
    doubles: PlayerRatingState
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def games_played(self) -> int:
        return self.singles.games_played + self.doubles.games_played
