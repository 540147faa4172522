# src/tablerank/rating/elo_engine.py

"""
Elo rating calculations for 1v1 and 2v2 table matches.

Singles use classic Elo with a fixed K-factor. Doubles rate each of the four
players on their own: the expected score is taken against both opponents on a
softer curve (divisor 500) and the K-factor decays with the player's combined
singles + doubles experience.

Everything here is pure. Nothing reads or writes storage.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from tablerank.exceptions import RatingCalculationError

INITIAL_RATING = 1200
K_FACTOR = 32
SWEEP_MULTIPLIER = 1.2

# Logistic divisors for the expected-score curves.
SINGLES_DIVISOR = 400.0
DOUBLES_DIVISOR = 500.0

# Dynamic K-factor: K = K_MAX / (1 + games / K_DECAY_GAMES)
K_MAX = 50.0
K_DECAY_GAMES = 300.0


# ===============================================
# == Result Types
# ===============================================


@dataclass(frozen=True)
class RatingDelta:
    """A single player's rating movement for one match."""

    old_rating: int
    new_rating: int
    change: int

    def __post_init__(self) -> None:
        if self.new_rating != self.old_rating + self.change:
            raise RatingCalculationError(
                f"Inconsistent rating delta: {self.old_rating} + {self.change} "
                f"!= {self.new_rating}"
            )

    @classmethod
    def between(cls, old_rating: int, new_rating: int) -> "RatingDelta":
        return cls(
            old_rating=old_rating,
            new_rating=new_rating,
            change=new_rating - old_rating,
        )


@dataclass(frozen=True)
class PlayerInfo:
    """Rating input for one doubles player."""

    rating: int = INITIAL_RATING
    games_played: int = 0


@dataclass(frozen=True)
class SinglesResult:
    player1: RatingDelta
    player2: RatingDelta


@dataclass(frozen=True)
class DoublesResult:
    team1_player1: RatingDelta
    team1_player2: RatingDelta
    team2_player1: RatingDelta
    team2_player2: RatingDelta

    def team1(self) -> tuple[RatingDelta, RatingDelta]:
        return self.team1_player1, self.team1_player2

    def team2(self) -> tuple[RatingDelta, RatingDelta]:
        return self.team2_player1, self.team2_player2


# ===============================================
# == Expected-Score Model
# ===============================================


def _logistic(player_rating: float, opponent_rating: float, divisor: float) -> float:
    return 1.0 / (1.0 + math.pow(10.0, (opponent_rating - player_rating) / divisor))


def expected_score_1v1(rating_a: float, rating_b: float) -> float:
    """Probability that A beats B: 1 / (1 + 10^((b - a) / 400))."""
    return _logistic(rating_a, rating_b, SINGLES_DIVISOR)


def expected_score_team(
    player_rating: float, opponent1_rating: float, opponent2_rating: float
) -> float:
    """
    Expected score of one doubles player against an opposing pair.

    This is the mean of the player's individual expected score against each
    opponent, using divisor 500 instead of 400.
    """
    e1 = _logistic(player_rating, opponent1_rating, DOUBLES_DIVISOR)
    e2 = _logistic(player_rating, opponent2_rating, DOUBLES_DIVISOR)
    return (e1 + e2) / 2


def k_factor(games_played: int) -> float:
    """Dynamic K-factor: 50 for a new player, halving by 300 games played."""
    if games_played < 0:
        raise RatingCalculationError(
            f"games_played must be non-negative, got {games_played}"
        )
    return K_MAX / (1 + games_played / K_DECAY_GAMES)


def round_rating(value: float) -> int:
    """Round half up, so x.5 always moves toward +infinity."""
    return math.floor(value + 0.5)


# ===============================================
# == Sweep Multiplier Policy
# ===============================================


def sweep_multiplier(series_type: str, is_sweep: bool) -> float:
    """1.2 for a best-of-3 won 2-0, 1.0 for everything else."""
    if series_type == "bo3" and is_sweep:
        return SWEEP_MULTIPLIER
    return 1.0


# ===============================================
# == Rating Delta Calculators
# ===============================================


def calculate_1v1_changes(
    rating_a: int,
    rating_b: int,
    a_won: bool,
    multiplier: float = 1.0,
    k: float = K_FACTOR,
) -> SinglesResult:
    """
    Calculates new singles ratings for both players.

    Each new rating is rounded on its own, so the winner's gain and the
    loser's loss are not guaranteed to be exact negatives of each other.
    """
    expected_a = expected_score_1v1(rating_a, rating_b)
    expected_b = 1 - expected_a

    actual_a = 1.0 if a_won else 0.0
    actual_b = 1 - actual_a

    new_a = round_rating(rating_a + k * (actual_a - expected_a) * multiplier)
    new_b = round_rating(rating_b + k * (actual_b - expected_b) * multiplier)

    return SinglesResult(
        player1=RatingDelta.between(rating_a, new_a),
        player2=RatingDelta.between(rating_b, new_b),
    )


def _rate_doubles_player(
    player: PlayerInfo,
    opponents: tuple[PlayerInfo, PlayerInfo],
    actual: float,
    multiplier: float,
) -> RatingDelta:
    expected = expected_score_team(
        player.rating, opponents[0].rating, opponents[1].rating
    )
    k = k_factor(player.games_played)
    new_rating = round_rating(player.rating + k * multiplier * (actual - expected))
    return RatingDelta.between(player.rating, new_rating)


def calculate_2v2_changes(
    team1: tuple[PlayerInfo, PlayerInfo],
    team2: tuple[PlayerInfo, PlayerInfo],
    team1_won: bool,
    multiplier: float = 1.0,
) -> DoublesResult:
    """
    Calculates new doubles ratings for all four players independently.

    Teammates share the result (1 for the winners, 0 for the losers) but each
    moves by their own K-factor and their own expected score against the
    specific pair they faced. The four changes need not sum to zero.
    """
    actual_team1 = 1.0 if team1_won else 0.0
    actual_team2 = 1 - actual_team1

    return DoublesResult(
        team1_player1=_rate_doubles_player(team1[0], team2, actual_team1, multiplier),
        team1_player2=_rate_doubles_player(team1[1], team2, actual_team1, multiplier),
        team2_player1=_rate_doubles_player(team2[0], team1, actual_team2, multiplier),
        team2_player2=_rate_doubles_player(team2[1], team1, actual_team2, multiplier),
    )
