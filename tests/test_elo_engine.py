# tests/test_elo_engine.py

"""Unit tests for the Elo rating calculations."""

import pytest
from tablerank.exceptions import RatingCalculationError
from tablerank.rating.elo_engine import (
    INITIAL_RATING,
    PlayerInfo,
    RatingDelta,
    calculate_1v1_changes,
    calculate_2v2_changes,
    expected_score_1v1,
    expected_score_team,
    k_factor,
    round_rating,
    sweep_multiplier,
)

# =============================================================================
# Expected Score
# =============================================================================


def test_expected_score_equal_ratings_is_half():
    assert expected_score_1v1(1200, 1200) == pytest.approx(0.5)


def test_expected_scores_of_both_players_sum_to_one():
    """A's and B's expected scores are complementary."""
    for a, b in [(1200, 1400), (1500, 900), (-50, 300)]:
        assert expected_score_1v1(a, b) + expected_score_1v1(b, a) == pytest.approx(
            1.0
        )


def test_expected_score_400_points_is_ten_to_one():
    """A 400 point lead means 10:1 odds on the singles curve."""
    assert expected_score_1v1(1600, 1200) == pytest.approx(10 / 11)


def test_expected_score_team_averages_both_opponents():
    """Opponents 100 above and 100 below cancel out to an even match."""
    assert expected_score_team(1300, 1200, 1400) == pytest.approx(0.5)
    assert expected_score_team(1200, 1200, 1200) == pytest.approx(0.5)


def test_expected_score_team_uses_softer_curve():
    """The doubles curve (divisor 500) is flatter than the singles one."""
    singles = expected_score_1v1(1400, 1200)
    doubles = expected_score_team(1400, 1200, 1200)

    assert 0.5 < doubles < singles
    assert doubles == pytest.approx(1 / (1 + 10 ** (-200 / 500)))


# =============================================================================
# K-Factor and Rounding
# =============================================================================


def test_k_factor_decays_with_games_played():
    assert k_factor(0) == pytest.approx(50.0)
    assert k_factor(300) == pytest.approx(25.0)
    assert k_factor(600) == pytest.approx(50 / 3)
    assert k_factor(10) > k_factor(11)


def test_k_factor_rejects_negative_games():
    with pytest.raises(RatingCalculationError):
        k_factor(-1)


def test_round_rating_rounds_half_up():
    """Halves round toward +infinity, including negative ones."""
    assert round_rating(2.5) == 3
    assert round_rating(-2.5) == -2
    assert round_rating(1215.4999) == 1215
    assert round_rating(1183.5) == 1184


# =============================================================================
# Sweep Multiplier
# =============================================================================


@pytest.mark.parametrize(
    "series_type, is_sweep, expected",
    [
        ("bo3", True, 1.2),
        ("bo3", False, 1.0),
        ("bo1", True, 1.0),
        ("bo1", False, 1.0),
    ],
)
def test_sweep_multiplier(series_type, is_sweep, expected):
    assert sweep_multiplier(series_type, is_sweep) == expected


# =============================================================================
# 1v1
# =============================================================================


def test_1v1_equal_ratings_winner_gains_16():
    """1200 vs 1200 with K=32: the winner moves to 1216, the loser to 1184."""
    result = calculate_1v1_changes(1200, 1200, a_won=True)

    assert result.player1 == RatingDelta(old_rating=1200, new_rating=1216, change=16)
    assert result.player2 == RatingDelta(old_rating=1200, new_rating=1184, change=-16)


def test_1v1_second_player_wins():
    result = calculate_1v1_changes(1200, 1200, a_won=False)

    assert result.player1.new_rating == 1184
    assert result.player2.new_rating == 1216


def test_1v1_favorite_gains_less_than_underdog():
    """A 1400 favorite gains about 8 for a win and loses about 24 to an upset."""
    favorite_wins = calculate_1v1_changes(1400, 1200, a_won=True)
    upset = calculate_1v1_changes(1400, 1200, a_won=False)

    assert favorite_wins.player1.new_rating == 1408
    assert favorite_wins.player2.new_rating == 1192
    assert upset.player1.new_rating == 1376
    assert upset.player2.new_rating == 1224


def test_1v1_sweep_multiplier_scales_the_change():
    """A bo3 sweep multiplies the raw change by 1.2 before rounding."""
    result = calculate_1v1_changes(1200, 1200, a_won=True, multiplier=1.2)

    # 32 * 0.5 * 1.2 = 19.2
    assert result.player1.new_rating == 1219
    assert result.player2.new_rating == 1181


def test_1v1_changes_are_near_symmetric():
    """Each side is rounded on its own, so the sum is within one point of zero."""
    for a, b in [(1200, 1200), (1437, 1211), (980, 1605), (-100, 40)]:
        for a_won in (True, False):
            result = calculate_1v1_changes(a, b, a_won)
            assert abs(result.player1.change + result.player2.change) <= 1


def test_1v1_winner_never_loses_rating():
    for a, b in [(3000, 100), (100, 3000), (1200, 1201)]:
        result = calculate_1v1_changes(a, b, a_won=True)
        assert result.player1.change >= 0
        assert result.player2.change <= 0


def test_1v1_allows_negative_ratings():
    """No floor is enforced by the calculator."""
    result = calculate_1v1_changes(-20, 1800, a_won=False)

    assert result.player1.old_rating == -20
    assert result.player1.new_rating <= -20


def test_1v1_is_deterministic():
    first = calculate_1v1_changes(1333, 1287, a_won=True, multiplier=1.2)
    second = calculate_1v1_changes(1333, 1287, a_won=True, multiplier=1.2)

    assert first == second


# =============================================================================
# 2v2
# =============================================================================


def test_2v2_new_players_equal_ratings():
    """Four new 1200 players: K=50 and expected 0.5, so +/-25 each."""
    fresh = PlayerInfo()
    result = calculate_2v2_changes((fresh, fresh), (fresh, fresh), team1_won=True)

    for delta in result.team1():
        assert delta == RatingDelta(old_rating=1200, new_rating=1225, change=25)
    for delta in result.team2():
        assert delta == RatingDelta(old_rating=1200, new_rating=1175, change=-25)


def test_2v2_sweep_multiplier():
    fresh = PlayerInfo()
    result = calculate_2v2_changes(
        (fresh, fresh), (fresh, fresh), team1_won=False, multiplier=1.2
    )

    assert [d.change for d in result.team1()] == [-30, -30]
    assert [d.change for d in result.team2()] == [30, 30]


def test_2v2_teammates_move_independently():
    """Each teammate uses their own K-factor, so a veteran moves less."""
    rookie = PlayerInfo(rating=1200, games_played=0)
    veteran = PlayerInfo(rating=1200, games_played=300)
    opponent = PlayerInfo()

    result = calculate_2v2_changes(
        (rookie, veteran), (opponent, opponent), team1_won=True
    )

    # K=50 -> +25, K=25 -> +12.5 rounded half up to +13
    assert result.team1_player1.change == 25
    assert result.team1_player2.change == 13
    assert result.team2_player1.change == -25


def test_2v2_changes_need_not_sum_to_zero():
    rookie = PlayerInfo(rating=1200, games_played=0)
    veteran = PlayerInfo(rating=1200, games_played=600)

    result = calculate_2v2_changes(
        (rookie, rookie), (veteran, veteran), team1_won=True
    )
    total = sum(d.change for d in (*result.team1(), *result.team2()))

    assert total != 0


def test_2v2_expected_score_is_against_the_pair_faced():
    """A strong teammate does not change a player's own expected score."""
    player = PlayerInfo(rating=1200)
    weak_mate = PlayerInfo(rating=900)
    strong_mate = PlayerInfo(rating=1800)
    opponents = (PlayerInfo(rating=1250), PlayerInfo(rating=1150))

    with_weak = calculate_2v2_changes((player, weak_mate), opponents, True)
    with_strong = calculate_2v2_changes((player, strong_mate), opponents, True)

    assert with_weak.team1_player1 == with_strong.team1_player1


def test_initial_rating_is_1200():
    assert INITIAL_RATING == 1200
    assert PlayerInfo().rating == 1200


# =============================================================================
# RatingDelta
# =============================================================================


def test_rating_delta_rejects_inconsistent_values():
    with pytest.raises(RatingCalculationError):
        RatingDelta(old_rating=1200, new_rating=1216, change=15)


def test_rating_delta_between():
    delta = RatingDelta.between(1210, 1187)

    assert delta.change == -23
    assert delta.new_rating == delta.old_rating + delta.change
