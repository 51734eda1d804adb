"""Unit tests for match bet scoring."""
from types import SimpleNamespace

import pytest

from league.utils.errors import FixtureNotFinishedError, InvalidPredictionError
from league.utils.scoring import (
    DRAW,
    MatchScoringPolicy,
    Scored,
    Unscored,
    bet_score,
    calculate_match_points,
    derive_result,
)


def make_fixture(status="FT", home_goals=2, away_goals=1):
    return SimpleNamespace(
        id=7, status_short=status, home_goals=home_goals, away_goals=away_goals
    )


def make_bet(prediction, home=None, away=None):
    return SimpleNamespace(
        id=11,
        prediction=prediction,
        predicted_home_goals=home,
        predicted_away_goals=away,
    )


class TestDeriveResult:
    def test_home_win(self):
        assert derive_result(3, 1) == "1"

    def test_away_win(self):
        assert derive_result(0, 2) == "2"

    def test_draw(self):
        assert derive_result(1, 1) == DRAW

    def test_missing_goals(self):
        """Should return None when a side has no goals recorded."""
        assert derive_result(None, 1) is None
        assert derive_result(2, None) is None


class TestCalculateMatchPoints:
    @pytest.mark.parametrize("status", ["FT", "AET", "PEN"])
    def test_correct_outcome_scores_one_point(self, status):
        assert calculate_match_points(make_fixture(status), make_bet("1")) == 1

    def test_wrong_outcome_scores_zero(self):
        assert calculate_match_points(make_fixture(), make_bet("X")) == 0

    def test_draw_prediction(self):
        assert calculate_match_points(make_fixture(home_goals=0, away_goals=0), make_bet("X")) == 1

    @pytest.mark.parametrize("status", ["NS", "1H", "HT", "PST", "AWD"])
    def test_unfinished_fixture_raises(self, status):
        with pytest.raises(FixtureNotFinishedError) as exc_info:
            calculate_match_points(make_fixture(status), make_bet("1"))
        assert exc_info.value.status == status

    def test_finished_without_goals_raises(self):
        with pytest.raises(FixtureNotFinishedError):
            calculate_match_points(make_fixture(home_goals=None), make_bet("1"))

    @pytest.mark.parametrize("prediction", ["", "3", "x", None])
    def test_invalid_prediction_raises(self, prediction):
        with pytest.raises(InvalidPredictionError):
            calculate_match_points(make_fixture(), make_bet(prediction))

    def test_exact_score_bonus(self):
        policy = MatchScoringPolicy(correct_outcome_points=1, exact_score_bonus=2)

        assert calculate_match_points(make_fixture(), make_bet("1", 2, 1), policy) == 3
        assert calculate_match_points(make_fixture(), make_bet("1", 3, 1), policy) == 1
        assert calculate_match_points(make_fixture(), make_bet("1"), policy) == 1

    def test_no_bonus_for_wrong_outcome(self):
        policy = MatchScoringPolicy(exact_score_bonus=2)
        assert calculate_match_points(make_fixture(), make_bet("2", 2, 1), policy) == 0


class TestMatchScoringPolicy:
    def test_defaults_are_binary(self):
        policy = MatchScoringPolicy()
        assert policy.correct_outcome_points == 1
        assert policy.incorrect_outcome_points == 0
        assert policy.exact_score_bonus == 0

    def test_from_config(self):
        policy = MatchScoringPolicy.from_config(
            {
                "MATCH_POINTS_CORRECT_OUTCOME": "3",
                "MATCH_POINTS_INCORRECT_OUTCOME": 0,
                "MATCH_POINTS_EXACT_SCORE_BONUS": 2,
            }
        )
        assert policy == MatchScoringPolicy(3, 0, 2)

    def test_from_empty_config(self):
        assert MatchScoringPolicy.from_config({}) == MatchScoringPolicy()


class TestBetScore:
    def test_null_points_are_unscored(self):
        assert bet_score(None) == Unscored()

    def test_zero_points_are_scored(self):
        """Should treat 0 as a scored bet, distinct from unscored."""
        assert bet_score(0) == Scored(0)
        assert bet_score(0) != Unscored()
