"""
Scoring engine for match bets

This module handles scoring calculations for individual bets.
For aggregated standings, see league.services.standings_service.
"""

from dataclasses import dataclass

from league.utils.errors import FixtureNotFinishedError, InvalidPredictionError

HOME_WIN = "1"
DRAW = "X"
AWAY_WIN = "2"
VALID_PREDICTIONS = (HOME_WIN, DRAW, AWAY_WIN)

# Played to a result (regular time, extra time, penalties)
FINISHED_STATUSES = frozenset({"FT", "AET", "PEN"})
# Final for season bookkeeping, including awarded and walkover results
SEASON_FINAL_STATUSES = FINISHED_STATUSES | {"AWD", "WO"}


@dataclass(frozen=True)
class Unscored:
    """A bet that has not been awarded points yet"""


@dataclass(frozen=True)
class Scored:
    points: int


def bet_score(points_awarded):
    """Map a nullable points column to Unscored or Scored(points)"""
    if points_awarded is None:
        return Unscored()
    return Scored(int(points_awarded))


def derive_result(home_goals, away_goals):
    """
    Derive the 1/X/2 outcome from a final score.

    Returns None when either side has no goals recorded.
    """
    if home_goals is None or away_goals is None:
        return None
    if home_goals > away_goals:
        return HOME_WIN
    if home_goals < away_goals:
        return AWAY_WIN
    return DRAW


@dataclass(frozen=True)
class MatchScoringPolicy:
    """
    Points awarded for a single match bet.

    The default is the binary scheme: one point for the correct outcome,
    nothing otherwise. An exact score bonus is only applied when the bet
    carries a predicted score and the outcome is correct.
    """

    correct_outcome_points: int = 1
    incorrect_outcome_points: int = 0
    exact_score_bonus: int = 0

    @classmethod
    def from_config(cls, config):
        return cls(
            correct_outcome_points=int(config.get("MATCH_POINTS_CORRECT_OUTCOME", 1)),
            incorrect_outcome_points=int(
                config.get("MATCH_POINTS_INCORRECT_OUTCOME", 0)
            ),
            exact_score_bonus=int(config.get("MATCH_POINTS_EXACT_SCORE_BONUS", 0)),
        )


def calculate_match_points(fixture, bet, policy=None):
    """
    Calculate points for a single bet.

    Args:
        fixture: Fixture with status_short, home_goals and away_goals
        bet: UserBet with prediction and optional predicted goals
        policy: MatchScoringPolicy, binary 1/0 when omitted

    Raises:
        FixtureNotFinishedError: fixture not finished or without a result
        InvalidPredictionError: prediction outside 1/X/2
    """
    policy = policy or MatchScoringPolicy()

    if fixture.status_short not in FINISHED_STATUSES:
        raise FixtureNotFinishedError(fixture.id, fixture.status_short)

    result = derive_result(fixture.home_goals, fixture.away_goals)
    if result is None:
        raise FixtureNotFinishedError(fixture.id, fixture.status_short)

    if bet.prediction not in VALID_PREDICTIONS:
        raise InvalidPredictionError(bet.id, bet.prediction)

    if bet.prediction != result:
        return policy.incorrect_outcome_points

    points = policy.correct_outcome_points
    if (
        policy.exact_score_bonus
        and bet.predicted_home_goals == fixture.home_goals
        and bet.predicted_away_goals == fixture.away_goals
    ):
        points += policy.exact_score_bonus

    return points
