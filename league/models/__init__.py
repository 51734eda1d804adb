from .betting_round import BettingRound, RoundStatus, betting_round_fixtures
from .fixture import Fixture
from .round_points import UserLastRoundSpecialPoints, UserRoundDynamicPoints
from .season import Season
from .season_answer import SeasonAnswer, SeasonQuestionResult
from .season_winner import (
    COMPETITION_LAST_ROUND_SPECIAL,
    COMPETITION_LEAGUE,
    COMPETITION_TYPES,
    SeasonWinner,
    SeasonWinnerDetermination,
)
from .team import Team
from .user import User
from .user_bet import UserBet

__all__ = [
    "User",
    "Season",
    "Team",
    "Fixture",
    "BettingRound",
    "RoundStatus",
    "betting_round_fixtures",
    "UserBet",
    "SeasonAnswer",
    "SeasonQuestionResult",
    "UserRoundDynamicPoints",
    "UserLastRoundSpecialPoints",
    "SeasonWinnerDetermination",
    "SeasonWinner",
    "COMPETITION_LEAGUE",
    "COMPETITION_LAST_ROUND_SPECIAL",
    "COMPETITION_TYPES",
]
