"""Typed exceptions raised by the scoring and standings pipeline."""


class LeagueError(Exception):
    """Base class for prediction league errors"""


class ScoringPreconditionError(LeagueError):
    """A bet cannot be scored in its current state"""


class FixtureNotFinishedError(ScoringPreconditionError):
    def __init__(self, fixture_id, status=None):
        self.fixture_id = fixture_id
        self.status = status
        super().__init__(
            f"Fixture {fixture_id} has no final result (status: {status or 'unknown'})"
        )


class InvalidPredictionError(ScoringPreconditionError):
    def __init__(self, bet_id, prediction):
        self.bet_id = bet_id
        self.prediction = prediction
        super().__init__(f"Bet {bet_id} has an invalid prediction: {prediction!r}")


class BetAlreadyScoredError(ScoringPreconditionError):
    def __init__(self, bet_id, points):
        self.bet_id = bet_id
        self.points = points
        super().__init__(
            f"Bet {bet_id} was already awarded {points} points; "
            "pass allow_overwrite=True for a retroactive correction"
        )


class InvalidRoundTransitionError(LeagueError):
    def __init__(self, round_id, current, target):
        self.round_id = round_id
        self.current = current
        self.target = target
        super().__init__(
            f"Betting round {round_id} cannot move from {current.value} to {target.value}"
        )


class DataStoreError(LeagueError):
    """The data store could not be read at all"""
