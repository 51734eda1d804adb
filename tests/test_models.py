"""Tests for model level invariants: round status machine and bet scoring."""
import pytest

from league import db
from league.models import RoundStatus, Season
from league.utils.errors import BetAlreadyScoredError, InvalidRoundTransitionError
from league.utils.scoring import Scored, Unscored


class TestRoundStatus:
    @pytest.mark.parametrize(
        "current, target",
        [
            (RoundStatus.OPEN, RoundStatus.SCORING),
            (RoundStatus.OPEN, RoundStatus.CANCELLED),
            (RoundStatus.SCORING, RoundStatus.SCORED),
            (RoundStatus.SCORING, RoundStatus.CANCELLED),
        ],
    )
    def test_allowed_transitions(self, current, target):
        assert current.can_transition_to(target)

    @pytest.mark.parametrize(
        "current, target",
        [
            (RoundStatus.SCORED, RoundStatus.OPEN),
            (RoundStatus.SCORED, RoundStatus.SCORING),
            (RoundStatus.SCORING, RoundStatus.OPEN),
            (RoundStatus.OPEN, RoundStatus.SCORED),
            (RoundStatus.CANCELLED, RoundStatus.OPEN),
        ],
    )
    def test_regressions_and_skips_rejected(self, current, target):
        assert not current.can_transition_to(target)

    def test_terminal_statuses(self):
        assert RoundStatus.SCORED.is_terminal
        assert RoundStatus.CANCELLED.is_terminal
        assert not RoundStatus.OPEN.is_terminal


class TestBettingRound:
    def test_transition_to_scored_sets_timestamp(self, factory):
        season = factory.season()
        betting_round = factory.betting_round(season, status=RoundStatus.SCORING)

        betting_round.transition_to(RoundStatus.SCORED)
        db.session.commit()

        assert betting_round.status is RoundStatus.SCORED
        assert betting_round.scored_at is not None

    def test_invalid_transition_raises(self, factory):
        season = factory.season()
        betting_round = factory.betting_round(season)

        with pytest.raises(InvalidRoundTransitionError):
            betting_round.transition_to(RoundStatus.SCORED)

        assert betting_round.status is RoundStatus.OPEN

    def test_fixture_ids_from_join_table(self, factory):
        season = factory.season()
        fixtures = [factory.fixture(season), factory.fixture(season)]
        betting_round = factory.betting_round(season, fixtures)

        assert sorted(betting_round.get_fixture_ids()) == sorted(f.id for f in fixtures)


class TestUserBet:
    def test_unscored_by_default(self, factory):
        season = factory.season()
        fixture = factory.fixture(season)
        bet = factory.bet(factory.user(), fixture, factory.betting_round(season, [fixture]), "1")

        assert bet.score == Unscored()
        assert not bet.is_scored

    def test_award_points_once(self, factory):
        season = factory.season()
        fixture = factory.fixture(season)
        bet = factory.bet(factory.user(), fixture, factory.betting_round(season, [fixture]), "1")

        assert bet.award_points(0) is True
        assert bet.score == Scored(0)

        with pytest.raises(BetAlreadyScoredError):
            bet.award_points(1)

        assert bet.points_awarded == 0

    def test_overwrite_requires_flag(self, factory):
        season = factory.season()
        fixture = factory.fixture(season)
        bet = factory.bet(
            factory.user(), fixture, factory.betting_round(season, [fixture]), "1", points=1
        )

        assert bet.award_points(1, allow_overwrite=True) is False
        assert bet.award_points(0, allow_overwrite=True) is True
        assert bet.points_awarded == 0


class TestSeason:
    def test_activate_clears_other_current_seasons(self, factory):
        old = factory.season(is_current=True)
        new = factory.season(is_current=False)

        new.activate()
        db.session.commit()

        assert Season.get_current_season().id == new.id
        assert db.session.get(Season, old.id).is_current is False
