"""Shared pytest fixtures for the prediction league tests."""
import itertools
from datetime import datetime, timedelta, timezone

import pytest

from league import create_app, db
from league.models import (
    BettingRound,
    Fixture,
    RoundStatus,
    Season,
    SeasonAnswer,
    SeasonQuestionResult,
    Team,
    User,
    UserBet,
)

CRON_SECRET = "test-cron-secret"


@pytest.fixture
def app():
    """Application on an in-memory database, fresh per test."""
    app = create_app("testing")

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    return app.extensions["league"]


@pytest.fixture
def cron_headers():
    return {"Authorization": f"Bearer {CRON_SECRET}"}


@pytest.fixture
def published_events(services):
    """Every event published on the application bus, in order."""
    from league.utils.events import RoundScored, SeasonWinnersDetermined

    events = []
    services.event_bus.subscribe(RoundScored, events.append)
    services.event_bus.subscribe(SeasonWinnersDetermined, events.append)
    return events


class Factory:
    """Seeds league data and commits after every object."""

    def __init__(self):
        self._sequence = itertools.count(1)
        self._kickoff = datetime(2025, 4, 1, 18, 0, tzinfo=timezone.utc)

    def _next(self):
        return next(self._sequence)

    def _save(self, obj):
        db.session.add(obj)
        db.session.commit()
        return obj

    def user(self, username=None, **kwargs):
        n = self._next()
        username = username or f"user{n}"
        kwargs.setdefault("email", f"{username}@example.com")
        return self._save(User(username=username, **kwargs))

    def season(self, is_current=True, **kwargs):
        n = self._next()
        kwargs.setdefault("name", f"Season {2000 + n}")
        kwargs.setdefault("competition_api_id", 103)
        kwargs.setdefault("api_season_year", 2000 + n)
        return self._save(Season(is_current=is_current, **kwargs))

    def team(self, name=None):
        n = self._next()
        return self._save(Team(name=name or f"Team {n}", api_id=1000 + n))

    def fixture(self, season, home=None, away=None, status="NS", goals=None, **kwargs):
        home = home or self.team()
        away = away or self.team()
        self._kickoff += timedelta(hours=2)
        home_goals, away_goals = goals if goals is not None else (None, None)
        return self._save(
            Fixture(
                api_id=50000 + self._next(),
                season_id=season.id,
                home_team_id=home.id,
                away_team_id=away.id,
                kickoff=kwargs.pop("kickoff", self._kickoff),
                status_short=status,
                home_goals=home_goals,
                away_goals=away_goals,
                **kwargs,
            )
        )

    def finished_fixture(self, season, goals=(1, 0), **kwargs):
        return self.fixture(season, status="FT", goals=goals, **kwargs)

    def betting_round(self, season, fixtures=(), status=RoundStatus.OPEN, name=None):
        betting_round = BettingRound(
            name=name or f"Round {self._next()}",
            season_id=season.id,
            status=status,
        )
        betting_round.fixtures = list(fixtures)
        if fixtures:
            betting_round.earliest_fixture_kickoff = min(f.kickoff for f in fixtures)
        return self._save(betting_round)

    def bet(self, user, fixture, betting_round, prediction, points=None, **kwargs):
        return self._save(
            UserBet(
                user_id=user.id,
                fixture_id=fixture.id,
                betting_round_id=betting_round.id,
                prediction=prediction,
                points_awarded=points,
                **kwargs,
            )
        )

    def season_answer(self, user, season, question_type, team_id=None, player_id=None):
        return self._save(
            SeasonAnswer(
                user_id=user.id,
                season_id=season.id,
                question_type=question_type,
                answered_team_id=team_id,
                answered_player_id=player_id,
            )
        )

    def question_result(self, season, question_type, valid_answers):
        return self._save(
            SeasonQuestionResult(
                season_id=season.id,
                question_type=question_type,
                valid_answers=valid_answers,
            )
        )

    def scored_round(self, season, results):
        """
        A scored round with one finished fixture per user.

        Args:
            results: mapping of user to points for that round
        """
        betting_round = self.betting_round(season, status=RoundStatus.SCORED)
        betting_round.scored_at = datetime.now(timezone.utc)
        for user, points in results.items():
            fixture = self.finished_fixture(season)
            betting_round.fixtures.append(fixture)
            self.bet(user, fixture, betting_round, "1", points=points)
        db.session.commit()
        return betting_round


@pytest.fixture
def factory(app):
    return Factory()
