"""Tests for the Last Round Special cup."""
import pytest

from league import db
from league.models import Season, UserLastRoundSpecialPoints
from league.services.cup_service import CupService


def round_robin(factory, season, teams, finished_pairs):
    """One fixture per team pair, finished for the pairs listed."""
    for i, home in enumerate(teams):
        for away in teams[i + 1 :]:
            if (home, away) in finished_pairs:
                factory.fixture(season, home=home, away=away, status="FT", goals=(1, 1))
            else:
                factory.fixture(season, home=home, away=away)


class TestCheckActivation:
    def test_condition_met_when_enough_teams_near_the_end(self, factory):
        season = factory.season()
        teams = [factory.team() for _ in range(4)]
        # Each team plays 3 fixtures; finish all but one
        pairs = {(teams[0], teams[1]), (teams[0], teams[2]), (teams[0], teams[3]),
                 (teams[1], teams[2]), (teams[1], teams[3])}
        round_robin(factory, season, teams, pairs)

        result = CupService(threshold=50, remaining_games_limit=0).check_activation(season)

        assert result.total_teams == 4
        assert result.teams_within_limit == 2
        assert result.percentage == 50.0
        assert result.condition_met
        assert "meets the 50% threshold" in result.reasoning

    def test_condition_not_met(self, factory):
        season = factory.season()
        teams = [factory.team() for _ in range(4)]
        round_robin(factory, season, teams, set())

        result = CupService(threshold=60, remaining_games_limit=2).check_activation(season)

        assert result.teams_within_limit == 0
        assert not result.condition_met
        assert "does not meet" in result.reasoning

    def test_season_without_fixtures(self, factory):
        result = CupService().check_activation(factory.season())

        assert result.total_teams == 0
        assert not result.condition_met

    def test_threshold_is_validated(self):
        with pytest.raises(ValueError):
            CupService(threshold=120)


class TestActivateIfEligible:
    def test_activates_current_season(self, factory):
        season = factory.season()
        teams = [factory.team(), factory.team()]
        factory.fixture(season, home=teams[0], away=teams[1])

        result = CupService(threshold=100, remaining_games_limit=5).activate_if_eligible()

        assert result.success
        assert result.activated
        refreshed = db.session.get(Season, season.id)
        assert refreshed.last_round_special_activated is True
        assert refreshed.last_round_special_activated_at is not None

    def test_already_active_is_a_no_op(self, factory):
        season = factory.season(last_round_special_activated=True)

        result = CupService().activate_if_eligible(season.id)

        assert result.success
        assert result.already_activated
        assert not result.activated
        assert result.condition is None

    def test_not_eligible_leaves_season_alone(self, factory):
        season = factory.season()
        teams = [factory.team(), factory.team()]
        for _ in range(3):
            factory.fixture(season, home=teams[0], away=teams[1])

        result = CupService(threshold=60, remaining_games_limit=1).activate_if_eligible()

        assert result.success
        assert not result.activated
        assert db.session.get(Season, season.id).last_round_special_activated is False

    def test_no_current_season(self, app):
        result = CupService().activate_if_eligible()

        assert not result.success
        assert result.error == "No season found for cup activation"


class TestCupStandings:
    def test_dense_rank_by_points_then_username(self, factory):
        season = factory.season(last_round_special_activated=True)
        carol, alice, bob = factory.user("carol"), factory.user("alice"), factory.user("bob")
        first = factory.betting_round(season)
        second = factory.betting_round(season)
        for user, points in ((carol, 3), (alice, 2), (bob, 1)):
            db.session.add(
                UserLastRoundSpecialPoints(
                    user_id=user.id, betting_round_id=first.id, season_id=season.id, points=points
                )
            )
        for user, points in ((alice, 1), (bob, 2)):
            db.session.add(
                UserLastRoundSpecialPoints(
                    user_id=user.id, betting_round_id=second.id, season_id=season.id, points=points
                )
            )
        db.session.commit()

        result = CupService().calculate_cup_standings(season.id)

        assert [(e.username, e.total_points, e.rank) for e in result.standings] == [
            ("alice", 3, 1),
            ("bob", 3, 1),
            ("carol", 3, 1),
        ]
        assert result.total_participants == 3
        assert result.max_points == 3
        assert result.average_points == 3.0
        assert result.standings[0].rounds_participated == 2

    def test_empty_cup(self, factory):
        result = CupService().calculate_cup_standings(factory.season().id)

        assert result.standings == []
        assert result.errors == []
