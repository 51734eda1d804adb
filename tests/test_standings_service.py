"""Tests for the league standings aggregator."""
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import OperationalError

from league import db
from league.models import UserRoundDynamicPoints
from league.services.standings_service import StandingsEntry, sort_and_rank


def entry(user_id, game, dynamic=0):
    return StandingsEntry(
        user_id=user_id,
        username=f"user{user_id}",
        game_points=game,
        dynamic_points=dynamic,
        combined_total=game + dynamic,
    )


class TestSortAndRank:
    def test_dense_rank_on_combined_total(self):
        ranked = sort_and_rank([entry(1, 5), entry(2, 9), entry(3, 5), entry(4, 2)])

        assert [(e.user_id, e.rank) for e in ranked] == [(2, 1), (1, 2), (3, 2), (4, 3)]

    def test_game_points_then_user_id_break_ties(self):
        ranked = sort_and_rank([entry(3, 4, 3), entry(1, 7), entry(2, 4, 3)])

        assert [e.user_id for e in ranked] == [1, 2, 3]
        assert {e.rank for e in ranked} == {1}

    def test_deterministic_for_any_input_order(self):
        entries = [entry(i, i % 3, i % 2) for i in range(1, 10)]

        first = [(e.user_id, e.rank) for e in sort_and_rank(list(entries))]
        second = [(e.user_id, e.rank) for e in sort_and_rank(list(reversed(entries)))]

        assert first == second


class TestCalculateStandings:
    def test_empty_league_returns_empty_list(self, services, factory):
        factory.season()

        assert services.standings.calculate_standings() == []

    def test_sums_game_points_across_rounds(self, services, factory):
        season = factory.season()
        alice, bob = factory.user("alice"), factory.user("bob")
        factory.scored_round(season, {alice: 1, bob: 0})
        factory.scored_round(season, {alice: 1, bob: 1})

        standings = services.standings.calculate_standings(season.id)

        assert [(e.username, e.game_points, e.rank) for e in standings] == [
            ("alice", 2, 1),
            ("bob", 1, 2),
        ]

    def test_unscored_bets_count_as_zero(self, services, factory):
        season = factory.season()
        alice, bob = factory.user("alice"), factory.user("bob")
        betting_round = factory.betting_round(season)
        fixture = factory.fixture(season)
        factory.bet(bob, fixture, betting_round, "1")
        factory.scored_round(season, {alice: 1})

        standings = services.standings.calculate_standings(season.id)

        assert [(e.username, e.game_points) for e in standings] == [("alice", 1), ("bob", 0)]

    def test_dynamic_points_from_latest_scored_round(self, services, factory):
        season = factory.season()
        alice, bob = factory.user("alice"), factory.user("bob")
        older = factory.scored_round(season, {alice: 1, bob: 1})
        latest = factory.scored_round(season, {alice: 0, bob: 0})
        older.scored_at = datetime.now(timezone.utc) - timedelta(days=7)
        db.session.add_all(
            [
                UserRoundDynamicPoints(betting_round_id=older.id, user_id=alice.id, dynamic_points=9),
                UserRoundDynamicPoints(betting_round_id=latest.id, user_id=alice.id, dynamic_points=3),
                UserRoundDynamicPoints(betting_round_id=latest.id, user_id=bob.id, dynamic_points=6),
            ]
        )
        db.session.commit()

        standings = services.standings.calculate_standings(season.id)

        assert [(e.username, e.dynamic_points, e.combined_total) for e in standings] == [
            ("bob", 6, 7),
            ("alice", 3, 4),
        ]

    def test_only_requested_season(self, services, factory):
        current, previous = factory.season(), factory.season(is_current=False)
        alice = factory.user("alice")
        factory.scored_round(current, {alice: 1})
        factory.scored_round(previous, {alice: 1})

        standings = services.standings.calculate_standings(current.id)

        assert standings[0].game_points == 1

    def test_failure_returns_none(self, services, factory, monkeypatch):
        factory.season()

        def broken(season_id):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(services.standings, "_game_points_by_user", broken)

        assert services.standings.calculate_standings() is None

    def test_repeated_calls_are_identical(self, services, factory):
        season = factory.season()
        users = [factory.user() for _ in range(4)]
        factory.scored_round(season, {users[0]: 1, users[1]: 1, users[2]: 0, users[3]: 1})

        first = [e.to_dict() for e in services.standings.calculate_standings(season.id)]
        second = [e.to_dict() for e in services.standings.calculate_standings(season.id)]

        assert first == second
