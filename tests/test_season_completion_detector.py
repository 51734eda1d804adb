"""Tests for detecting completed seasons."""
from league import db
from league.models import RoundStatus, Season


class TestSeasonCompletionDetector:
    def test_marks_season_when_everything_is_final(self, services, factory):
        season = factory.season()
        fixtures = [
            factory.finished_fixture(season),
            factory.fixture(season, status="AWD", goals=(3, 0)),
            factory.fixture(season, status="WO"),
        ]
        factory.betting_round(season, fixtures, status=RoundStatus.SCORED)

        result = services.season_detector.detect_and_mark_completed_seasons()

        assert result.completed_season_ids == [season.id]
        assert result.processed_count == 1
        assert db.session.get(Season, season.id).completed_at is not None

    def test_unfinished_fixture_blocks_completion(self, services, factory):
        season = factory.season()
        factory.finished_fixture(season)
        factory.fixture(season, status="PST")

        result = services.season_detector.detect_and_mark_completed_seasons()

        assert result.completed_season_ids == []
        assert result.skipped_count == 1
        assert db.session.get(Season, season.id).completed_at is None

    def test_open_round_blocks_completion(self, services, factory):
        season = factory.season()
        fixture = factory.finished_fixture(season)
        factory.betting_round(season, [fixture], status=RoundStatus.SCORING)

        result = services.season_detector.detect_and_mark_completed_seasons()

        assert result.completed_season_ids == []

    def test_season_without_fixtures_is_not_complete(self, services, factory):
        factory.season()

        result = services.season_detector.detect_and_mark_completed_seasons()

        assert result.completed_season_ids == []
        assert result.skipped_count == 1

    def test_completed_seasons_are_not_rechecked(self, services, factory):
        season = factory.season()
        factory.finished_fixture(season)

        first = services.season_detector.detect_and_mark_completed_seasons()
        second = services.season_detector.detect_and_mark_completed_seasons()

        assert first.completed_season_ids == [season.id]
        assert second.processed_count == 0
