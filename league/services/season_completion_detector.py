"""
Season Completion Detector

A season is complete when it has fixtures, every fixture is final and no
betting round is still open or being scored.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from league import db
from league.models import BettingRound, Fixture, RoundStatus, Season
from league.utils.logging_config import ContextualLogger
from league.utils.scoring import SEASON_FINAL_STATUSES

logger = ContextualLogger(__name__, {"service": "SeasonCompletionDetector"})


@dataclass
class SeasonCompletionResult:
    completed_season_ids: list = field(default_factory=list)
    errors: list = field(default_factory=list)
    processed_count: int = 0
    skipped_count: int = 0

    def to_dict(self):
        return {
            "completed_season_ids": list(self.completed_season_ids),
            "errors": list(self.errors),
            "processed_count": self.processed_count,
            "skipped_count": self.skipped_count,
        }


class SeasonCompletionDetector:
    def detect_and_mark_completed_seasons(self):
        result = SeasonCompletionResult()
        log = logger.bind(function="detect_and_mark_completed_seasons")

        try:
            seasons = (
                Season.query.filter(
                    Season.is_current.is_(True), Season.completed_at.is_(None)
                )
                .order_by(Season.id.asc())
                .all()
            )
        except SQLAlchemyError as e:
            db.session.rollback()
            log.error(f"Failed to fetch active seasons: {e}")
            result.errors.append(
                {"season_id": None, "error": f"Failed to fetch active seasons: {e}"}
            )
            return result

        for season in seasons:
            season_id = season.id
            result.processed_count += 1
            try:
                if not self.is_season_complete(season_id):
                    result.skipped_count += 1
                    continue

                season.completed_at = datetime.now(timezone.utc)
                db.session.commit()
                result.completed_season_ids.append(season_id)
                log.info(f"Season {season_id} marked as completed")

            except SQLAlchemyError as e:
                db.session.rollback()
                log.error(f"Failed to process season {season_id}: {e}")
                result.errors.append({"season_id": season_id, "error": str(e)})

        return result

    def is_season_complete(self, season_id):
        log = logger.bind(season_id=season_id)

        total_fixtures = Fixture.query.filter_by(season_id=season_id).count()
        if total_fixtures == 0:
            log.debug("Season has no fixtures, not complete")
            return False

        unfinished = Fixture.query.filter(
            Fixture.season_id == season_id,
            Fixture.status_short.notin_(sorted(SEASON_FINAL_STATUSES)),
        ).count()
        if unfinished:
            log.debug(f"{unfinished}/{total_fixtures} fixtures not final")
            return False

        active_rounds = BettingRound.query.filter(
            BettingRound.season_id == season_id,
            BettingRound.status.in_([RoundStatus.OPEN, RoundStatus.SCORING]),
        ).count()
        if active_rounds:
            log.debug(f"{active_rounds} betting rounds still open or scoring")
            return False

        return True
