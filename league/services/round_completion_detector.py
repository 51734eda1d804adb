"""
Round Completion Detector

Scans open betting rounds and moves every round whose linked fixtures have
all finished (FT, AET or PEN) to the scoring status.
"""

from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError

from league import db
from league.models import BettingRound, Fixture, RoundStatus
from league.utils.logging_config import ContextualLogger
from league.utils.scoring import FINISHED_STATUSES

logger = ContextualLogger(__name__, {"service": "RoundCompletionDetector"})


@dataclass
class DetectionResult:
    completed_round_ids: list = field(default_factory=list)
    errors: list = field(default_factory=list)

    def to_dict(self):
        return {
            "completed_round_ids": list(self.completed_round_ids),
            "errors": list(self.errors),
        }


class RoundCompletionDetector:
    def detect_and_mark_completed_rounds(self):
        """
        Mark every complete open round as scoring.

        A failure to read the open rounds ends the run with a single error.
        Failures on one round are recorded and the remaining rounds are still
        evaluated.
        """
        result = DetectionResult()
        log = logger.bind(function="detect_and_mark_completed_rounds")

        try:
            open_rounds = self._fetch_open_rounds()
        except SQLAlchemyError as e:
            db.session.rollback()
            log.error(f"Failed to fetch open rounds: {e}")
            result.errors.append(
                {"round_id": None, "error": f"Failed to fetch open rounds: {e}"}
            )
            return result

        if not open_rounds:
            log.info("No open rounds to check")
            return result

        log.info(f"Checking {len(open_rounds)} open rounds for completion")

        for betting_round in open_rounds:
            round_id = betting_round.id
            try:
                if not self.is_round_complete(betting_round):
                    continue

                betting_round.transition_to(RoundStatus.SCORING)
                db.session.commit()
                result.completed_round_ids.append(round_id)
                log.info(f"Round {round_id} complete, moved to scoring")

            except Exception as e:
                db.session.rollback()
                log.error(f"Failed to process round {round_id}: {e}", exc_info=True)
                result.errors.append({"round_id": round_id, "error": str(e)})

        log.info(
            f"Completion check done: {len(result.completed_round_ids)} completed, "
            f"{len(result.errors)} errors"
        )
        return result

    def is_round_complete(self, betting_round):
        """True iff the round has fixtures and every one of them is finished"""
        log = logger.bind(round_id=betting_round.id)

        fixture_ids = betting_round.get_fixture_ids()
        if not fixture_ids:
            log.warning("Round has no linked fixtures, treating as incomplete")
            return False

        fixtures = self._fetch_fixture_statuses(fixture_ids)
        if len(fixtures) != len(fixture_ids):
            log.warning(
                f"Fixture count mismatch: expected {len(fixture_ids)}, "
                f"found {len(fixtures)}, treating as incomplete"
            )
            return False

        unfinished = [
            fixture_id
            for fixture_id, status in fixtures
            if status not in FINISHED_STATUSES
        ]
        if unfinished:
            log.debug(f"{len(unfinished)} of {len(fixtures)} fixtures not finished")
            return False

        return True

    def _fetch_open_rounds(self):
        return (
            BettingRound.query.filter(BettingRound.status == RoundStatus.OPEN)
            .order_by(BettingRound.id.asc())
            .all()
        )

    def _fetch_fixture_statuses(self, fixture_ids):
        return (
            db.session.query(Fixture.id, Fixture.status_short)
            .filter(Fixture.id.in_(fixture_ids))
            .all()
        )
