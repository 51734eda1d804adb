"""
Round Scoring Service

Awards points for every bet of a round once all of its fixtures have a final
result, snapshots each user's questionnaire points for the round, records cup
points when the Last Round Special is active, and closes the round.
"""

from dataclasses import asdict, dataclass, field

from sqlalchemy.exc import SQLAlchemyError

from league import db
from league.models import (
    BettingRound,
    RoundStatus,
    SeasonAnswer,
    SeasonQuestionResult,
    UserBet,
    UserLastRoundSpecialPoints,
    UserRoundDynamicPoints,
)
from league.utils.errors import ScoringPreconditionError
from league.utils.events import RoundScored
from league.utils.logging_config import ContextualLogger
from league.utils.scoring import calculate_match_points

logger = ContextualLogger(__name__, {"service": "RoundScoringService"})


@dataclass
class RoundScoringResult:
    round_id: int
    success: bool = False
    message: str = ""
    deferred: bool = False
    bets_processed: int = 0
    bets_updated: int = 0
    bets_skipped: int = 0
    dynamic_points_updated: int = 0
    cup_points_updated: int = 0
    error: str = None
    # Bets left unscored because a precondition failed
    errors: list = field(default_factory=list)

    def to_dict(self):
        return asdict(self)


class RoundScoringService:
    def __init__(self, policy, dynamic_calculator, event_bus):
        self.policy = policy
        self.dynamic_calculator = dynamic_calculator
        self.event_bus = event_bus

    def score_pending_rounds(self):
        """Score every round waiting in the scoring status"""
        try:
            round_ids = [
                round_id
                for (round_id,) in db.session.query(BettingRound.id)
                .filter(BettingRound.status == RoundStatus.SCORING)
                .order_by(BettingRound.id.asc())
                .all()
            ]
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to fetch rounds awaiting scoring: {e}")
            return [
                RoundScoringResult(
                    round_id=None,
                    message="Failed to fetch rounds awaiting scoring",
                    error=str(e),
                )
            ]

        return [self.score_round(round_id) for round_id in round_ids]

    def score_round(self, round_id):
        """Score one round; database errors are reported on the result, never raised"""
        log = logger.bind(round_id=round_id)
        result = RoundScoringResult(round_id=round_id)

        try:
            event = self._score_round(round_id, result, log)
        except SQLAlchemyError as e:
            db.session.rollback()
            log.error(f"Database error while scoring round: {e}", exc_info=True)
            result.success = False
            result.deferred = False
            result.message = "Database error while scoring round"
            result.error = str(e)
            return result

        if event is not None:
            self.event_bus.publish(event)
        return result

    def _score_round(self, round_id, result, log):
        """Returns the RoundScored event to publish once the round is committed"""
        betting_round = db.session.get(BettingRound, round_id)
        if betting_round is None:
            result.message = "Betting round not found"
            result.error = result.message
            return None

        if betting_round.status is RoundStatus.SCORED:
            result.success = True
            result.message = "Round already scored"
            return None

        if betting_round.status is RoundStatus.CANCELLED:
            result.message = "Round is cancelled"
            result.error = result.message
            return None

        fixtures = betting_round.fixtures

        if betting_round.status is RoundStatus.OPEN:
            if not fixtures or not all(f.result is not None for f in fixtures):
                result.deferred = True
                result.message = "Round is still open and not every fixture is finished"
                return None
            betting_round.transition_to(RoundStatus.SCORING)

        if not fixtures:
            log.warning("Round has no linked fixtures, closing without scoring")
            betting_round.transition_to(RoundStatus.SCORED)
            db.session.commit()
            result.success = True
            result.message = "Round has no fixtures, marked as scored"
            return None

        pending = [f.id for f in fixtures if f.result is None]
        if pending:
            db.session.commit()
            log.info(f"Scoring deferred, fixtures without result: {pending}")
            result.deferred = True
            result.message = f"{len(pending)} fixtures have no final result yet"
            return None

        self._score_bets(betting_round, fixtures, result, allow_overwrite=False)
        result.dynamic_points_updated = self._snapshot_dynamic_points(betting_round)
        result.cup_points_updated = self._record_cup_points(betting_round)

        betting_round.transition_to(RoundStatus.SCORED)
        season_id = betting_round.season_id
        db.session.commit()

        result.success = True
        result.message = (
            f"Scored {result.bets_updated} bets, "
            f"{result.dynamic_points_updated} questionnaire snapshots, "
            f"{result.cup_points_updated} cup entries"
        )
        if result.errors:
            result.message += f", {len(result.errors)} bets not scored"
        log.info(result.message)

        return RoundScored(
            round_id=round_id,
            season_id=season_id,
            bets_updated=result.bets_updated,
        )

    def rescore_round(self, round_id):
        """
        Recompute the bet points of an already scored round.

        Used after a fixture result was corrected; existing points are
        overwritten. Cup entries are refreshed only when the round already
        has them, so a round scored before the cup started never joins it.
        """
        log = logger.bind(round_id=round_id, function="rescore_round")
        result = RoundScoringResult(round_id=round_id)

        try:
            betting_round = db.session.get(BettingRound, round_id)
            if betting_round is None:
                result.message = "Betting round not found"
                result.error = result.message
                return result

            if betting_round.status is not RoundStatus.SCORED:
                result.message = (
                    f"Only scored rounds can be rescored (status: {betting_round.status.value})"
                )
                result.error = result.message
                return result

            fixtures = betting_round.fixtures
            self._score_bets(betting_round, fixtures, result, allow_overwrite=True)
            result.cup_points_updated = self._record_cup_points(
                betting_round, existing_only=True
            )
            season_id = betting_round.season_id
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            log.error(f"Database error while rescoring round: {e}", exc_info=True)
            result.message = "Database error while rescoring round"
            result.error = str(e)
            return result

        result.success = True
        result.message = f"Rescored round, {result.bets_updated} bets changed"
        log.info(result.message)

        if result.bets_updated:
            self.event_bus.publish(
                RoundScored(
                    round_id=round_id,
                    season_id=season_id,
                    bets_updated=result.bets_updated,
                    rescored=True,
                )
            )
        return result

    def _score_bets(self, betting_round, fixtures, result, allow_overwrite):
        fixtures_by_id = {fixture.id: fixture for fixture in fixtures}
        bets = UserBet.query.filter_by(betting_round_id=betting_round.id).all()

        for bet in bets:
            result.bets_processed += 1

            if bet.is_scored and not allow_overwrite:
                continue

            fixture = fixtures_by_id.get(bet.fixture_id)
            if fixture is None:
                logger.warning(
                    f"Bet {bet.id} references fixture {bet.fixture_id} "
                    f"outside round {betting_round.id}, skipping"
                )
                result.bets_skipped += 1
                result.errors.append(
                    f"Bet {bet.id}: fixture {bet.fixture_id} is not part of the round"
                )
                continue

            try:
                points = calculate_match_points(fixture, bet, self.policy)
            except ScoringPreconditionError as e:
                logger.warning(f"Bet {bet.id} not scored: {e}")
                result.bets_skipped += 1
                result.errors.append(f"Bet {bet.id}: {e}")
                continue

            if bet.award_points(points, allow_overwrite=allow_overwrite):
                result.bets_updated += 1

    def _snapshot_dynamic_points(self, betting_round):
        """Write questionnaire points of every answering user for this round"""
        season_id = betting_round.season_id
        answers_by_user = SeasonAnswer.answers_by_user(season_id)
        if not answers_by_user:
            return 0

        valid_answers = SeasonQuestionResult.valid_answers_for_season(season_id)
        existing = {
            row.user_id: row
            for row in UserRoundDynamicPoints.query.filter_by(
                betting_round_id=betting_round.id
            ).all()
        }

        updated = 0
        for user_id, answers in answers_by_user.items():
            calculation = self.dynamic_calculator.calculate(answers, valid_answers)

            snapshot = existing.get(user_id)
            if snapshot is None:
                snapshot = UserRoundDynamicPoints(
                    betting_round_id=betting_round.id, user_id=user_id
                )
                db.session.add(snapshot)

            snapshot.apply_result(calculation)
            updated += 1

        return updated

    def _record_cup_points(self, betting_round, existing_only=False):
        """
        Write per-user match points of this round when the cup is active.

        With existing_only, only entries the round already has are updated.
        """
        season = betting_round.season
        if season is None or not season.last_round_special_activated:
            return 0

        existing = {
            row.user_id: row
            for row in UserLastRoundSpecialPoints.query.filter_by(
                betting_round_id=betting_round.id
            ).all()
        }
        if existing_only and not existing:
            return 0

        db.session.flush()
        totals = (
            db.session.query(
                UserBet.user_id,
                db.func.coalesce(db.func.sum(UserBet.points_awarded), 0),
            )
            .filter(UserBet.betting_round_id == betting_round.id)
            .group_by(UserBet.user_id)
            .all()
        )

        updated = 0
        for user_id, points in totals:
            entry = existing.get(user_id)
            if entry is None:
                if existing_only:
                    continue
                entry = UserLastRoundSpecialPoints(
                    user_id=user_id,
                    betting_round_id=betting_round.id,
                    season_id=season.id,
                )
                db.session.add(entry)
            entry.points = int(points)
            updated += 1

        return updated
