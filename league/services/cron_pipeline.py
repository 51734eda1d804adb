"""
Cron pipeline

Runs the round lifecycle jobs in order: detect completed rounds, score them,
activate the cup, detect completed seasons and determine winners. Every run
is reported to the alerting service with its duration.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from league.services.alerting_service import STATUS_FAILURE, STATUS_SUCCESS
from league.utils.errors import DataStoreError
from league.utils.performance import PerformanceMonitor

logger = logging.getLogger(__name__)

JOB_PROCESS_ROUNDS = "process-rounds"
JOB_CUP_ACTIVATION = "cup-activation"
JOB_SEASON_COMPLETION = "season-completion"
JOB_WINNER_DETERMINATION = "winner-determination"
JOB_RUN_ALL = "run-all"


@dataclass
class CronJobOutcome:
    job_name: str
    success: bool
    message: str
    duration_ms: int = 0
    systemic_failure: bool = False
    degraded: bool = False
    payload: dict = field(default_factory=dict)

    @property
    def http_status(self):
        return 200 if self.success else 500

    def to_dict(self):
        data = {
            "success": self.success,
            "message": self.message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "duration_ms": self.duration_ms,
        }
        data.update(self.payload)
        return data


def classify_outcome(error_count, winners_determined):
    """
    (success, degraded) for a winner determination run.

    Errors with no winners is a failure, errors with winners a degraded
    success, no errors a success.
    """
    if error_count and not winners_determined:
        return False, False
    if error_count:
        return True, True
    return True, False


class CronPipeline:
    def __init__(
        self,
        round_detector,
        round_scorer,
        cup_service,
        season_detector,
        winner_service,
        alerting,
    ):
        self.round_detector = round_detector
        self.round_scorer = round_scorer
        self.cup_service = cup_service
        self.season_detector = season_detector
        self.winner_service = winner_service
        self.alerting = alerting

    def _run(self, job_name, func):
        """Execute a job body, time it and report it to alerting"""
        execution_id = self.alerting.start_execution(job_name)
        monitor = PerformanceMonitor(f"cron:{job_name}", log_threshold=1.0)

        try:
            with monitor:
                outcome = func()
        except Exception as e:
            logger.error(f"Cron job {job_name} failed: {e}", exc_info=True)
            outcome = CronJobOutcome(
                job_name=job_name,
                success=False,
                systemic_failure=True,
                message=f"{job_name} failed: {e}",
                payload={"error": str(e)},
            )

        outcome.duration_ms = monitor.duration_ms
        self.alerting.complete_execution(
            execution_id,
            STATUS_SUCCESS if outcome.success else STATUS_FAILURE,
            error=None if outcome.success else outcome.message,
            metrics={"duration_ms": outcome.duration_ms, "degraded": outcome.degraded},
        )

        log = logger.info if outcome.success else logger.error
        log(f"Cron job {job_name}: {outcome.message} ({outcome.duration_ms}ms)")
        return outcome

    def process_rounds(self):
        return self._run(JOB_PROCESS_ROUNDS, self._process_rounds)

    def _process_rounds(self):
        detection = self.round_detector.detect_and_mark_completed_rounds()
        scoring = self.round_scorer.score_pending_rounds()

        scored = [r for r in scoring if r.success and not r.deferred]
        deferred = [r for r in scoring if r.deferred]
        failed = [r for r in scoring if r.error]
        unscored_bets = sum(len(r.errors) for r in scoring)
        error_count = len(detection.errors) + len(failed) + unscored_bets

        success = not error_count or bool(detection.completed_round_ids or scored)
        return CronJobOutcome(
            job_name=JOB_PROCESS_ROUNDS,
            success=success,
            degraded=bool(error_count) and success,
            message=(
                f"{len(detection.completed_round_ids)} rounds completed, "
                f"{len(scored)} scored, {len(deferred)} deferred, {error_count} errors"
            ),
            payload={
                "completed_round_ids": detection.completed_round_ids,
                "scoring_results": [r.to_dict() for r in scoring],
                "error_count": error_count,
                "detection_errors": detection.errors,
            },
        )

    def activate_cup(self):
        return self._run(JOB_CUP_ACTIVATION, self._activate_cup)

    def _activate_cup(self):
        result = self.cup_service.activate_if_eligible()

        if result.error:
            message = result.error
        elif result.already_activated:
            message = "Last Round Special already active"
        elif result.activated:
            message = "Last Round Special activated"
        else:
            message = "Activation conditions not met"

        return CronJobOutcome(
            job_name=JOB_CUP_ACTIVATION,
            success=result.success,
            message=message,
            payload={"activation": result.to_dict()},
        )

    def complete_seasons(self):
        return self._run(JOB_SEASON_COMPLETION, self._complete_seasons)

    def _complete_seasons(self):
        result = self.season_detector.detect_and_mark_completed_seasons()
        error_count = len(result.errors)
        success = not error_count or bool(result.completed_season_ids)

        return CronJobOutcome(
            job_name=JOB_SEASON_COMPLETION,
            success=success,
            degraded=bool(error_count) and success,
            message=(
                f"{len(result.completed_season_ids)} seasons completed, "
                f"{result.processed_count} checked, {error_count} errors"
            ),
            payload={**result.to_dict(), "error_count": error_count},
        )

    def determine_winners(self):
        return self._run(JOB_WINNER_DETERMINATION, self._determine_winners)

    def _determine_winners(self):
        try:
            results = self.winner_service.determine_winners_for_completed_seasons()
        except DataStoreError as e:
            return CronJobOutcome(
                job_name=JOB_WINNER_DETERMINATION,
                success=False,
                systemic_failure=True,
                message="Winner determination failed",
                payload={
                    "total_seasons_processed": 0,
                    "total_winners_determined": 0,
                    "error_count": 1,
                    "winner_determination_results": [],
                    "detailed_errors": [{"season_id": None, "errors": [str(e)]}],
                },
            )

        seasons_processed = len({r.season_id for r in results})
        winners_determined = sum(len(r.winners) for r in results)
        error_count = sum(len(r.errors) for r in results)
        success, degraded = classify_outcome(error_count, winners_determined)

        if not success:
            message = "Winner determination failed for all seasons with errors"
        elif degraded:
            message = "Winner determination completed with errors"
        else:
            message = "Winner determination completed successfully"

        payload = {
            "total_seasons_processed": seasons_processed,
            "total_winners_determined": winners_determined,
            "error_count": error_count,
            "winner_determination_results": [r.to_dict() for r in results],
        }
        if error_count:
            payload["detailed_errors"] = [
                {
                    "season_id": r.season_id,
                    "competition_type": r.competition_type,
                    "errors": r.errors,
                }
                for r in results
                if r.errors
            ]

        return CronJobOutcome(
            job_name=JOB_WINNER_DETERMINATION,
            success=success,
            degraded=degraded,
            message=message,
            payload=payload,
        )

    def run_all(self):
        """Every job in dependency order; later jobs still run after a failure"""
        return self._run(JOB_RUN_ALL, self._run_all)

    def _run_all(self):
        steps = [
            self.process_rounds(),
            self.activate_cup(),
            self.complete_seasons(),
            self.determine_winners(),
        ]
        failed = [step.job_name for step in steps if not step.success]

        return CronJobOutcome(
            job_name=JOB_RUN_ALL,
            success=not failed,
            degraded=any(step.degraded for step in steps),
            message=(
                "All cron jobs completed"
                if not failed
                else f"Cron jobs failed: {', '.join(failed)}"
            ),
            payload={"steps": {step.job_name: step.to_dict() for step in steps}},
        )
