"""
Prediction League Background Scheduler

Runs the cron pipeline jobs in-process with APScheduler, for deployments that
do not call the cron endpoints from an external scheduler.
"""

import atexit
import logging
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from league import db

logger = logging.getLogger(__name__)


class SchedulerService:
    """Manages the background schedule for the cron pipeline"""

    def __init__(self, app=None, pipeline=None):
        self.scheduler = None
        self.app = app
        self.pipeline = pipeline
        self.is_running = False
        self.job_stats = {
            "last_run": None,
            "total_runs": 0,
            "successful_runs": 0,
            "failed_runs": 0,
            "last_error": None,
        }

        if app:
            self.init_app(app, pipeline)

    def init_app(self, app, pipeline=None):
        """Initialize scheduler with Flask app"""
        self.app = app
        if pipeline is not None:
            self.pipeline = pipeline
        self.scheduler = BackgroundScheduler(daemon=True, timezone="UTC")

        atexit.register(self.shutdown)

        if app.config.get("SCHEDULER_ENABLED", True):
            self.start()

    def start(self):
        """Start the background scheduler"""
        if self.is_running:
            return

        try:
            self.scheduler.remove_all_jobs()
            self._add_core_jobs()
            self.scheduler.start()
            self.is_running = True
            logger.info("Scheduler started successfully")

        except Exception as e:
            logger.error(f"Failed to start scheduler: {e}")
            raise

    def stop(self):
        """Stop the background scheduler"""
        if not self.is_running:
            return

        try:
            self.scheduler.shutdown(wait=False)
            self.is_running = False
            logger.info("Scheduler stopped")

        except Exception as e:
            logger.error(f"Error stopping scheduler: {e}")

    def shutdown(self):
        """Graceful shutdown"""
        self.stop()

    def _add_core_jobs(self):
        """Add core scheduled jobs"""

        # Round detection and scoring (every 15 minutes)
        self.scheduler.add_job(
            func=self._process_rounds,
            trigger=IntervalTrigger(minutes=15),
            id="process_rounds",
            name="Detect And Score Rounds",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=120,
        )

        # Cup activation check (top of every hour)
        self.scheduler.add_job(
            func=self._activate_cup,
            trigger=CronTrigger(minute=0),
            id="cup_activation",
            name="Last Round Special Activation",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=300,
        )

        # Season completion and winners (2 AM UTC)
        self.scheduler.add_job(
            func=self._daily_season_jobs,
            trigger=CronTrigger(hour=2, minute=0),
            id="season_completion",
            name="Season Completion And Winners",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=3600,
        )

        logger.info("Core scheduled jobs added")

    def _execute(self, job):
        with self.app.app_context():
            try:
                outcome = job()
                self._update_stats(outcome.success, None if outcome.success else outcome.message)
                return outcome
            except Exception as e:
                db.session.rollback()
                self._update_stats(False, str(e))
                logger.error(f"Scheduled job failed: {e}", exc_info=True)
                return None
            finally:
                db.session.remove()

    def _process_rounds(self):
        return self._execute(self.pipeline.process_rounds)

    def _activate_cup(self):
        return self._execute(self.pipeline.activate_cup)

    def _daily_season_jobs(self):
        completion = self._execute(self.pipeline.complete_seasons)
        winners = self._execute(self.pipeline.determine_winners)
        return completion, winners

    def _update_stats(self, success, error=None):
        self.job_stats["last_run"] = datetime.now(timezone.utc).isoformat()
        self.job_stats["total_runs"] += 1
        if success:
            self.job_stats["successful_runs"] += 1
        else:
            self.job_stats["failed_runs"] += 1
            self.job_stats["last_error"] = error

    def get_status(self):
        """Get scheduler status information"""
        jobs = []
        if self.scheduler:
            for job in self.scheduler.get_jobs():
                next_run = job.next_run_time
                jobs.append(
                    {
                        "id": job.id,
                        "name": job.name,
                        "next_run": next_run.isoformat() if next_run else None,
                        "trigger": str(job.trigger),
                    }
                )

        return {"is_running": self.is_running, "jobs": jobs, "stats": self.job_stats}

    def force_run(self, job_type="rounds"):
        """Manually trigger a job"""
        runners = {
            "rounds": self._process_rounds,
            "cup": self._activate_cup,
            "seasons": self._daily_season_jobs,
        }
        runner = runners.get(job_type)
        if runner is None:
            return False, f"Unknown job type: {job_type}"

        runner()
        return True, f"Manual {job_type} run completed"
