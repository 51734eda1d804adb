"""
Cron job alerting

Keeps a bounded in-memory history of cron executions and posts webhook alerts
for repeated failures, slow runs and recoveries. Alert delivery is
best-effort: webhook errors are logged and never reach the cron job.
"""

import logging
import time
import uuid
from collections import deque
from datetime import datetime, timezone
from functools import wraps

import requests

logger = logging.getLogger(__name__)

MAX_HISTORY_PER_JOB = 100

STATUS_SUCCESS = "success"
STATUS_FAILURE = "failure"


def retry_on_server_error(max_retries=3, backoff_factor=2.0):
    """
    Retry a request on 429/5xx responses and connection errors with
    exponential backoff
    """

    def decorator(func):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            for attempt in range(max_retries):
                delay = self.retry_base_delay * (backoff_factor**attempt)
                try:
                    response = func(self, *args, **kwargs)

                    if response.status_code == 429 or response.status_code >= 500:
                        if attempt < max_retries - 1:
                            logger.warning(
                                f"Webhook answered {response.status_code}. Waiting "
                                f"{delay}s before retry {attempt + 1}/{max_retries}"
                            )
                            time.sleep(delay)
                            continue

                    return response

                except requests.exceptions.RequestException as e:
                    if attempt < max_retries - 1:
                        logger.warning(
                            f"Webhook request failed: {e}. Waiting {delay}s before "
                            f"retry {attempt + 1}/{max_retries}"
                        )
                        time.sleep(delay)
                    else:
                        raise

            return response

        return wrapper

    return decorator


class CronAlertingService:
    """Tracks cron executions and raises alerts"""

    def __init__(
        self,
        enabled=False,
        webhook_url=None,
        failure_threshold=3,
        performance_threshold_ms=300000,
        cooldown_ms=3600000,
        timeout=10,
        retry_base_delay=1.0,
    ):
        self.enabled = enabled
        self.webhook_url = webhook_url
        self.failure_threshold = failure_threshold
        self.performance_threshold_ms = performance_threshold_ms
        self.cooldown_ms = cooldown_ms
        self.timeout = timeout
        self.retry_base_delay = retry_base_delay

        self.session = requests.Session()
        self.session.headers.update({"User-Agent": "Prediction-League-Cron/1.0"})

        self.history = {}
        self.consecutive_failures = {}
        self.last_alert_at = {}
        self._running = {}

    @classmethod
    def from_config(cls, config):
        return cls(
            enabled=config.get("CRON_ALERTS_ENABLED", False),
            webhook_url=config.get("CRON_WEBHOOK_URL"),
            failure_threshold=config.get("CRON_FAILURE_THRESHOLD", 3),
            performance_threshold_ms=config.get("CRON_PERFORMANCE_THRESHOLD_MS", 300000),
            cooldown_ms=config.get("CRON_ALERT_COOLDOWN_MS", 3600000),
            timeout=config.get("CRON_ALERT_TIMEOUT", 10),
        )

    def start_execution(self, job_name):
        """Register a running job, returns its execution id"""
        execution_id = f"{job_name}-{uuid.uuid4().hex[:12]}"
        self._running[execution_id] = {
            "execution_id": execution_id,
            "job_name": job_name,
            "started_at": datetime.now(timezone.utc),
            "started_monotonic": time.monotonic(),
        }
        return execution_id

    def complete_execution(self, execution_id, status, error=None, metrics=None):
        """Record the outcome of a run and raise alerts when needed"""
        running = self._running.pop(execution_id, None)
        if running is None:
            logger.warning(f"Unknown cron execution id: {execution_id}")
            return None

        metrics = dict(metrics or {})
        duration_ms = metrics.get("duration_ms")
        if duration_ms is None:
            duration_ms = int((time.monotonic() - running["started_monotonic"]) * 1000)

        execution = {
            "execution_id": execution_id,
            "job_name": running["job_name"],
            "started_at": running["started_at"].isoformat(),
            "finished_at": datetime.now(timezone.utc).isoformat(),
            "status": status,
            "duration_ms": duration_ms,
            "error": error,
            "metrics": metrics,
        }

        job_name = running["job_name"]
        self.history.setdefault(job_name, deque(maxlen=MAX_HISTORY_PER_JOB)).append(
            execution
        )
        self._process_execution_alerts(execution)
        return execution

    def _process_execution_alerts(self, execution):
        job_name = execution["job_name"]

        if execution["status"] == STATUS_SUCCESS:
            previous_failures = self.consecutive_failures.get(job_name, 0)
            self.consecutive_failures[job_name] = 0

            if previous_failures >= self.failure_threshold:
                self.trigger_alert(
                    job_name,
                    "recovery",
                    "medium",
                    f"Cron job {job_name} has recovered after "
                    f"{previous_failures} consecutive failures",
                    {"previous_failures": previous_failures},
                )

            if execution["duration_ms"] > self.performance_threshold_ms:
                self.trigger_alert(
                    job_name,
                    "performance",
                    "medium",
                    f"Cron job {job_name} execution exceeded performance threshold",
                    {
                        "duration_ms": execution["duration_ms"],
                        "threshold_ms": self.performance_threshold_ms,
                    },
                )
            return

        failures = self.consecutive_failures.get(job_name, 0) + 1
        self.consecutive_failures[job_name] = failures
        logger.warning(f"Cron job {job_name} failed ({failures} consecutive)")

        if failures >= self.failure_threshold:
            severity = "critical" if failures >= self.failure_threshold * 2 else "high"
            self.trigger_alert(
                job_name,
                "failure",
                severity,
                f"Cron job {job_name} has failed {failures} consecutive times",
                {"consecutive_failures": failures, "last_error": execution["error"]},
            )

    def trigger_alert(self, job_name, alert_type, severity, message, details=None):
        """Send an alert unless alerting is off or the job is in cooldown"""
        if not self.enabled:
            logger.debug(f"Alerting disabled, skipping {alert_type} alert for {job_name}")
            return False

        now_ms = time.time() * 1000
        last_alert = self.last_alert_at.get(job_name)
        if last_alert is not None and now_ms - last_alert < self.cooldown_ms:
            logger.debug(f"Alert for {job_name} in cooldown period, skipping")
            return False

        alert = {
            "id": f"alert-{uuid.uuid4().hex[:12]}",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "job_name": job_name,
            "type": alert_type,
            "severity": severity,
            "message": message,
            "details": details or {},
        }
        logger.warning(f"Cron alert [{severity}] {message}")

        self.last_alert_at[job_name] = now_ms
        self._send_webhook(alert)
        return True

    def _send_webhook(self, alert):
        if not self.webhook_url:
            return False

        try:
            response = self._post_webhook(alert)
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to deliver cron alert {alert['id']}: {e}")
            return False

        if response.status_code >= 400:
            logger.error(
                f"Cron alert webhook answered {response.status_code}: {response.text[:200]}"
            )
            return False

        return True

    @retry_on_server_error(max_retries=3)
    def _post_webhook(self, alert):
        return self.session.post(self.webhook_url, json=alert, timeout=self.timeout)

    def get_job_status(self, job_name):
        failures = self.consecutive_failures.get(job_name, 0)
        if failures >= self.failure_threshold:
            return "failing"
        if failures > 0:
            return "degraded"
        return "healthy"

    def get_health_summary(self, job_name=None):
        """Health of one job, or of every job seen so far"""
        if job_name is None:
            return {name: self.get_health_summary(name) for name in self.history}

        history = list(self.history.get(job_name, ()))
        recent = history[-10:]
        recent_failures = sum(1 for e in recent if e["status"] == STATUS_FAILURE)
        durations = [e["duration_ms"] for e in recent if e["duration_ms"] is not None]

        return {
            "job_name": job_name,
            "total_executions": len(history),
            "recent_executions": len(recent),
            "recent_failures": recent_failures,
            "consecutive_failures": self.consecutive_failures.get(job_name, 0),
            "success_rate": (
                round((len(recent) - recent_failures) / len(recent) * 100, 1)
                if recent
                else 0.0
            ),
            "average_duration_ms": round(sum(durations) / len(durations)) if durations else 0,
            "last_execution": recent[-1]["started_at"] if recent else None,
            "status": self.get_job_status(job_name),
        }
