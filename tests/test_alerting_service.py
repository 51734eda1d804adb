"""Tests for cron execution history and webhook alerts."""
from types import SimpleNamespace

import pytest
import requests

from league.services import alerting_service
from league.services.alerting_service import (
    MAX_HISTORY_PER_JOB,
    STATUS_FAILURE,
    STATUS_SUCCESS,
    CronAlertingService,
)


class RecordingSession:
    """Stands in for requests.Session and answers with queued status codes."""

    def __init__(self, *status_codes):
        self.status_codes = list(status_codes) or [200]
        self.posts = []
        self.headers = {}

    def post(self, url, json=None, timeout=None):
        self.posts.append(json)
        status = self.status_codes.pop(0) if len(self.status_codes) > 1 else self.status_codes[0]
        return SimpleNamespace(status_code=status, text="")


@pytest.fixture
def no_sleep(monkeypatch):
    delays = []
    monkeypatch.setattr(alerting_service.time, "sleep", delays.append)
    return delays


def make_alerting(session=None, **kwargs):
    kwargs.setdefault("enabled", True)
    kwargs.setdefault("webhook_url", "https://hooks.example.com/cron")
    kwargs.setdefault("retry_base_delay", 0)
    alerting = CronAlertingService(**kwargs)
    alerting.session = session or RecordingSession()
    return alerting


def run(alerting, job_name, status, duration_ms=5, error=None):
    execution_id = alerting.start_execution(job_name)
    return alerting.complete_execution(
        execution_id, status, error=error, metrics={"duration_ms": duration_ms}
    )


class TestFailureAlerts:
    def test_alert_after_threshold(self):
        alerting = make_alerting(failure_threshold=3)

        run(alerting, "process-rounds", STATUS_FAILURE, error="boom")
        run(alerting, "process-rounds", STATUS_FAILURE, error="boom")
        assert alerting.session.posts == []

        run(alerting, "process-rounds", STATUS_FAILURE, error="boom")

        assert len(alerting.session.posts) == 1
        alert = alerting.session.posts[0]
        assert alert["type"] == "failure"
        assert alert["severity"] == "high"
        assert alert["details"] == {"consecutive_failures": 3, "last_error": "boom"}

    def test_cooldown_suppresses_repeat_alerts(self):
        alerting = make_alerting(failure_threshold=1)

        run(alerting, "process-rounds", STATUS_FAILURE)
        run(alerting, "process-rounds", STATUS_FAILURE)

        assert len(alerting.session.posts) == 1

    def test_cooldown_is_per_job(self):
        alerting = make_alerting(failure_threshold=1)

        run(alerting, "process-rounds", STATUS_FAILURE)
        run(alerting, "cup-activation", STATUS_FAILURE)

        assert [a["job_name"] for a in alerting.session.posts] == [
            "process-rounds",
            "cup-activation",
        ]

    def test_critical_after_twice_the_threshold(self):
        alerting = make_alerting(failure_threshold=1, cooldown_ms=0)

        run(alerting, "process-rounds", STATUS_FAILURE)
        run(alerting, "process-rounds", STATUS_FAILURE)

        assert [a["severity"] for a in alerting.session.posts] == ["high", "critical"]


class TestRecoveryAndPerformance:
    def test_recovery_alert_after_failure_streak(self):
        alerting = make_alerting(failure_threshold=2, cooldown_ms=0)
        run(alerting, "season-completion", STATUS_FAILURE)
        run(alerting, "season-completion", STATUS_FAILURE)

        run(alerting, "season-completion", STATUS_SUCCESS)

        assert [a["type"] for a in alerting.session.posts] == ["failure", "recovery"]
        assert alerting.session.posts[-1]["details"] == {"previous_failures": 2}
        assert alerting.consecutive_failures["season-completion"] == 0

    def test_no_recovery_below_threshold(self):
        alerting = make_alerting(failure_threshold=3)
        run(alerting, "season-completion", STATUS_FAILURE)

        run(alerting, "season-completion", STATUS_SUCCESS)

        assert alerting.session.posts == []

    def test_slow_run_raises_performance_alert(self):
        alerting = make_alerting(performance_threshold_ms=1000)

        run(alerting, "winner-determination", STATUS_SUCCESS, duration_ms=1500)

        alert = alerting.session.posts[0]
        assert alert["type"] == "performance"
        assert alert["details"] == {"duration_ms": 1500, "threshold_ms": 1000}


class TestDelivery:
    def test_disabled_alerting_never_posts(self):
        alerting = make_alerting(enabled=False, failure_threshold=1)

        run(alerting, "process-rounds", STATUS_FAILURE)

        assert alerting.session.posts == []
        assert alerting.consecutive_failures["process-rounds"] == 1

    def test_retries_server_errors(self, no_sleep):
        alerting = make_alerting(session=RecordingSession(500, 502, 200), failure_threshold=1)

        run(alerting, "process-rounds", STATUS_FAILURE)

        assert len(alerting.session.posts) == 3
        assert len(no_sleep) == 2

    def test_connection_error_is_logged_not_raised(self, no_sleep):
        class DownSession(RecordingSession):
            def post(self, url, json=None, timeout=None):
                self.posts.append(json)
                raise requests.exceptions.ConnectionError("refused")

        alerting = make_alerting(session=DownSession(), failure_threshold=1)

        execution = run(alerting, "process-rounds", STATUS_FAILURE)

        assert execution["status"] == STATUS_FAILURE
        assert len(alerting.session.posts) == 3

    def test_without_webhook_url_nothing_is_sent(self):
        alerting = make_alerting(webhook_url=None, failure_threshold=1)

        assert alerting.trigger_alert("process-rounds", "failure", "high", "down") is True
        assert alerting.session.posts == []


class TestHistoryAndHealth:
    def test_history_is_bounded(self):
        alerting = make_alerting(enabled=False)

        for _ in range(MAX_HISTORY_PER_JOB + 5):
            run(alerting, "process-rounds", STATUS_SUCCESS)

        assert len(alerting.history["process-rounds"]) == MAX_HISTORY_PER_JOB

    def test_unknown_execution_id(self):
        alerting = make_alerting()

        assert alerting.complete_execution("nope", STATUS_SUCCESS) is None

    def test_health_summary(self):
        alerting = make_alerting(enabled=False, failure_threshold=3)
        run(alerting, "process-rounds", STATUS_SUCCESS, duration_ms=10)
        run(alerting, "process-rounds", STATUS_FAILURE, duration_ms=30)

        summary = alerting.get_health_summary("process-rounds")

        assert summary["total_executions"] == 2
        assert summary["recent_failures"] == 1
        assert summary["success_rate"] == 50.0
        assert summary["average_duration_ms"] == 20
        assert summary["status"] == "degraded"

    def test_health_of_every_job(self):
        alerting = make_alerting(enabled=False, failure_threshold=1)
        run(alerting, "process-rounds", STATUS_SUCCESS)
        run(alerting, "cup-activation", STATUS_FAILURE)

        summary = alerting.get_health_summary()

        assert summary["process-rounds"]["status"] == "healthy"
        assert summary["cup-activation"]["status"] == "failing"

    def test_from_config(self):
        alerting = CronAlertingService.from_config(
            {"CRON_ALERTS_ENABLED": True, "CRON_FAILURE_THRESHOLD": 5}
        )

        assert alerting.enabled is True
        assert alerting.failure_threshold == 5
        assert alerting.cooldown_ms == 3600000
