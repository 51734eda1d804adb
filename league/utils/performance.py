"""
Timing helpers for league services and cron jobs

Slow service calls and requests are logged; operations timed inside a
request are collected on `g` so a slow request can list what it spent its
time on.
"""

import functools
import time

from flask import current_app, g, has_app_context, has_request_context, request

from league.utils.logging_config import get_logger

logger = get_logger(__name__)


def _threshold(config_key, default):
    """Seconds from app config, or the default outside an app context"""
    if has_app_context():
        return current_app.config.get(config_key, default)
    return default


def timer(func):
    """Log how long a service call took, as a warning past SLOW_FUNCTION_THRESHOLD"""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        started = time.monotonic()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            logger.error(
                f"{func.__qualname__} raised after {time.monotonic() - started:.2f}s: {e}"
            )
            raise

        elapsed = time.monotonic() - started
        threshold = _threshold("SLOW_FUNCTION_THRESHOLD", 1.0)
        if elapsed > threshold:
            logger.warning(f"Slow call {func.__qualname__}: {elapsed:.2f}s (> {threshold}s)")
        else:
            logger.debug(f"{func.__qualname__} took {elapsed:.3f}s")
        return result

    return wrapper


class PerformanceMonitor:
    """
    Times a block of work, e.g. one cron job run.

    `duration_ms` is readable while the block runs and after it exits,
    including when the block raised.
    """

    def __init__(self, operation_name, log_threshold=0.1):
        self.operation_name = operation_name
        self.log_threshold = log_threshold
        self.started = None
        self.finished = None

    @property
    def duration_ms(self):
        if self.started is None:
            return 0
        finished = self.finished if self.finished is not None else time.monotonic()
        return int((finished - self.started) * 1000)

    def __enter__(self):
        self.started = time.monotonic()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.finished = time.monotonic()
        seconds = self.duration_ms / 1000

        if exc_type is not None:
            logger.error(f"{self.operation_name} failed after {seconds:.3f}s: {exc_val}")
        elif seconds > self.log_threshold:
            logger.info(f"{self.operation_name} finished in {seconds:.3f}s")

        if has_request_context():
            g.setdefault("timed_operations", []).append(
                (self.operation_name, seconds, exc_type is None)
            )


def track_request_performance():
    g.request_started = time.monotonic()


def log_request_performance():
    """Warn about requests slower than SLOW_REQUEST_THRESHOLD"""
    started = g.get("request_started")
    if started is None:
        return

    elapsed = time.monotonic() - started
    threshold = _threshold("SLOW_REQUEST_THRESHOLD", 2.0)
    if elapsed <= threshold:
        return

    logger.warning(f"Slow request {request.method} {request.path}: {elapsed:.2f}s")
    for name, seconds, ok in g.get("timed_operations", []):
        logger.info(f"  {name}: {seconds:.3f}s{'' if ok else ' (failed)'}")
