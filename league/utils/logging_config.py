"""
Logging setup for the prediction league

Console output plus rotating files: everything in league.log, errors in
errors.log and cron/scheduler activity in cron.log. Services log through
ContextualLogger so season and round ids travel with every line.
"""

import logging
import logging.handlers
import os

from flask import has_request_context, request

PLAIN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MB = 1024 * 1024

# Loggers whose records also go to cron.log
CRON_LOGGERS = (
    "league.services.scheduler_service",
    "league.services.cron_pipeline",
    "league.services.alerting_service",
    "league.routes.cron.routes",
)

QUIET_LOGGERS = ("werkzeug", "urllib3", "requests", "flask_limiter", "apscheduler")


class RequestContextFilter(logging.Filter):
    """Stamp records with the HTTP request they were logged in, if any"""

    def filter(self, record):
        in_request = has_request_context()
        record.method = request.method if in_request else "-"
        record.url = request.url if in_request else "-"
        record.remote_addr = request.remote_addr if in_request else "-"
        return True


class ColoredFormatter(logging.Formatter):
    """Level names in color, for the debug console"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record):
        color = self.COLORS.get(record.levelname)
        if color is None:
            return super().format(record)
        # Other handlers share the record, color a copy
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def _rotating_handler(path, level, fmt, max_bytes, backups):
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backups
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=DATE_FORMAT))
    handler.addFilter(RequestContextFilter())
    return handler


def _console_handler(level, debug):
    handler = logging.StreamHandler()
    handler.setLevel(level)
    if debug:
        handler.setFormatter(
            ColoredFormatter(f"{PLAIN_FORMAT} [%(filename)s:%(lineno)d]", datefmt="%H:%M:%S")
        )
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logging(app):
    """
    Configure the root logger from app config

    Args:
        app: Flask application instance
    """
    level = getattr(logging, app.config.get("LOG_LEVEL", "INFO").upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    if app.config.get("LOG_TO_CONSOLE", True):
        root_logger.addHandler(_console_handler(level, app.debug))

    if app.config.get("LOG_TO_FILE", True):
        log_dir = app.config.get("LOG_DIR", "logs")
        os.makedirs(log_dir, exist_ok=True)

        root_logger.addHandler(
            _rotating_handler(
                os.path.join(log_dir, "league.log"),
                level,
                f"{PLAIN_FORMAT} [%(method)s %(url)s] [%(remote_addr)s]",
                10 * MB,
                5,
            )
        )
        root_logger.addHandler(
            _rotating_handler(
                os.path.join(log_dir, "errors.log"),
                logging.ERROR,
                f"{PLAIN_FORMAT} [%(pathname)s:%(lineno)d] [%(method)s %(url)s]",
                5 * MB,
                3,
            )
        )

        cron_handler = _rotating_handler(
            os.path.join(log_dir, "cron.log"), logging.INFO, PLAIN_FORMAT, 5 * MB, 3
        )
        for name in CRON_LOGGERS:
            cron_logger = logging.getLogger(name)
            for handler in list(cron_logger.handlers):
                cron_logger.removeHandler(handler)
            cron_logger.addHandler(cron_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    app.logger.info(f"Logging configured at {logging.getLevelName(level)}")


def get_logger(name):
    return logging.getLogger(name)


class ContextualLogger:
    """
    Logger that appends key=value context to every message.

    `bind()` returns a child with more context, e.g.
    `logger.bind(season_id=3).info("Season complete")` logs
    "Season complete [service=... season_id=3]".
    """

    def __init__(self, name, context=None):
        self.logger = get_logger(name)
        self.context = dict(context or {})

    def bind(self, **context):
        return ContextualLogger(self.logger.name, {**self.context, **context})

    def _with_context(self, message):
        if not self.context:
            return message
        pairs = " ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{message} [{pairs}]"

    def debug(self, message, **kwargs):
        self.logger.debug(self._with_context(message), **kwargs)

    def info(self, message, **kwargs):
        self.logger.info(self._with_context(message), **kwargs)

    def warning(self, message, **kwargs):
        self.logger.warning(self._with_context(message), **kwargs)

    def error(self, message, **kwargs):
        self.logger.error(self._with_context(message), **kwargs)

    def exception(self, message, **kwargs):
        self.logger.exception(self._with_context(message), **kwargs)
