import hmac
import logging
from datetime import datetime, timezone
from functools import wraps

from flask import current_app, jsonify, request

from league import limiter
from league.routes.cron import bp
from league.services import get_services

logger = logging.getLogger(__name__)


def _presented_secret():
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[len("Bearer ") :].strip()
    return request.headers.get("X-Cron-Secret", "")


def require_cron_secret(f):
    """Only callers presenting CRON_SECRET may trigger cron jobs"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected = current_app.config.get("CRON_SECRET")
        if not expected:
            logger.error("CRON_SECRET is not configured, refusing cron request")
            return _error_response("Cron secret not configured", 500)

        presented = _presented_secret()
        if not presented or not hmac.compare_digest(
            presented.encode("utf-8"), expected.encode("utf-8")
        ):
            logger.warning(
                f"Unauthorized cron request to {request.path} from {request.remote_addr}"
            )
            return _error_response("Unauthorized", 401)

        return f(*args, **kwargs)

    return decorated_function


def _error_response(message, status_code):
    return (
        jsonify(
            {
                "success": False,
                "message": message,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        ),
        status_code,
    )


def _outcome_response(outcome):
    return jsonify(outcome.to_dict()), outcome.http_status


@bp.route("/process-rounds")
@limiter.exempt
@require_cron_secret
def process_rounds():
    return _outcome_response(get_services().cron_pipeline.process_rounds())


@bp.route("/cup-activation")
@limiter.exempt
@require_cron_secret
def cup_activation():
    return _outcome_response(get_services().cron_pipeline.activate_cup())


@bp.route("/season-completion")
@limiter.exempt
@require_cron_secret
def season_completion():
    return _outcome_response(get_services().cron_pipeline.complete_seasons())


@bp.route("/winner-determination")
@limiter.exempt
@require_cron_secret
def winner_determination():
    return _outcome_response(get_services().cron_pipeline.determine_winners())


@bp.route("/run-all")
@limiter.exempt
@require_cron_secret
def run_all():
    return _outcome_response(get_services().cron_pipeline.run_all())


@bp.route("/health")
@limiter.exempt
@require_cron_secret
def health():
    """Recent execution health of every cron job"""
    data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "jobs": get_services().alerting.get_health_summary(),
    }

    scheduler = current_app.extensions.get("scheduler")
    if scheduler is not None:
        data["scheduler"] = scheduler.get_status()

    return jsonify(data)
