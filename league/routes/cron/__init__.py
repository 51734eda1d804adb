from flask import Blueprint

bp = Blueprint("cron", __name__)

from league.routes.cron import routes  # noqa: E402, F401
