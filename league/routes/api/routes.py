from flask import current_app, jsonify, request

from league import db
from league.models import (
    COMPETITION_LAST_ROUND_SPECIAL,
    COMPETITION_LEAGUE,
    Season,
    SeasonWinner,
)
from league.routes.api import bp
from league.services import get_services
from league.utils.cache_utils import cached_query

COMPETITION_TYPES = (COMPETITION_LEAGUE, COMPETITION_LAST_ROUND_SPECIAL)


def _resolve_season_id():
    """season_id from the query string, the current season otherwise"""
    season_id = request.args.get("season_id", type=int)
    if season_id is not None:
        return season_id

    current_season = Season.get_current_season()
    return current_season.id if current_season else None


@cached_query("standings", timeout_config_key="STANDINGS_CACHE_TIMEOUT")
def _standings_payload(season_id):
    standings = get_services().standings.calculate_standings(season_id)
    if standings is None:
        return None
    return [entry.to_dict() for entry in standings]


@cached_query("standings", timeout_config_key="STANDINGS_CACHE_TIMEOUT")
def _cup_standings_payload(season_id):
    result = get_services().cup.calculate_cup_standings(season_id)
    if result.errors:
        return None
    return result.to_dict()


@bp.route("/standings")
def standings():
    """League standings, paginated"""
    season_id = _resolve_season_id()
    if season_id is None:
        return jsonify({"error": "No season specified"}), 400

    page = max(request.args.get("page", 1, type=int), 1)
    limit = request.args.get(
        "limit", current_app.config.get("ITEMS_PER_PAGE", 20), type=int
    )
    limit = min(max(limit, 1), current_app.config.get("MAX_ITEMS_PER_PAGE", 100))

    entries = _standings_payload(season_id)
    if entries is None:
        return jsonify({"error": "Failed to calculate standings"}), 500

    total = len(entries)
    start = (page - 1) * limit

    return jsonify(
        {
            "season_id": season_id,
            "standings": entries[start : start + limit],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": (total + limit - 1) // limit,
            },
        }
    )


@bp.route("/last-round-special/standings")
def last_round_special_standings():
    """Cup standings of a season"""
    season_id = _resolve_season_id()
    if season_id is None:
        return jsonify({"error": "No season specified"}), 400

    season = db.get_or_404(Season, season_id)

    payload = _cup_standings_payload(season_id)
    if payload is None:
        return jsonify({"error": "Failed to calculate cup standings"}), 500

    payload = dict(payload, is_active=season.last_round_special_activated)
    return jsonify(payload)


@cached_query("standings", timeout=3600)
def _hall_of_fame_payload(competition_type):
    return [winner.to_dict() for winner in SeasonWinner.get_hall_of_fame(competition_type)]


@bp.route("/hall-of-fame")
def hall_of_fame():
    """Winners of every season"""
    competition_type = request.args.get("competition_type")
    if competition_type and competition_type not in COMPETITION_TYPES:
        return jsonify({"error": f"Unknown competition type: {competition_type}"}), 400

    winners = _hall_of_fame_payload(competition_type)
    return jsonify({"competition_type": competition_type, "winners": winners})


HALL_OF_FAME_SORTS = ("wins_desc", "points_desc")


@cached_query("standings", timeout=3600)
def _hall_of_fame_stats_payload(competition_type, sort, limit):
    return SeasonWinner.get_win_counts(competition_type, sort=sort, limit=limit)


@bp.route("/hall-of-fame/stats")
def hall_of_fame_stats():
    """Titles per player, most decorated first"""
    sort = request.args.get("sort", "wins_desc")
    if sort not in HALL_OF_FAME_SORTS:
        return jsonify({"error": f"Invalid sort parameter: {sort}"}), 400

    competition_type = request.args.get("competition_type", "all")
    if competition_type != "all" and competition_type not in COMPETITION_TYPES:
        return jsonify({"error": f"Unknown competition type: {competition_type}"}), 400

    limit = min(max(request.args.get("limit", 50, type=int), 1), 100)

    players = _hall_of_fame_stats_payload(
        None if competition_type == "all" else competition_type, sort, limit
    )
    return jsonify(
        {
            "competition_type": competition_type,
            "sort": sort,
            "limit": limit,
            "players": players,
        }
    )


@bp.route("/hall-of-fame/season/<int:season_id>")
def season_hall_of_fame(season_id):
    """Winners of one season, grouped by competition"""
    season = db.get_or_404(Season, season_id)

    grouped = {competition: [] for competition in COMPETITION_TYPES}
    for winner in SeasonWinner.get_season_winners(season_id):
        grouped.setdefault(winner.competition_type, []).append(winner.to_dict())

    return jsonify({"season": season.to_dict(), "winners": grouped})
