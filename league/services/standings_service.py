"""
Standings Service

Recomputes the league table from scored bets and the latest questionnaire
snapshot. Results are never stored; callers cache them if needed.
"""

from dataclasses import asdict, dataclass

from sqlalchemy.exc import SQLAlchemyError

from league import db
from league.models import BettingRound, RoundStatus, User, UserBet, UserRoundDynamicPoints
from league.utils.logging_config import ContextualLogger
from league.utils.performance import timer

logger = ContextualLogger(__name__, {"service": "StandingsService"})


@dataclass
class StandingsEntry:
    user_id: int
    username: str
    game_points: int
    dynamic_points: int
    combined_total: int
    rank: int = 0

    def to_dict(self):
        return asdict(self)


def sort_and_rank(entries):
    """
    Order by combined total, then game points (both descending), then user
    id. Ranks are dense on the combined total, so equal totals share a rank.
    """
    ordered = sorted(
        entries, key=lambda e: (-e.combined_total, -e.game_points, e.user_id)
    )

    rank = 0
    previous_total = None
    for entry in ordered:
        if entry.combined_total != previous_total:
            rank += 1
            previous_total = entry.combined_total
        entry.rank = rank

    return ordered


class StandingsService:
    @timer
    def calculate_standings(self, season_id=None):
        """
        Full ranked standings.

        Returns:
            list of StandingsEntry, [] for an empty league, None when the
            data could not be read
        """
        log = logger.bind(function="calculate_standings", season_id=season_id)

        try:
            game_points = self._game_points_by_user(season_id)
            dynamic_points = self._dynamic_points_by_user(season_id)

            user_ids = set(game_points) | set(dynamic_points)
            if not user_ids:
                log.info("No participants yet, standings are empty")
                return []

            usernames = dict(
                db.session.query(User.id, User.username)
                .filter(User.id.in_(user_ids))
                .all()
            )
        except SQLAlchemyError as e:
            db.session.rollback()
            log.error(f"Failed to load standings data: {e}")
            return None

        entries = []
        for user_id in user_ids:
            game = game_points.get(user_id, 0)
            dynamic = dynamic_points.get(user_id, 0)
            entries.append(
                StandingsEntry(
                    user_id=user_id,
                    username=usernames.get(user_id, f"user-{user_id}"),
                    game_points=game,
                    dynamic_points=dynamic,
                    combined_total=game + dynamic,
                )
            )

        standings = sort_and_rank(entries)
        log.debug(f"Calculated standings for {len(standings)} users")
        return standings

    def _game_points_by_user(self, season_id):
        """Sum of awarded points; users with only unscored bets get 0"""
        query = db.session.query(
            UserBet.user_id,
            db.func.coalesce(db.func.sum(UserBet.points_awarded), 0),
        )
        if season_id is not None:
            query = query.join(
                BettingRound, UserBet.betting_round_id == BettingRound.id
            ).filter(BettingRound.season_id == season_id)

        return {
            user_id: int(points)
            for user_id, points in query.group_by(UserBet.user_id).all()
        }

    def _dynamic_points_by_user(self, season_id):
        """Questionnaire points from the most recently scored round"""
        latest = self._latest_scored_round(season_id)
        if latest is None:
            return {}

        rows = (
            db.session.query(
                UserRoundDynamicPoints.user_id, UserRoundDynamicPoints.dynamic_points
            )
            .filter(UserRoundDynamicPoints.betting_round_id == latest.id)
            .all()
        )
        return {user_id: int(points or 0) for user_id, points in rows}

    def _latest_scored_round(self, season_id):
        query = BettingRound.query.filter(BettingRound.status == RoundStatus.SCORED)
        if season_id is not None:
            query = query.filter(BettingRound.season_id == season_id)
        return query.order_by(
            BettingRound.scored_at.desc().nullslast(), BettingRound.id.desc()
        ).first()
