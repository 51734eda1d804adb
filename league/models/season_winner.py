"""Season Winner Models - Hall of Fame records"""

from datetime import datetime, timezone

from league import db
from league.models.user import User

COMPETITION_LEAGUE = "league"
COMPETITION_LAST_ROUND_SPECIAL = "last_round_special"
COMPETITION_TYPES = (COMPETITION_LEAGUE, COMPETITION_LAST_ROUND_SPECIAL)


class SeasonWinnerDetermination(db.Model):
    """One row per (season, competition) once its winners are decided"""

    __tablename__ = "season_winner_determinations"

    id = db.Column(db.Integer, primary_key=True)
    season_id = db.Column(db.Integer, db.ForeignKey("seasons.id"), nullable=False)
    competition_type = db.Column(db.String(30), nullable=False)
    winner_count = db.Column(db.Integer, nullable=False, default=0)
    top_points = db.Column(db.Integer)
    determined_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint(
            "season_id", "competition_type", name="unique_season_competition_determination"
        ),
    )

    def __repr__(self):
        return f"<SeasonWinnerDetermination season={self.season_id} {self.competition_type}>"

    @staticmethod
    def exists(season_id, competition_type):
        return (
            SeasonWinnerDetermination.query.filter_by(
                season_id=season_id, competition_type=competition_type
            ).first()
            is not None
        )


class SeasonWinner(db.Model):
    """A user who won a season competition (several when tied)"""

    __tablename__ = "season_winners"

    id = db.Column(db.Integer, primary_key=True)

    # Winner identification
    season_id = db.Column(db.Integer, db.ForeignKey("seasons.id"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    competition_type = db.Column(db.String(30), nullable=False)

    # Stats at time of win
    game_points = db.Column(db.Integer, default=0)
    dynamic_points = db.Column(db.Integer, default=0)
    total_points = db.Column(db.Integer, nullable=False, default=0)
    is_tied = db.Column(db.Boolean, default=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    season = db.relationship("Season", backref="winners")
    user = db.relationship("User", backref="season_wins")

    # Constraints
    __table_args__ = (
        db.UniqueConstraint(
            "season_id",
            "user_id",
            "competition_type",
            name="unique_season_winner",
        ),
        db.Index("idx_winner_season", "season_id"),
        db.Index("idx_winner_user", "user_id"),
        db.Index("idx_winner_competition", "competition_type"),
    )

    def __repr__(self):
        return f"<SeasonWinner {self.competition_type} season={self.season_id}: User {self.user_id}>"

    @staticmethod
    def get_hall_of_fame(competition_type=None):
        """All winners, newest season first"""
        query = SeasonWinner.query
        if competition_type:
            query = query.filter_by(competition_type=competition_type)
        return query.order_by(
            SeasonWinner.season_id.desc(),
            SeasonWinner.competition_type.asc(),
            SeasonWinner.user_id.asc(),
        ).all()

    @staticmethod
    def get_season_winners(season_id):
        """All awards for a season"""
        return (
            SeasonWinner.query.filter_by(season_id=season_id)
            .order_by(SeasonWinner.competition_type.asc(), SeasonWinner.user_id.asc())
            .all()
        )

    @staticmethod
    def get_win_counts(competition_type=None, sort="wins_desc", limit=None):
        """
        Titles per user across all seasons.

        Args:
            competition_type: Only count wins of this competition when given
            sort: "wins_desc" (ties broken by points) or "points_desc"
            limit: Maximum number of users returned
        """
        wins = db.func.count(SeasonWinner.id).label("wins")
        total_points = db.func.coalesce(db.func.sum(SeasonWinner.total_points), 0).label(
            "total_points"
        )

        query = (
            db.session.query(
                SeasonWinner.user_id,
                User.username,
                wins,
                db.func.sum(
                    db.case((SeasonWinner.competition_type == COMPETITION_LEAGUE, 1), else_=0)
                ).label("league_wins"),
                db.func.sum(
                    db.case(
                        (SeasonWinner.competition_type == COMPETITION_LAST_ROUND_SPECIAL, 1),
                        else_=0,
                    )
                ).label("last_round_special_wins"),
                total_points,
                db.func.max(SeasonWinner.season_id).label("latest_season_id"),
            )
            .join(User, User.id == SeasonWinner.user_id)
            .group_by(SeasonWinner.user_id, User.username)
        )
        if competition_type:
            query = query.filter(SeasonWinner.competition_type == competition_type)

        if sort == "points_desc":
            query = query.order_by(total_points.desc(), wins.desc(), SeasonWinner.user_id.asc())
        else:
            query = query.order_by(wins.desc(), total_points.desc(), SeasonWinner.user_id.asc())

        if limit:
            query = query.limit(limit)

        return [
            {
                "user_id": row.user_id,
                "username": row.username,
                "wins": row.wins,
                "league_wins": int(row.league_wins or 0),
                "last_round_special_wins": int(row.last_round_special_wins or 0),
                "total_points": int(row.total_points),
                "latest_season_id": row.latest_season_id,
            }
            for row in query.all()
        ]

    def to_dict(self):
        """Convert to dictionary"""
        return {
            "id": self.id,
            "season_id": self.season_id,
            "season": self.season.to_dict() if self.season else None,
            "user_id": self.user_id,
            "user": self.user.to_dict() if self.user else None,
            "competition_type": self.competition_type,
            "game_points": self.game_points,
            "dynamic_points": self.dynamic_points,
            "total_points": self.total_points,
            "is_tied": self.is_tied,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
