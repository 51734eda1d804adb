"""Per-round point snapshots written when a round is scored"""

from datetime import datetime, timezone

from league import db


class UserRoundDynamicPoints(db.Model):
    """Questionnaire points of a user as evaluated when a round was scored"""

    __tablename__ = "user_round_dynamic_points"

    id = db.Column(db.Integer, primary_key=True)
    betting_round_id = db.Column(
        db.Integer, db.ForeignKey("betting_rounds.id"), nullable=False
    )
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    dynamic_points = db.Column(db.Integer, nullable=False, default=0)
    league_winner_correct = db.Column(db.Boolean, nullable=False, default=False)
    top_scorer_correct = db.Column(db.Boolean, nullable=False, default=False)
    best_goal_difference_correct = db.Column(db.Boolean, nullable=False, default=False)
    last_place_correct = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint(
            "betting_round_id", "user_id", name="unique_round_user_dynamic_points"
        ),
    )

    def __repr__(self):
        return f"<UserRoundDynamicPoints round={self.betting_round_id} user={self.user_id} points={self.dynamic_points}>"

    def apply_result(self, result):
        """Copy a DynamicPointsResult onto this snapshot"""
        self.dynamic_points = result.total_points
        self.league_winner_correct = result.is_correct("league_winner")
        self.top_scorer_correct = result.is_correct("top_scorer")
        self.best_goal_difference_correct = result.is_correct("best_goal_difference")
        self.last_place_correct = result.is_correct("last_place")


class UserLastRoundSpecialPoints(db.Model):
    """Cup points of a user for one round scored after the cup activated"""

    __tablename__ = "user_last_round_special_points"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    betting_round_id = db.Column(
        db.Integer, db.ForeignKey("betting_rounds.id"), nullable=False
    )
    season_id = db.Column(db.Integer, db.ForeignKey("seasons.id"), nullable=False)
    points = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    user = db.relationship("User")

    __table_args__ = (
        db.UniqueConstraint(
            "user_id", "betting_round_id", name="unique_user_round_cup_points"
        ),
        db.Index("idx_cup_points_season", "season_id"),
    )

    def __repr__(self):
        return f"<UserLastRoundSpecialPoints round={self.betting_round_id} user={self.user_id} points={self.points}>"
