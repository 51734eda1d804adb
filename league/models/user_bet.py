from datetime import datetime, timezone

from league import db
from league.utils.errors import BetAlreadyScoredError
from league.utils.scoring import Scored, bet_score


class UserBet(db.Model):
    __tablename__ = "user_bets"

    id = db.Column(db.Integer, primary_key=True)

    # Bet identification
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    fixture_id = db.Column(db.Integer, db.ForeignKey("fixtures.id"), nullable=False)
    betting_round_id = db.Column(
        db.Integer, db.ForeignKey("betting_rounds.id"), nullable=False
    )

    # Prediction: "1" home win, "X" draw, "2" away win
    prediction = db.Column(db.String(1), nullable=False)
    predicted_home_goals = db.Column(db.Integer)
    predicted_away_goals = db.Column(db.Integer)

    # Null until the round is scored
    points_awarded = db.Column(db.Integer)
    scored_at = db.Column(db.DateTime)

    # Timestamps
    submitted_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Constraints and indexes
    __table_args__ = (
        db.UniqueConstraint("user_id", "fixture_id", name="unique_user_fixture_bet"),
        db.Index("idx_bet_round", "betting_round_id"),
        db.Index("idx_bet_user_round", "user_id", "betting_round_id"),
    )

    def __repr__(self):
        return f"<UserBet user_id={self.user_id} fixture_id={self.fixture_id} prediction={self.prediction}>"

    @property
    def score(self):
        """Unscored() or Scored(points)"""
        return bet_score(self.points_awarded)

    @property
    def is_scored(self):
        return isinstance(self.score, Scored)

    def award_points(self, points, allow_overwrite=False):
        """
        Record the points for this bet.

        Points are written once. A retroactive correction (a fixed result)
        must pass allow_overwrite=True.

        Returns True when the stored value changed.
        """
        current = self.score
        if isinstance(current, Scored):
            if not allow_overwrite:
                raise BetAlreadyScoredError(self.id, current.points)
            if current.points == points:
                return False

        self.points_awarded = points
        self.scored_at = datetime.now(timezone.utc)
        return True

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "fixture_id": self.fixture_id,
            "betting_round_id": self.betting_round_id,
            "prediction": self.prediction,
            "predicted_home_goals": self.predicted_home_goals,
            "predicted_away_goals": self.predicted_away_goals,
            "points_awarded": self.points_awarded,
        }
