from datetime import datetime, timezone

from league import db
from league.utils.dynamic_points import TOP_SCORER


class SeasonAnswer(db.Model):
    """A user's prediction for one season question"""

    __tablename__ = "user_season_answers"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    season_id = db.Column(db.Integer, db.ForeignKey("seasons.id"), nullable=False)
    question_type = db.Column(db.String(50), nullable=False)

    # Team questions use answered_team_id, the top scorer question a player id
    answered_team_id = db.Column(db.Integer)
    answered_player_id = db.Column(db.Integer)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.UniqueConstraint(
            "user_id", "season_id", "question_type", name="unique_user_season_question"
        ),
        db.Index("idx_answer_season", "season_id"),
    )

    def __repr__(self):
        return f"<SeasonAnswer user_id={self.user_id} {self.question_type}={self.answer}>"

    @property
    def answer(self):
        if self.question_type == TOP_SCORER:
            return self.answered_player_id
        return self.answered_team_id

    @staticmethod
    def answers_by_user(season_id):
        """Map user id to {question_type: answer} for a season"""
        answers = {}
        for row in SeasonAnswer.query.filter_by(season_id=season_id).all():
            answers.setdefault(row.user_id, {})[row.question_type] = row.answer
        return answers


class SeasonQuestionResult(db.Model):
    """The correct answer set of one season question"""

    __tablename__ = "season_question_results"

    id = db.Column(db.Integer, primary_key=True)
    season_id = db.Column(db.Integer, db.ForeignKey("seasons.id"), nullable=False)
    question_type = db.Column(db.String(50), nullable=False)

    # JSON array of ids (several when tied); older rows hold a single id
    valid_answers = db.Column(db.JSON, nullable=False)

    computed_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint(
            "season_id", "question_type", name="unique_season_question_result"
        ),
    )

    def __repr__(self):
        return f"<SeasonQuestionResult season_id={self.season_id} {self.question_type}>"

    @staticmethod
    def valid_answers_for_season(season_id):
        """Map question_type to its raw valid answer set"""
        return {
            row.question_type: row.valid_answers
            for row in SeasonQuestionResult.query.filter_by(season_id=season_id).all()
        }
