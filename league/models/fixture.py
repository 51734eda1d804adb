from datetime import datetime, timezone

from league import db
from league.utils.scoring import FINISHED_STATUSES, SEASON_FINAL_STATUSES, derive_result


class Fixture(db.Model):
    """A real-world match, kept in sync by the football data import"""

    __tablename__ = "fixtures"

    id = db.Column(db.Integer, primary_key=True)
    api_id = db.Column(db.Integer, unique=True, nullable=False, index=True)
    season_id = db.Column(db.Integer, db.ForeignKey("seasons.id"), nullable=False)
    round_name = db.Column(db.String(100))  # e.g., "Regular Season - 12"

    # Teams
    home_team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=False)
    away_team_id = db.Column(db.Integer, db.ForeignKey("teams.id"), nullable=False)

    # Match timing
    kickoff = db.Column(db.DateTime, nullable=False)

    # Status code from the data provider: NS, 1H, HT, FT, AET, PEN, AWD, ...
    status_short = db.Column(db.String(10), nullable=False, default="NS")

    # Scores
    home_goals = db.Column(db.Integer)
    away_goals = db.Column(db.Integer)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    bets = db.relationship("UserBet", backref="fixture", lazy="dynamic")

    # Indexes
    __table_args__ = (
        db.Index("idx_fixture_season_status", "season_id", "status_short"),
        db.Index("idx_fixture_kickoff", "kickoff"),
        db.CheckConstraint("home_team_id != away_team_id", name="different_teams"),
        db.CheckConstraint(
            "status_short NOT IN ('FT', 'AET', 'PEN') "
            "OR (home_goals IS NOT NULL AND away_goals IS NOT NULL)",
            name="finished_fixture_has_goals",
        ),
    )

    def __repr__(self):
        return f"<Fixture {self.api_id} {self.status_short}>"

    @property
    def is_finished(self):
        return self.status_short in FINISHED_STATUSES

    @property
    def is_season_final(self):
        """Finished, awarded or walkover"""
        return self.status_short in SEASON_FINAL_STATUSES

    @property
    def result(self):
        """1/X/2 outcome, None until the match is finished with goals"""
        if not self.is_finished:
            return None
        return derive_result(self.home_goals, self.away_goals)

    def to_dict(self):
        return {
            "id": self.id,
            "api_id": self.api_id,
            "season_id": self.season_id,
            "home_team": self.home_team.to_dict() if self.home_team else None,
            "away_team": self.away_team.to_dict() if self.away_team else None,
            "kickoff": self.kickoff.isoformat() if self.kickoff else None,
            "status_short": self.status_short,
            "home_goals": self.home_goals,
            "away_goals": self.away_goals,
            "result": self.result,
        }
