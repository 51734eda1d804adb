from datetime import datetime, timezone

from league import db


class Season(db.Model):
    __tablename__ = "seasons"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)  # e.g., "Eliteserien 2025"

    # Football data provider identifiers
    competition_api_id = db.Column(db.Integer, nullable=False)
    api_season_year = db.Column(db.Integer, nullable=False)

    # Season dates
    start_date = db.Column(db.Date)
    end_date = db.Column(db.Date)

    # Status
    is_current = db.Column(db.Boolean, default=False)
    completed_at = db.Column(db.DateTime)
    winner_determined_at = db.Column(db.DateTime)

    # Last Round Special cup
    last_round_special_activated = db.Column(db.Boolean, default=False, nullable=False)
    last_round_special_activated_at = db.Column(db.DateTime)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    fixtures = db.relationship(
        "Fixture", backref="season", lazy="dynamic", cascade="all, delete-orphan"
    )
    betting_rounds = db.relationship("BettingRound", backref="season", lazy="dynamic")

    # Database indexes and constraints
    __table_args__ = (
        db.UniqueConstraint(
            "competition_api_id", "api_season_year", name="unique_season_competition_year"
        ),
        db.Index("idx_season_current", "is_current"),
        db.Index("idx_season_completed", "completed_at"),
    )

    def __repr__(self):
        return f"<Season {self.name}>"

    @property
    def is_completed(self):
        return self.completed_at is not None

    @property
    def is_winner_determined(self):
        return self.winner_determined_at is not None

    @staticmethod
    def get_current_season():
        """Get the current season"""
        return Season.query.filter_by(is_current=True).first()

    @staticmethod
    def create_season(competition_api_id, api_season_year, name=None):
        """Create a new season"""
        season = Season(
            competition_api_id=competition_api_id,
            api_season_year=api_season_year,
            name=name or f"Season {api_season_year}",
        )
        db.session.add(season)
        return season

    def activate(self):
        """Make this the current season (clears the flag on all others)"""
        Season.query.update({"is_current": False})
        self.is_current = True

    def to_dict(self):
        """Convert season to dictionary for API responses"""
        return {
            "id": self.id,
            "name": self.name,
            "competition_api_id": self.competition_api_id,
            "api_season_year": self.api_season_year,
            "is_current": self.is_current,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "winner_determined_at": (
                self.winner_determined_at.isoformat()
                if self.winner_determined_at
                else None
            ),
            "last_round_special_activated": self.last_round_special_activated,
        }
