import enum
from datetime import datetime, timezone

from league import db
from league.utils.errors import InvalidRoundTransitionError


class RoundStatus(enum.Enum):
    OPEN = "open"
    SCORING = "scoring"
    SCORED = "scored"
    CANCELLED = "cancelled"

    def can_transition_to(self, target):
        return target in ROUND_TRANSITIONS[self]

    @property
    def is_terminal(self):
        return not ROUND_TRANSITIONS[self]


# Status only moves forward; scored and cancelled rounds are final
ROUND_TRANSITIONS = {
    RoundStatus.OPEN: frozenset({RoundStatus.SCORING, RoundStatus.CANCELLED}),
    RoundStatus.SCORING: frozenset({RoundStatus.SCORED, RoundStatus.CANCELLED}),
    RoundStatus.SCORED: frozenset(),
    RoundStatus.CANCELLED: frozenset(),
}

_missing = set(RoundStatus) - set(ROUND_TRANSITIONS)
if _missing:
    raise RuntimeError(f"No transitions defined for round status: {_missing}")


betting_round_fixtures = db.Table(
    "betting_round_fixtures",
    db.Column(
        "betting_round_id",
        db.Integer,
        db.ForeignKey("betting_rounds.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    db.Column(
        "fixture_id",
        db.Integer,
        db.ForeignKey("fixtures.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    db.Index("idx_round_fixture_fixture", "fixture_id"),
)


class BettingRound(db.Model):
    """A group of fixtures users bet on together, sharing one deadline"""

    __tablename__ = "betting_rounds"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    season_id = db.Column(db.Integer, db.ForeignKey("seasons.id"), nullable=False)
    status = db.Column(
        db.Enum(
            RoundStatus,
            name="round_status",
            native_enum=False,
            validate_strings=True,
            values_callable=lambda statuses: [status.value for status in statuses],
        ),
        nullable=False,
        default=RoundStatus.OPEN,
    )

    # Deadline for bets (kickoff of the earliest fixture)
    earliest_fixture_kickoff = db.Column(db.DateTime)
    scored_at = db.Column(db.DateTime)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    fixtures = db.relationship(
        "Fixture",
        secondary=betting_round_fixtures,
        backref=db.backref("betting_rounds", lazy="dynamic"),
        order_by="Fixture.kickoff",
    )
    bets = db.relationship("UserBet", backref="betting_round", lazy="dynamic")

    __table_args__ = (
        db.Index("idx_round_status", "status"),
        db.Index("idx_round_season_status", "season_id", "status"),
    )

    def __repr__(self):
        return f"<BettingRound {self.id} {self.name} ({self.status.value})>"

    def transition_to(self, target):
        """Move the round to a new status or raise InvalidRoundTransitionError"""
        if not self.status.can_transition_to(target):
            raise InvalidRoundTransitionError(self.id, self.status, target)

        self.status = target
        if target is RoundStatus.SCORED:
            self.scored_at = datetime.now(timezone.utc)

    def get_fixture_ids(self):
        """Linked fixture ids straight from the join table"""
        rows = db.session.execute(
            db.select(betting_round_fixtures.c.fixture_id).where(
                betting_round_fixtures.c.betting_round_id == self.id
            )
        )
        return [row.fixture_id for row in rows]

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "season_id": self.season_id,
            "status": self.status.value,
            "earliest_fixture_kickoff": (
                self.earliest_fixture_kickoff.isoformat()
                if self.earliest_fixture_kickoff
                else None
            ),
            "scored_at": self.scored_at.isoformat() if self.scored_at else None,
        }
