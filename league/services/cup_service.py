"""
Last Round Special cup

The cup runs in parallel with the league over the last stretch of a season.
It activates once enough teams have only a few matches left, and from then on
each scored round adds its match points to the cup table (no questionnaire
points).
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from league import db
from league.models import Fixture, Season, User, UserLastRoundSpecialPoints
from league.utils.logging_config import ContextualLogger
from league.utils.scoring import SEASON_FINAL_STATUSES

logger = ContextualLogger(__name__, {"service": "CupService"})


@dataclass
class ActivationConditionResult:
    condition_met: bool
    total_teams: int
    teams_within_limit: int
    percentage: float
    threshold: float
    remaining_games_limit: int

    @property
    def reasoning(self):
        base = (
            f"{self.teams_within_limit}/{self.total_teams} teams ({self.percentage:.1f}%) "
            f"have <={self.remaining_games_limit} games remaining"
        )
        verdict = "meets" if self.condition_met else "does not meet"
        return f"{base}, which {verdict} the {self.threshold:g}% threshold"

    def to_dict(self):
        data = asdict(self)
        data["reasoning"] = self.reasoning
        return data


@dataclass
class CupActivationResult:
    season_id: int = None
    activated: bool = False
    already_activated: bool = False
    condition: ActivationConditionResult = None
    error: str = None

    @property
    def success(self):
        return self.error is None

    def to_dict(self):
        return {
            "season_id": self.season_id,
            "activated": self.activated,
            "already_activated": self.already_activated,
            "condition": self.condition.to_dict() if self.condition else None,
            "error": self.error,
        }


@dataclass
class CupStandingsEntry:
    user_id: int
    username: str
    total_points: int
    rounds_participated: int
    rank: int = 0

    def to_dict(self):
        return asdict(self)


@dataclass
class CupStandingsResult:
    season_id: int
    standings: list = field(default_factory=list)
    total_participants: int = 0
    max_points: int = 0
    average_points: float = 0.0
    errors: list = field(default_factory=list)

    def to_dict(self):
        return {
            "season_id": self.season_id,
            "standings": [entry.to_dict() for entry in self.standings],
            "total_participants": self.total_participants,
            "max_points": self.max_points,
            "average_points": self.average_points,
            "errors": list(self.errors),
        }


class CupService:
    def __init__(self, threshold=60, remaining_games_limit=5):
        if not 0 <= threshold <= 100:
            raise ValueError(f"Cup activation threshold must be 0-100, got {threshold}")
        self.threshold = threshold
        self.remaining_games_limit = remaining_games_limit

    def check_activation(self, season):
        """Evaluate the activation condition for a season"""
        fixtures = (
            db.session.query(
                Fixture.home_team_id, Fixture.away_team_id, Fixture.status_short
            )
            .filter(Fixture.season_id == season.id)
            .all()
        )

        remaining = {}
        for home_team_id, away_team_id, status in fixtures:
            for team_id in (home_team_id, away_team_id):
                remaining.setdefault(team_id, 0)
                if status not in SEASON_FINAL_STATUSES:
                    remaining[team_id] += 1

        total_teams = len(remaining)
        within_limit = sum(
            1 for count in remaining.values() if count <= self.remaining_games_limit
        )
        percentage = (within_limit / total_teams * 100) if total_teams else 0.0

        return ActivationConditionResult(
            condition_met=total_teams > 0 and percentage >= self.threshold,
            total_teams=total_teams,
            teams_within_limit=within_limit,
            percentage=round(percentage, 2),
            threshold=self.threshold,
            remaining_games_limit=self.remaining_games_limit,
        )

    def activate_if_eligible(self, season_id=None):
        """Activate the cup for a season (the current one by default)"""
        result = CupActivationResult(season_id=season_id)
        log = logger.bind(function="activate_if_eligible")

        try:
            if season_id is None:
                season = Season.get_current_season()
            else:
                season = db.session.get(Season, season_id)

            if season is None:
                result.error = "No season found for cup activation"
                log.warning(result.error)
                return result

            result.season_id = season.id
            log = log.bind(season_id=season.id)

            if season.last_round_special_activated:
                result.already_activated = True
                log.info("Last Round Special already active")
                return result

            result.condition = self.check_activation(season)
            log.info(result.condition.reasoning)

            if not result.condition.condition_met:
                return result

            season.last_round_special_activated = True
            season.last_round_special_activated_at = datetime.now(timezone.utc)
            db.session.commit()
            result.activated = True
            log.info("Last Round Special activated")

        except SQLAlchemyError as e:
            db.session.rollback()
            log.error(f"Cup activation failed: {e}")
            result.error = f"Cup activation failed: {e}"

        return result

    def calculate_cup_standings(self, season_id):
        """Ranked cup table; dense rank by points, username breaks display ties"""
        result = CupStandingsResult(season_id=season_id)

        try:
            rows = (
                db.session.query(
                    UserLastRoundSpecialPoints.user_id,
                    User.username,
                    db.func.coalesce(db.func.sum(UserLastRoundSpecialPoints.points), 0),
                    db.func.count(UserLastRoundSpecialPoints.id),
                )
                .join(User, User.id == UserLastRoundSpecialPoints.user_id)
                .filter(UserLastRoundSpecialPoints.season_id == season_id)
                .group_by(UserLastRoundSpecialPoints.user_id, User.username)
                .all()
            )
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to load cup points for season {season_id}: {e}")
            result.errors.append(f"Failed to load cup points: {e}")
            return result

        entries = sorted(
            (
                CupStandingsEntry(
                    user_id=user_id,
                    username=username,
                    total_points=int(points),
                    rounds_participated=int(rounds),
                )
                for user_id, username, points, rounds in rows
            ),
            key=lambda e: (-e.total_points, e.username, e.user_id),
        )

        rank = 0
        previous_points = None
        for entry in entries:
            if entry.total_points != previous_points:
                rank += 1
                previous_points = entry.total_points
            entry.rank = rank

        result.standings = entries
        result.total_participants = len(entries)
        if entries:
            result.max_points = entries[0].total_points
            result.average_points = round(
                sum(e.total_points for e in entries) / len(entries), 2
            )

        return result
