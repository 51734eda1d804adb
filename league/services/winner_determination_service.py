"""
Winner Determination Service

Decides the winners of every completed season exactly once per competition
(league and, when it was activated, the Last Round Special cup) and records
them in the Hall of Fame. Every user sharing the top score is a winner.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from league import db
from league.models import (
    COMPETITION_LAST_ROUND_SPECIAL,
    COMPETITION_LEAGUE,
    Season,
    SeasonWinner,
    SeasonWinnerDetermination,
)
from league.utils.errors import DataStoreError
from league.utils.events import SeasonWinnersDetermined
from league.utils.logging_config import ContextualLogger

logger = ContextualLogger(__name__, {"service": "WinnerDeterminationService"})


@dataclass
class WinnerRecord:
    user_id: int
    username: str
    game_points: int
    dynamic_points: int
    total_points: int
    rank: int = 1
    is_tied: bool = False

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "username": self.username,
            "game_points": self.game_points,
            "dynamic_points": self.dynamic_points,
            "total_points": self.total_points,
            "rank": self.rank,
            "is_tied": self.is_tied,
        }


@dataclass
class WinnerDeterminationResult:
    season_id: int
    competition_type: str = COMPETITION_LEAGUE
    is_season_already_determined: bool = False
    winners: list = field(default_factory=list)
    total_players: int = 0
    errors: list = field(default_factory=list)

    def to_dict(self):
        return {
            "season_id": self.season_id,
            "competition_type": self.competition_type,
            "is_season_already_determined": self.is_season_already_determined,
            "winners": [winner.to_dict() for winner in self.winners],
            "total_players": self.total_players,
            "errors": list(self.errors),
        }


class WinnerDeterminationService:
    def __init__(self, standings_service, cup_service, event_bus):
        self.standings_service = standings_service
        self.cup_service = cup_service
        self.event_bus = event_bus

    def determine_winners_for_completed_seasons(self):
        """
        One result per (completed season, competition type).

        Raises:
            DataStoreError: the completed seasons could not be read
        """
        log = logger.bind(function="determine_winners_for_completed_seasons")

        try:
            seasons = (
                Season.query.filter(Season.completed_at.isnot(None))
                .order_by(Season.completed_at.asc(), Season.id.asc())
                .all()
            )
            candidates = [
                (season.id, season.last_round_special_activated) for season in seasons
            ]
        except SQLAlchemyError as e:
            db.session.rollback()
            log.error(f"Error fetching completed seasons: {e}")
            raise DataStoreError(f"Failed to fetch completed seasons: {e}") from e

        if not candidates:
            log.info("No completed seasons found")
            return []

        log.info(f"Found {len(candidates)} completed seasons")

        results = []
        for season_id, cup_activated in candidates:
            competition_types = [COMPETITION_LEAGUE]
            if cup_activated:
                competition_types.append(COMPETITION_LAST_ROUND_SPECIAL)

            for competition_type in competition_types:
                try:
                    results.append(
                        self.determine_season_winners(season_id, competition_type)
                    )
                except Exception as e:
                    db.session.rollback()
                    log.error(
                        f"Failed to process season {season_id} ({competition_type}): {e}",
                        exc_info=True,
                    )
                    results.append(
                        WinnerDeterminationResult(
                            season_id=season_id,
                            competition_type=competition_type,
                            errors=[str(e)],
                        )
                    )

        failed = [r for r in results if r.errors]
        log.info(
            f"Winner determination finished: {len(results)} results, "
            f"{len(failed)} with errors"
        )
        return results

    def determine_season_winners(self, season_id, competition_type=COMPETITION_LEAGUE):
        log = logger.bind(season_id=season_id, competition_type=competition_type)
        result = WinnerDeterminationResult(
            season_id=season_id, competition_type=competition_type
        )

        try:
            if SeasonWinnerDetermination.exists(season_id, competition_type):
                log.info("Winners already determined, skipping")
                result.is_season_already_determined = True
                return result

            candidates = self._final_standings(season_id, competition_type)
            if candidates is None:
                result.errors.append("Failed to calculate final standings")
                return result

            result.total_players = len(candidates)
            winners = self.select_winners(candidates)

            db.session.add(
                SeasonWinnerDetermination(
                    season_id=season_id,
                    competition_type=competition_type,
                    winner_count=len(winners),
                    top_points=winners[0].total_points if winners else None,
                )
            )
            for winner in winners:
                db.session.add(
                    SeasonWinner(
                        season_id=season_id,
                        user_id=winner.user_id,
                        competition_type=competition_type,
                        game_points=winner.game_points,
                        dynamic_points=winner.dynamic_points,
                        total_points=winner.total_points,
                        is_tied=winner.is_tied,
                    )
                )

            if competition_type == COMPETITION_LEAGUE:
                season = db.session.get(Season, season_id)
                season.winner_determined_at = datetime.now(timezone.utc)

            db.session.commit()

        except IntegrityError:
            # Another run recorded this determination first
            db.session.rollback()
            log.warning("Determination already recorded by a concurrent run")
            result.is_season_already_determined = True
            return result
        except SQLAlchemyError as e:
            db.session.rollback()
            log.error(f"Failed to record winners: {e}")
            result.errors.append(f"Failed to record winners: {e}")
            return result

        result.winners = winners
        if not winners:
            log.warning("No participants, determination recorded without winners")
        else:
            log.info(
                f"Recorded {len(winners)} winner(s) with {winners[0].total_points} points"
            )

        self.event_bus.publish(
            SeasonWinnersDetermined(
                season_id=season_id,
                competition_type=competition_type,
                winner_user_ids=tuple(w.user_id for w in winners),
                top_points=winners[0].total_points if winners else 0,
            )
        )
        return result

    @staticmethod
    def select_winners(candidates):
        """Every candidate sharing the highest total"""
        if not candidates:
            return []

        top_points = max(c.total_points for c in candidates)
        winners = sorted(
            (c for c in candidates if c.total_points == top_points),
            key=lambda c: c.user_id,
        )
        is_tied = len(winners) > 1
        for winner in winners:
            winner.rank = 1
            winner.is_tied = is_tied
        return winners

    def _final_standings(self, season_id, competition_type):
        """Candidates as WinnerRecord, None when standings failed"""
        if competition_type == COMPETITION_LEAGUE:
            standings = self.standings_service.calculate_standings(season_id)
            if standings is None:
                return None
            return [
                WinnerRecord(
                    user_id=entry.user_id,
                    username=entry.username,
                    game_points=entry.game_points,
                    dynamic_points=entry.dynamic_points,
                    total_points=entry.combined_total,
                    rank=entry.rank,
                )
                for entry in standings
            ]

        cup = self.cup_service.calculate_cup_standings(season_id)
        if cup.errors:
            return None
        return [
            WinnerRecord(
                user_id=entry.user_id,
                username=entry.username,
                game_points=entry.total_points,
                dynamic_points=0,
                total_points=entry.total_points,
                rank=entry.rank,
            )
            for entry in cup.standings
        ]
