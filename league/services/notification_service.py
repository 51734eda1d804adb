"""
Subscribers for post-commit league events

Drops cached standings and hall of fame payloads once new points or winners
are committed, and emails winners who opted into notifications.
"""

import logging

from league import db
from league.models import Season, User
from league.utils.cache_utils import invalidate_model_cache
from league.utils.events import RoundScored, SeasonWinnersDetermined

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self, email_service=None, send_winner_emails=True):
        self.email_service = email_service
        self.send_winner_emails = send_winner_emails

    def register(self, event_bus):
        event_bus.subscribe(RoundScored, self.on_round_scored)
        event_bus.subscribe(SeasonWinnersDetermined, self.on_winners_determined)

    def on_round_scored(self, event):
        invalidate_model_cache("standings")
        logger.info(
            f"Round {event.round_id} scored ({event.bets_updated} bets updated), "
            f"standings cache invalidated"
        )

    def on_winners_determined(self, event):
        invalidate_model_cache("standings")

        if not event.winner_user_ids:
            return 0
        if not self.send_winner_emails or self.email_service is None:
            return 0
        if not self.email_service.is_configured:
            logger.debug("Email not configured, skipping winner notifications")
            return 0

        season = db.session.get(Season, event.season_id)
        winners = User.query.filter(User.id.in_(event.winner_user_ids)).all()
        is_tied = len(event.winner_user_ids) > 1

        sent = 0
        for user in winners:
            if not user.receive_notifications or not user.email:
                continue
            if self.email_service.send_winner_congratulations(
                user, season, event.competition_type, event.top_points, is_tied
            ):
                sent += 1

        logger.info(
            f"Sent {sent}/{len(winners)} winner emails for season {event.season_id} "
            f"({event.competition_type})"
        )
        return sent
