"""
Post-commit domain events

Services publish events only after their data is committed. Subscribers
(cache invalidation, emails) run in order and a failing subscriber is logged
without affecting the publisher or the other subscribers.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoundScored:
    round_id: int
    season_id: int
    bets_updated: int = 0
    rescored: bool = False


@dataclass(frozen=True)
class SeasonWinnersDetermined:
    season_id: int
    competition_type: str
    winner_user_ids: tuple = field(default_factory=tuple)
    top_points: int = 0


class EventBus:
    def __init__(self):
        self._subscribers = defaultdict(list)

    def subscribe(self, event_type, handler):
        self._subscribers[event_type].append(handler)

    def publish(self, event):
        """Deliver an event to its subscribers, returns the number that succeeded"""
        delivered = 0
        for handler in list(self._subscribers[type(event)]):
            try:
                handler(event)
                delivered += 1
            except Exception as e:
                logger.error(
                    f"Event handler {getattr(handler, '__name__', handler)} failed "
                    f"for {type(event).__name__}: {e}",
                    exc_info=True,
                )
        return delivered
