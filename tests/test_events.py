"""Tests for the event bus and its notification subscribers."""
from league.models import COMPETITION_LEAGUE
from league.services.notification_service import NotificationService
from league.utils.cache_utils import cached_query
from league.utils.events import EventBus, RoundScored, SeasonWinnersDetermined


class FakeEmailService:
    def __init__(self, configured=True):
        self.is_configured = configured
        self.sent = []

    def send_winner_congratulations(self, user, season, competition_type, points, is_tied):
        self.sent.append((user.username, season.id, competition_type, points, is_tied))
        return True


class TestEventBus:
    def test_failing_handler_does_not_stop_the_others(self):
        bus = EventBus()
        received = []

        def broken(event):
            raise RuntimeError("subscriber down")

        bus.subscribe(RoundScored, broken)
        bus.subscribe(RoundScored, received.append)
        event = RoundScored(round_id=1, season_id=1)

        delivered = bus.publish(event)

        assert delivered == 1
        assert received == [event]

    def test_only_matching_subscribers_are_called(self):
        bus = EventBus()
        received = []
        bus.subscribe(SeasonWinnersDetermined, received.append)

        assert bus.publish(RoundScored(round_id=1, season_id=1)) == 0
        assert received == []


class TestNotificationService:
    def winners_event(self, season, *users, points=12):
        return SeasonWinnersDetermined(
            season_id=season.id,
            competition_type=COMPETITION_LEAGUE,
            winner_user_ids=tuple(u.id for u in users),
            top_points=points,
        )

    def test_emails_opted_in_winners(self, factory):
        season = factory.season()
        alice = factory.user("alice")
        bob = factory.user("bob", receive_notifications=False)
        email = FakeEmailService()
        notifications = NotificationService(email)

        sent = notifications.on_winners_determined(self.winners_event(season, alice, bob))

        assert sent == 1
        assert email.sent == [("alice", season.id, COMPETITION_LEAGUE, 12, True)]

    def test_unconfigured_email_sends_nothing(self, factory):
        season = factory.season()
        email = FakeEmailService(configured=False)
        notifications = NotificationService(email)

        sent = notifications.on_winners_determined(
            self.winners_event(season, factory.user("alice"))
        )

        assert sent == 0
        assert email.sent == []

    def test_winner_emails_can_be_switched_off(self, factory):
        season = factory.season()
        email = FakeEmailService()
        notifications = NotificationService(email, send_winner_emails=False)

        notifications.on_winners_determined(self.winners_event(season, factory.user("alice")))

        assert email.sent == []

    def test_round_scored_clears_cached_standings(self, app):
        from league import cache

        builds = []

        @cached_query("standings")
        def payload(season_id):
            builds.append(season_id)
            return ["row"]

        cache.set("unrelated", "kept")
        payload(1)
        payload(1)
        assert builds == [1]

        NotificationService().on_round_scored(RoundScored(round_id=1, season_id=1))
        payload(1)

        assert builds == [1, 1]
        assert cache.get("unrelated") == "kept"
