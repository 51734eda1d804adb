"""
Service wiring

Every service receives its collaborators and settings explicitly. The
assembled set lives on ``app.extensions["league"]`` so routes, CLI commands
and the scheduler share one instance per application.
"""

from dataclasses import dataclass

from flask import current_app

from league.services.alerting_service import CronAlertingService
from league.services.cron_pipeline import CronPipeline
from league.services.cup_service import CupService
from league.services.notification_service import NotificationService
from league.services.round_completion_detector import RoundCompletionDetector
from league.services.round_scoring_service import RoundScoringService
from league.services.season_completion_detector import SeasonCompletionDetector
from league.services.standings_service import StandingsService
from league.services.winner_determination_service import WinnerDeterminationService
from league.utils.dynamic_points import DynamicPointsCalculator
from league.utils.email_service import EmailService
from league.utils.events import EventBus
from league.utils.scoring import MatchScoringPolicy


@dataclass
class LeagueServices:
    event_bus: EventBus
    round_detector: RoundCompletionDetector
    round_scorer: RoundScoringService
    standings: StandingsService
    cup: CupService
    season_detector: SeasonCompletionDetector
    winners: WinnerDeterminationService
    alerting: CronAlertingService
    notifications: NotificationService
    cron_pipeline: CronPipeline


def build_services(config):
    """Assemble the service graph from a config mapping"""
    event_bus = EventBus()

    round_detector = RoundCompletionDetector()
    round_scorer = RoundScoringService(
        policy=MatchScoringPolicy.from_config(config),
        dynamic_calculator=DynamicPointsCalculator(
            points_per_question=config.get("DYNAMIC_POINTS_PER_QUESTION", 3)
        ),
        event_bus=event_bus,
    )
    standings = StandingsService()
    cup = CupService(
        threshold=config.get("CUP_ACTIVATION_THRESHOLD", 60),
        remaining_games_limit=config.get("CUP_REMAINING_GAMES_LIMIT", 5),
    )
    season_detector = SeasonCompletionDetector()
    winners = WinnerDeterminationService(standings, cup, event_bus)
    alerting = CronAlertingService.from_config(config)

    notifications = NotificationService(
        email_service=EmailService(config),
        send_winner_emails=config.get("WINNER_EMAILS_ENABLED", True),
    )
    notifications.register(event_bus)

    cron_pipeline = CronPipeline(
        round_detector=round_detector,
        round_scorer=round_scorer,
        cup_service=cup,
        season_detector=season_detector,
        winner_service=winners,
        alerting=alerting,
    )

    return LeagueServices(
        event_bus=event_bus,
        round_detector=round_detector,
        round_scorer=round_scorer,
        standings=standings,
        cup=cup,
        season_detector=season_detector,
        winners=winners,
        alerting=alerting,
        notifications=notifications,
        cron_pipeline=cron_pipeline,
    )


def init_services(app):
    services = build_services(app.config)
    app.extensions["league"] = services
    return services


def get_services():
    """Services of the current application"""
    return current_app.extensions["league"]
