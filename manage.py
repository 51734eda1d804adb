#!/usr/bin/env python3
"""
Prediction League Management CLI

Command-line management for seasons, round scoring, standings and winners.
"""

import logging

import click
from flask import current_app
from flask.cli import with_appcontext
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from league import create_app, db
from league.models import (
    BettingRound,
    Fixture,
    RoundStatus,
    Season,
    SeasonWinner,
    User,
)
from league.services import get_services

app = create_app()


@click.group()
def cli():
    """Prediction League Management CLI"""
    pass


# Season Management Commands
@cli.group()
def season():
    """Season management commands"""
    pass


@season.command()
@click.argument("competition_api_id", type=int)
@click.argument("year", type=int)
@click.option("--name", help="Display name, defaults to 'Season <year>'")
@click.option("--activate", is_flag=True, help="Activate this season")
@with_appcontext
def create(competition_api_id, year, name, activate):
    """Create a new season"""
    try:
        existing = Season.query.filter_by(
            competition_api_id=competition_api_id, api_season_year=year
        ).first()
        if existing:
            click.echo(f"Season {year} of competition {competition_api_id} already exists!")
            return

        new_season = Season.create_season(competition_api_id, year, name=name)

        if activate:
            db.session.flush()
            new_season.activate()

        db.session.commit()
        click.echo(f"✅ Created season {new_season.name} (id {new_season.id})")

        if activate:
            click.echo(f"✅ Activated season {new_season.name}")

    except IntegrityError as e:
        db.session.rollback()
        click.echo(f"❌ Season {year} already exists!")
        logging.error(f"Season creation failed - integrity error: {e}")
    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error creating season: {str(e)}")
        logging.error(f"Season creation failed - SQL error: {e}")


@season.command()
@click.argument("season_id", type=int)
@with_appcontext
def activate(season_id):
    """Activate a season"""
    try:
        target = db.session.get(Season, season_id)
        if not target:
            click.echo(f"❌ Season {season_id} not found!")
            return

        target.activate()
        db.session.commit()
        click.echo(f"✅ Activated season {target.name}")

    except SQLAlchemyError as e:
        db.session.rollback()
        click.echo(f"❌ Database error activating season: {str(e)}")
        logging.error(f"Season activation failed - SQL error: {e}")


@season.command("list")
@with_appcontext
def list_seasons():
    """List all seasons"""
    seasons = Season.query.order_by(Season.api_season_year.desc()).all()

    if not seasons:
        click.echo("No seasons found.")
        return

    click.echo("Seasons:")
    for s in seasons:
        flags = []
        if s.is_current:
            flags.append("current")
        if s.completed_at:
            flags.append("completed")
        if s.last_round_special_activated:
            flags.append("cup active")
        suffix = f" ({', '.join(flags)})" if flags else ""
        click.echo(f"  [{s.id}] {s.name}{suffix}")


# Round Processing Commands
@cli.group()
def rounds():
    """Betting round commands"""
    pass


@rounds.command()
@with_appcontext
def detect():
    """Mark open rounds whose fixtures are all finished as ready for scoring"""
    result = get_services().round_detector.detect_and_mark_completed_rounds()

    click.echo(f"✅ {len(result.completed_round_ids)} rounds ready for scoring")
    for round_id in result.completed_round_ids:
        click.echo(f"  - round {round_id}")
    for error in result.errors:
        click.echo(f"❌ Round {error['round_id']}: {error['error']}")


@rounds.command()
@with_appcontext
def process():
    """Detect completed rounds and score them"""
    outcome = get_services().cron_pipeline.process_rounds()

    status = "✅" if outcome.success else "❌"
    click.echo(f"{status} {outcome.message} ({outcome.duration_ms}ms)")
    for scoring in outcome.payload.get("scoring_results", []):
        click.echo(f"  - round {scoring['round_id']}: {scoring['message']}")


@rounds.command("list")
@click.option("--season", "season_id", type=int, help="Season id, defaults to current")
@with_appcontext
def list_rounds(season_id):
    """List betting rounds of a season"""
    if season_id is None:
        current = Season.get_current_season()
        season_id = current.id if current else None

    if season_id is None:
        click.echo("⚠️  No season selected")
        return

    for betting_round in (
        BettingRound.query.filter_by(season_id=season_id)
        .order_by(BettingRound.id.asc())
        .all()
    ):
        click.echo(
            f"  [{betting_round.id}] {betting_round.name}: "
            f"{betting_round.status.value} ({len(betting_round.fixtures)} fixtures)"
        )


# Scoring Commands
@cli.group()
def scoring():
    """Scoring maintenance commands"""
    pass


@scoring.command("rescore-round")
@click.argument("round_id", type=int)
@with_appcontext
def rescore_round(round_id):
    """Recalculate bet points of a scored round after a result correction"""
    result = get_services().round_scorer.rescore_round(round_id)

    if result.success:
        click.echo(f"✅ {result.message}")
    else:
        click.echo(f"❌ {result.message}")


# Standings Commands
@cli.group()
def standings():
    """Standings commands"""
    pass


@standings.command()
@click.option("--season", "season_id", type=int, help="Season id, defaults to current")
@click.option("--limit", default=20, help="Number of rows to show")
@with_appcontext
def show(season_id, limit):
    """Print the league table"""
    if season_id is None:
        current = Season.get_current_season()
        season_id = current.id if current else None

    table = get_services().standings.calculate_standings(season_id)
    if table is None:
        click.echo("❌ Failed to calculate standings")
        return
    if not table:
        click.echo("No scored bets yet.")
        return

    click.echo(f"{'#':>3}  {'User':<20} {'Game':>6} {'Dyn':>5} {'Total':>6}")
    for entry in table[:limit]:
        click.echo(
            f"{entry.rank:>3}  {entry.username:<20} {entry.game_points:>6} "
            f"{entry.dynamic_points:>5} {entry.combined_total:>6}"
        )


# Winner Commands
@cli.group()
def winners():
    """Season winner commands"""
    pass


@winners.command()
@with_appcontext
def determine():
    """Determine winners of every completed season"""
    outcome = get_services().cron_pipeline.determine_winners()

    status = "✅" if outcome.success else "❌"
    click.echo(f"{status} {outcome.message}")
    click.echo(
        f"  Seasons: {outcome.payload.get('total_seasons_processed', 0)}, "
        f"winners: {outcome.payload.get('total_winners_determined', 0)}, "
        f"errors: {outcome.payload.get('error_count', 0)}"
    )


@winners.command("list")
@click.option(
    "--competition",
    type=click.Choice(["league", "last_round_special"]),
    help="Only one competition",
)
@with_appcontext
def list_winners(competition):
    """Print the hall of fame"""
    hall = SeasonWinner.get_hall_of_fame(competition)
    if not hall:
        click.echo("Hall of fame is empty.")
        return

    for winner in hall:
        tied = " (tied)" if winner.is_tied else ""
        click.echo(
            f"  {winner.season.name} [{winner.competition_type}] "
            f"{winner.user.username}: {winner.total_points} pts{tied}"
        )


# Scheduler Commands
@cli.group()
def scheduler():
    """In-process scheduler commands"""
    pass


def _get_scheduler():
    scheduler_service = current_app.extensions.get("scheduler")
    if scheduler_service is None:
        click.echo("⚠️  Background scheduler is not configured for this app")
    return scheduler_service


@scheduler.command("status")
@with_appcontext
def scheduler_status():
    """Show scheduled jobs and run statistics"""
    scheduler_service = _get_scheduler()
    if scheduler_service is None:
        return

    info = scheduler_service.get_status()
    state = "running" if info["is_running"] else "stopped"
    click.echo(f"⏱️  Scheduler {state}")
    for job in info["jobs"]:
        click.echo(f"  - {job['id']} ({job['name']}): next run {job['next_run']}")

    stats = info["stats"]
    click.echo(
        f"📈 Runs: {stats['total_runs']} total, {stats['successful_runs']} ok, "
        f"{stats['failed_runs']} failed"
    )
    if stats["last_error"]:
        click.echo(f"❌ Last error: {stats['last_error']}")


@scheduler.command("run")
@click.argument("job_type", type=click.Choice(["rounds", "cup", "seasons"]))
@with_appcontext
def scheduler_run(job_type):
    """Run a scheduled job now"""
    scheduler_service = _get_scheduler()
    if scheduler_service is None:
        return

    ok, message = scheduler_service.force_run(job_type)
    click.echo(f"{'✅' if ok else '❌'} {message}")


# Database Commands
@cli.group()
def db_cmd():
    """Database management commands"""
    pass


@db_cmd.command("init")
@with_appcontext
def init_db():
    """Initialize database tables"""
    db.create_all()
    click.echo("✅ Database tables created")


@db_cmd.command()
@with_appcontext
def reset():
    """Drop and recreate all tables"""
    if click.confirm("⚠️  This will delete ALL data. Continue?"):
        db.drop_all()
        db.create_all()
        click.echo("✅ Database reset complete")
    else:
        click.echo("Aborted.")


@cli.command()
@with_appcontext
def status():
    """Show application status"""
    click.echo("📊 Prediction League Status")
    click.echo("=" * 30)

    current_season = Season.get_current_season()
    if current_season:
        click.echo(f"✅ Current Season: {current_season.name}")
    else:
        click.echo("⚠️  Current Season: None active")

    user_count = User.query.filter_by(is_active=True).count()
    click.echo(f"👥 Active Users: {user_count}")

    if current_season:
        fixture_count = Fixture.query.filter_by(season_id=current_season.id).count()
        finished_count = Fixture.query.filter(
            Fixture.season_id == current_season.id,
            Fixture.status_short.in_(["FT", "AET", "PEN"]),
        ).count()
        click.echo(f"⚽ Fixtures: {finished_count}/{fixture_count} finished")

        for round_status in RoundStatus:
            count = BettingRound.query.filter_by(
                season_id=current_season.id, status=round_status
            ).count()
            click.echo(f"🎯 Rounds {round_status.value}: {count}")

    health = get_services().alerting.get_health_summary()
    for job_name, summary in health.items():
        click.echo(f"⏱️  {job_name}: {summary['status']}")


if __name__ == "__main__":
    with app.app_context():
        cli()
