"""Backfill CLI for summaries and daily stats.

Replays aggregation over a historical range, one committed step at a time.
Failed steps are reported and skipped; the command exits 1 when any step
failed.

Usage:
    python -m scripts.backfill summaries --start 2024-01-01 --end 2024-01-31 --period-type hour --period-type day
    python -m scripts.backfill daily-stats --start 2024-01-01 --end 2024-01-31
    python -m scripts.backfill daily-stats --days 30
"""

import logging
import sys
from datetime import date, datetime, timedelta
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from perfpulse.lib.config import PulseConfig
from perfpulse.lib.database import create_pulse_engine, get_session_factory
from perfpulse.lib.periods import PERIOD_TYPES, utc_now
from perfpulse.lib.run_context import generate_run_id, set_run_id
from perfpulse.lib.structured_logger import configure_logging
from perfpulse.services.backfill_service import BackfillReport, backfill_daily_stats, backfill_summaries

logger = logging.getLogger(__name__)

# Load environment variables from .env.local
env_path = Path(__file__).parent.parent / '.env.local'
console = Console()
if env_path.exists():
  load_dotenv(env_path)


def _open_session(config: PulseConfig):
  if not config.database_url:
    console.print('[red]Error: DATABASE_URL must be set[/red]')
    console.print('[yellow]Set DATABASE_URL in .env.local or the environment[/yellow]')
    sys.exit(1)

  engine = create_pulse_engine(config.database_url)
  return get_session_factory(engine)()


def render_report(report: BackfillReport, title: str) -> Table:
  """Build a rich table summarizing a backfill report."""
  table = Table(title=title)
  table.add_column('Step', style='cyan')
  table.add_column('Status')
  table.add_column('Error', style='dim')

  for step in report.completed:
    table.add_row(step, '[green]ok[/green]', '')
  for failure in report.failures:
    table.add_row(failure.step, '[red]failed[/red]', failure.error)

  return table


def _finish(report: BackfillReport, title: str):
  console.print(render_report(report, title))
  if report.ok:
    console.print(f'\n[green]✓ {len(report.completed)} steps completed[/green]')
    return

  console.print(f'\n[red]{len(report.failures)} of {len(report.completed) + len(report.failures)} steps failed[/red]')
  sys.exit(1)


@click.group()
def cli():
  """Backfill perfpulse summaries and daily stats."""
  configure_logging()
  set_run_id(generate_run_id())


@cli.command()
@click.option('--start', 'start', required=True, type=click.DateTime(), help='First instant to cover (UTC)')
@click.option('--end', 'end', required=True, type=click.DateTime(), help='Last instant to cover (UTC)')
@click.option(
  '--period-type',
  'period_types',
  multiple=True,
  type=click.Choice(PERIOD_TYPES),
  help='Period type to backfill (repeatable, default: hour and day)',
)
@click.option('--delay', default=None, type=float, help='Seconds between steps (default from PULSE_BACKFILL_STEP_DELAY)')
def summaries(start: datetime, end: datetime, period_types, delay):
  """Recompute summaries for every bucket in a range."""
  if start > end:
    console.print('[red]Error: --start must not be after --end[/red]')
    sys.exit(1)

  config = PulseConfig.from_env()
  session = _open_session(config)
  period_types = period_types or ('hour', 'day')
  step_delay = config.backfill_step_delay_seconds if delay is None else delay

  console.print(f'\n[bold]Backfilling {", ".join(period_types)} summaries...[/bold]')
  console.print(f'Range: {start.isoformat()} to {end.isoformat()}')

  try:
    report = backfill_summaries(session, start, end, period_types, step_delay=step_delay)
  finally:
    session.close()

  _finish(report, 'Summary Backfill')


@cli.command('daily-stats')
@click.option('--start', 'start', default=None, type=click.DateTime(formats=['%Y-%m-%d']), help='First date (UTC)')
@click.option('--end', 'end', default=None, type=click.DateTime(formats=['%Y-%m-%d']), help='Last date (UTC)')
@click.option('--days', default=30, type=int, help='Days ending yesterday, used when --start is omitted')
def daily_stats(start, end, days):
  """Rebuild daily stats (hour slices and finalization) for a date range."""
  end_date: date = end.date() if end else (utc_now() - timedelta(days=1)).date()
  start_date: date = start.date() if start else end_date - timedelta(days=days - 1)

  if start_date > end_date:
    console.print('[red]Error: start date must not be after end date[/red]')
    sys.exit(1)

  config = PulseConfig.from_env()
  session = _open_session(config)

  console.print('\n[bold]Backfilling daily stats...[/bold]')
  console.print(f'Date range: {start_date} to {end_date}')

  try:
    report = backfill_daily_stats(session, start_date, end_date, config=config)
  finally:
    session.close()

  _finish(report, 'Daily Stats Backfill')


if __name__ == '__main__':
  cli()
