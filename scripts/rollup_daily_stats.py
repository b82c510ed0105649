"""Daily stats rollup job script.

Records the previous hour's slice for every route, the overall request
stream and every query. When the target hour is midnight, or
PULSE_FINALIZE_DAY is set, the previous day's rows are finalized from raw
samples as well.

Designed to run as a scheduled job at a few minutes past every hour (UTC).
Entry point: main() function (configured in pyproject.toml console_scripts)

Environment variables:
    DATABASE_URL: SQLAlchemy URL of the summary store (required)
    PULSE_TARGET_HOUR: ISO timestamp of the hour to record (default: previous hour)
    PULSE_FINALIZE_DAY: finalize the day before the target hour regardless of the hour

Exit codes:
    0: Rollup completed
    2: Rollup failed and was rolled back
    1: Fatal error (configuration, database connection)
"""

import logging
import os
import sys
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

from perfpulse.lib.config import PulseConfig
from perfpulse.lib.database import create_pulse_engine, get_session_factory
from perfpulse.lib.run_context import generate_run_id, set_run_id
from perfpulse.lib.structured_logger import configure_logging
from perfpulse.services.daily_stats_service import DailyStatsService
from scripts.aggregate_summaries import resolve_target_hour

logger = logging.getLogger(__name__)

env_path = Path(__file__).parent.parent / '.env.local'

TRUTHY = ('1', 'true', 'yes', 'on')


def should_finalize(target_hour, flag=None) -> bool:
  flag = flag if flag is not None else os.getenv('PULSE_FINALIZE_DAY', '')
  return target_hour.hour == 0 or flag.strip().lower() in TRUTHY


def main():
  """Main entry point for the daily stats rollup job."""
  # .env.local may set LOG_LEVEL / LOG_FORMAT
  if env_path.exists():
    load_dotenv(env_path)

  configure_logging()
  set_run_id(generate_run_id())

  logger.info('=' * 80)
  logger.info('Starting daily stats rollup job')
  logger.info('=' * 80)

  try:
    config = PulseConfig.from_env()
    if not config.database_url:
      logger.error('DATABASE_URL environment variable not set')
      sys.exit(1)

    target_hour = resolve_target_hour()
    engine = create_pulse_engine(config.database_url)
    SessionFactory = get_session_factory(engine)
    session = SessionFactory()

    try:
      service = DailyStatsService(session, config=config)
      hour_result = service.process_hour(target_hour)

      day_result = None
      if should_finalize(target_hour):
        day_result = service.process_day((target_hour - timedelta(days=1)).date())

      # Commit transaction (hour slice and finalization together)
      session.commit()

      logger.info(
        f'Daily stats rollup completed successfully: '
        f"{hour_result['routes']} routes, {hour_result['requests']} requests, "
        f"{hour_result['queries']} queries recorded"
      )
      if day_result is not None:
        finalized = day_result['routes'] + day_result['requests'] + day_result['queries']
        logger.info(f"Finalized {finalized} daily stats for {day_result['date']}")

      sys.exit(0)

    except Exception as e:
      logger.error(f'Daily stats rollup failed: {e}', exc_info=True)
      session.rollback()
      sys.exit(2)

    finally:
      session.close()

  except Exception as e:
    logger.error(f'Fatal error in daily stats rollup job: {e}', exc_info=True)
    sys.exit(1)


if __name__ == '__main__':
  main()
