"""Hourly summary aggregation job script.

Aggregates the hour that just ended into summaries, and at midnight also the
previous day (plus the previous week on Mondays and the previous month on
the 1st). Each period is committed on its own.

Designed to run as a scheduled job at a few minutes past every hour (UTC).
Entry point: main() function (configured in pyproject.toml console_scripts)

Environment variables:
    DATABASE_URL: SQLAlchemy URL of the summary store (required)
    PULSE_TARGET_HOUR: ISO timestamp of the hour to aggregate (default: previous hour)
    LOG_LEVEL / LOG_FORMAT: Logging configuration

Exit codes:
    0: All periods aggregated
    2: Aggregation failed; the failing period was rolled back
    1: Fatal error (configuration, database connection)
"""

import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from dotenv import load_dotenv
from sqlalchemy.orm import Session

from perfpulse.lib.config import PulseConfig
from perfpulse.lib.database import create_pulse_engine, get_session_factory
from perfpulse.lib.periods import PeriodType, to_utc
from perfpulse.lib.run_context import generate_run_id, set_run_id
from perfpulse.lib.structured_logger import configure_logging
from perfpulse.services.summary_scheduler import previous_hour, summary_periods_due
from perfpulse.services.summary_service import SummaryService

logger = logging.getLogger(__name__)

env_path = Path(__file__).parent.parent / '.env.local'


def resolve_target_hour(raw: Optional[str] = None) -> datetime:
  """Return the hour to aggregate: PULSE_TARGET_HOUR when set, else the previous hour.

  Raises:
      ValueError: If PULSE_TARGET_HOUR is not an ISO timestamp
  """
  raw = raw if raw is not None else os.getenv('PULSE_TARGET_HOUR')
  if raw:
    return to_utc(datetime.fromisoformat(raw))
  return previous_hour()


def aggregate_due_periods(session: Session, target_hour: datetime) -> List[Tuple[PeriodType, datetime, int]]:
  """Aggregate and commit every period due for target_hour.

  Returns:
      (period_type, period_start, summaries written) per period

  Raises:
      Exception: If a period fails (that period is rolled back)
  """
  results = []
  for period_type, start in summary_periods_due(target_hour):
    try:
      written = SummaryService(session, period_type, start).perform()
      session.commit()
    except Exception:
      session.rollback()
      raise
    results.append((period_type, start, len(written)))
  return results


def main():
  """Main entry point for the summary aggregation job."""
  # .env.local may set LOG_LEVEL / LOG_FORMAT
  if env_path.exists():
    load_dotenv(env_path)

  configure_logging()
  set_run_id(generate_run_id())

  logger.info('=' * 80)
  logger.info('Starting summary aggregation job')
  logger.info('=' * 80)

  try:
    config = PulseConfig.from_env()
    if not config.database_url:
      logger.error('DATABASE_URL environment variable not set')
      sys.exit(1)

    target_hour = resolve_target_hour()
    logger.info(f'Target hour: {target_hour.isoformat()}')

    engine = create_pulse_engine(config.database_url)
    SessionFactory = get_session_factory(engine)
    session = SessionFactory()

    try:
      results = aggregate_due_periods(session, target_hour)

      for period_type, start, count in results:
        logger.info(f'{period_type.value} {start.isoformat()}: {count} summaries')
      logger.info(f'Summary aggregation job completed successfully: {len(results)} periods')

      sys.exit(0)

    except Exception as e:
      logger.error(f'Summary aggregation failed: {e}', exc_info=True)
      sys.exit(2)

    finally:
      session.close()

  except Exception as e:
    logger.error(f'Fatal error in summary aggregation job: {e}', exc_info=True)
    sys.exit(1)


if __name__ == '__main__':
  main()
