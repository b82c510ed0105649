"""Historical replay of summaries and daily stats.

Backfill walks a date range one bucket at a time and runs the same
aggregation the scheduled jobs run. Each step commits on its own; a failing
step is rolled back, recorded in the report and skipped so the rest of the
range still gets processed.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence, Union

from sqlalchemy.orm import Session

from perfpulse.lib.config import PulseConfig
from perfpulse.lib.metrics import record_backfill_failure
from perfpulse.lib.periods import (
  PeriodType,
  advance_period,
  coerce_period_type,
  period_end,
  period_start,
  to_utc,
  to_utc_date,
  utc_now,
)
from perfpulse.services.daily_stats_service import DailyStatsService
from perfpulse.services.sample_store import SampleStore
from perfpulse.services.summary_service import SummaryService

logger = logging.getLogger(__name__)

DEFAULT_PERIOD_TYPES = (PeriodType.HOUR.value, PeriodType.DAY.value)
DEFAULT_STEP_DELAY_SECONDS = 0.1


@dataclass
class BackfillFailure:
  job: str
  step: str
  error: str


@dataclass
class BackfillReport:
  """Outcome of a backfill: completed step labels and collected failures."""

  completed: List[str] = field(default_factory=list)
  failures: List[BackfillFailure] = field(default_factory=list)

  @property
  def ok(self) -> bool:
    return not self.failures

  def merge(self, other: 'BackfillReport') -> 'BackfillReport':
    self.completed.extend(other.completed)
    self.failures.extend(other.failures)
    return self

  def fail(self, job: str, step: str, error: Exception):
    self.failures.append(BackfillFailure(job=job, step=step, error=str(error)))
    record_backfill_failure(job)


def backfill_summaries(
  session: Session,
  start: Union[datetime, date],
  end: Union[datetime, date],
  period_types: Sequence[str] = DEFAULT_PERIOD_TYPES,
  step_delay: Optional[float] = None,
) -> BackfillReport:
  """Recompute summaries for every bucket between start and end.

  For each period type the walk starts at the bucket containing start and
  stops after the bucket containing end.

  Args:
      session: Session used for every step (committed per step)
      start: First instant to cover
      end: Last instant to cover
      period_types: Period types to backfill, in order
      step_delay: Seconds to sleep between steps (default 0.1)

  Returns:
      BackfillReport listing completed steps and failures

  Raises:
      ValueError: If a period type is unknown
  """
  delay = DEFAULT_STEP_DELAY_SECONDS if step_delay is None else step_delay
  ptypes = [coerce_period_type(p) for p in period_types]
  report = BackfillReport()
  store = SampleStore(session)

  for ptype in ptypes:
    current = period_start(ptype, start)
    last = period_end(ptype, end)

    while current <= last:
      step = f'{ptype.value} {current.isoformat()}'
      logger.info(f'Backfilling {step} summary', extra={'period_type': ptype.value, 'period_start': current})

      try:
        SummaryService(session, ptype, current, store=store).perform()
        session.commit()
        report.completed.append(step)
      except Exception as e:
        session.rollback()
        logger.error(f'Backfill of {step} summary failed, continuing: {e}')
        report.fail('summaries', step, e)

      current = advance_period(ptype, current)
      if delay:
        time.sleep(delay)

  return report


def backfill_daily_stats(
  session: Session,
  start_date: Union[datetime, date],
  end_date: Union[datetime, date],
  now: Optional[datetime] = None,
  config: Optional[PulseConfig] = None,
) -> BackfillReport:
  """Rebuild daily stats for every date between start_date and end_date.

  Each date records every hour that is not in the future, then finalizes the
  day. A date is committed as a unit; a failing date is rolled back and
  recorded.
  """
  current_time = to_utc(now) if now is not None else utc_now()
  first = to_utc_date(start_date)
  last = to_utc_date(end_date)
  service = DailyStatsService(session, config=config)
  report = BackfillReport()

  day = first
  while day <= last:
    step = day.isoformat()
    logger.info(f'Backfilling daily stats for {step}')

    try:
      day_start = period_start(PeriodType.DAY, day)
      for hour in range(24):
        target_hour = day_start + timedelta(hours=hour)
        if target_hour > current_time:
          break
        service.process_hour(target_hour)
      service.process_day(day)
      session.commit()
      report.completed.append(step)
    except Exception as e:
      session.rollback()
      logger.error(f'Error processing {step}: {e}')
      report.fail('daily_stats', step, e)

    day += timedelta(days=1)

  return report


def backfill(
  session: Session,
  start: Union[datetime, date],
  end: Union[datetime, date],
  period_types: Sequence[str] = DEFAULT_PERIOD_TYPES,
  include_daily_stats: bool = False,
  step_delay: Optional[float] = None,
  now: Optional[datetime] = None,
  config: Optional[PulseConfig] = None,
) -> BackfillReport:
  """Backfill summaries and, optionally, daily stats over one range."""
  report = backfill_summaries(session, start, end, period_types, step_delay=step_delay)
  if include_daily_stats:
    report.merge(backfill_daily_stats(session, start, end, now=now, config=config))
  return report
