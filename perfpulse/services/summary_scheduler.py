"""Which summary buckets a scheduled run should compute.

The aggregation job runs hourly for the hour that just ended. When that hour
is midnight it also closes the previous day, and on Mondays and the first of
the month the previous week and month as well.
"""

from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from perfpulse.lib.periods import PeriodType, period_start, to_utc, utc_now


def previous_hour(now: Optional[datetime] = None) -> datetime:
  """Start of the hour before now (UTC)."""
  return period_start(PeriodType.HOUR, to_utc(now or utc_now()) - timedelta(hours=1))


def summary_periods_due(target_hour: datetime) -> List[Tuple[PeriodType, datetime]]:
  """Return (period_type, period_start) pairs to aggregate for target_hour.

  Example:
      summary_periods_due(datetime(2024, 4, 1, 0))  # Monday, 1st of the month
      # [(HOUR, 2024-04-01 00:00), (DAY, 2024-03-31), (WEEK, 2024-03-25), (MONTH, 2024-03-01)]
  """
  hour = period_start(PeriodType.HOUR, target_hour)
  due = [(PeriodType.HOUR, hour)]

  if hour.hour != 0:
    return due

  previous_day = hour - timedelta(days=1)
  due.append((PeriodType.DAY, period_start(PeriodType.DAY, previous_day)))

  if hour.weekday() == 0:
    due.append((PeriodType.WEEK, period_start(PeriodType.WEEK, hour - timedelta(weeks=1))))

  if hour.day == 1:
    due.append((PeriodType.MONTH, period_start(PeriodType.MONTH, previous_day)))

  return due
