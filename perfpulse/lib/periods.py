"""Period resolution for time-bucketed summaries.

Buckets are computed in UTC regardless of the caller's zone so that every
producer derives the same bucket keys. All values returned here are naive
datetimes expressed in UTC, matching how the summary tables store them.

Sample queries use the half-open window [period_start, next_period_start).
period_end is the inclusive last instant of the bucket and is only stored as
a descriptive bound on summary rows.
"""

from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Tuple, Union


class PeriodType(str, Enum):
  """Summary bucket granularity."""

  HOUR = 'hour'
  DAY = 'day'
  WEEK = 'week'
  MONTH = 'month'


PERIOD_TYPES = tuple(p.value for p in PeriodType)

_ONE_MICROSECOND = timedelta(microseconds=1)


def coerce_period_type(period_type: Union[str, PeriodType]) -> PeriodType:
  """Return the PeriodType for a string or enum value.

  Raises:
      ValueError: If period_type is not hour/day/week/month
  """
  try:
    return PeriodType(period_type)
  except ValueError:
    raise ValueError(
      f'Unknown period type {period_type!r} (expected one of {", ".join(PERIOD_TYPES)})'
    ) from None


def utc_now() -> datetime:
  """Current time as a naive UTC datetime."""
  return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc(instant: Union[datetime, date]) -> datetime:
  """Normalize an instant to a naive UTC datetime.

  Aware datetimes are converted to UTC; naive datetimes are taken to already
  be UTC; plain dates mean midnight UTC.
  """
  if not isinstance(instant, datetime):
    return datetime.combine(instant, time.min)
  if instant.tzinfo is not None:
    return instant.astimezone(timezone.utc).replace(tzinfo=None)
  return instant


def period_start(period_type: Union[str, PeriodType], instant: Union[datetime, date]) -> datetime:
  """Truncate an instant to the start of its enclosing bucket."""
  ptype = coerce_period_type(period_type)
  moment = to_utc(instant)

  if ptype is PeriodType.HOUR:
    return moment.replace(minute=0, second=0, microsecond=0)

  day_start = moment.replace(hour=0, minute=0, second=0, microsecond=0)
  if ptype is PeriodType.DAY:
    return day_start
  if ptype is PeriodType.WEEK:
    # Monday-based weeks
    return day_start - timedelta(days=day_start.weekday())
  return day_start.replace(day=1)


def next_period_start(period_type: Union[str, PeriodType], start: Union[datetime, date]) -> datetime:
  """Return the start of the bucket following the one containing start."""
  ptype = coerce_period_type(period_type)
  current = period_start(ptype, start)

  if ptype is PeriodType.HOUR:
    return current + timedelta(hours=1)
  if ptype is PeriodType.DAY:
    return current + timedelta(days=1)
  if ptype is PeriodType.WEEK:
    return current + timedelta(weeks=1)
  if current.month == 12:
    return current.replace(year=current.year + 1, month=1)
  return current.replace(month=current.month + 1)


def period_end(period_type: Union[str, PeriodType], start: Union[datetime, date]) -> datetime:
  """Return the last instant (inclusive) inside the bucket containing start."""
  return next_period_start(period_type, start) - _ONE_MICROSECOND


def advance_period(period_type: Union[str, PeriodType], current: Union[datetime, date]) -> datetime:
  """Step from one bucket start to the next (used when walking ranges)."""
  return next_period_start(period_type, current)


def period_window(
  period_type: Union[str, PeriodType], instant: Union[datetime, date]
) -> Tuple[datetime, datetime]:
  """Return the half-open (start, end_exclusive) window of the bucket containing instant."""
  start = period_start(period_type, instant)
  return start, next_period_start(period_type, start)


def day_window(day: Union[datetime, date]) -> Tuple[datetime, datetime]:
  """Return the half-open UTC window covering one calendar day."""
  return period_window(PeriodType.DAY, day)


def to_utc_date(value: Union[datetime, date]) -> date:
  """Calendar date (UTC) of a datetime; dates pass through."""
  if isinstance(value, datetime):
    return to_utc(value).date()
  return value
