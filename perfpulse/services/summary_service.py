"""Summary aggregation engine.

Computes one Summary row per (group, period_type, period_start) from the raw
samples of a bucket window. Rows are upserted on their natural key, so a
re-run overwrites instead of duplicating, and groups without samples never
get a row.

The pure half (compute_summary_stats, aggregate) has no database access; the
SummaryService wires it to the sample store and the summaries table.
"""

import logging
import time
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Union

from sqlalchemy.orm import Session

from perfpulse.lib.metrics import record_summary_run, record_summary_written
from perfpulse.lib.periods import PeriodType, coerce_period_type, next_period_start, period_end, period_start
from perfpulse.lib.statistics import percentile, stddev
from perfpulse.models.group_key import GroupKey, GroupKind
from perfpulse.models.summary import Summary
from perfpulse.services.sample_store import Sample, SampleGroup, SampleStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SummaryStats:
  """Statistics for one group; group_key is filled in by aggregate()."""

  count: int
  avg_duration: float
  min_duration: float
  max_duration: float
  total_duration: float
  p50_duration: Optional[float]
  p95_duration: Optional[float]
  p99_duration: Optional[float]
  stddev_duration: Optional[float]
  error_count: int = 0
  success_count: int = 0
  status_2xx: int = 0
  status_3xx: int = 0
  status_4xx: int = 0
  status_5xx: int = 0
  group_key: Optional[GroupKey] = None

  def as_columns(self) -> dict:
    """Non-key Summary column values."""
    return {
      'count': self.count,
      'avg_duration': self.avg_duration,
      'min_duration': self.min_duration,
      'max_duration': self.max_duration,
      'total_duration': self.total_duration,
      'p50_duration': self.p50_duration,
      'p95_duration': self.p95_duration,
      'p99_duration': self.p99_duration,
      'stddev_duration': self.stddev_duration,
      'error_count': self.error_count,
      'success_count': self.success_count,
      'status_2xx': self.status_2xx,
      'status_3xx': self.status_3xx,
      'status_4xx': self.status_4xx,
      'status_5xx': self.status_5xx,
    }


def compute_summary_stats(samples: Sequence[Sample]) -> Optional[SummaryStats]:
  """Compute summary statistics for a group of samples.

  Durations are sorted once and summed in sorted order so the result does not
  depend on the order samples were fetched. Status counts only consider
  samples that carry a status (query operations have none).

  Args:
      samples: Samples of one group in one bucket

  Returns:
      SummaryStats, or None for an empty group

  Example:
      compute_summary_stats([Sample(100, t, 200), Sample(150, t, 200), Sample(200, t, 500)])
      # count=3, avg_duration=150.0, p50_duration=150, error_count=1, status_5xx=1
  """
  if not samples:
    return None

  durations = sorted(s.duration for s in samples)
  count = len(durations)
  total = sum(durations)
  avg = total / count

  statuses = [s.status for s in samples if s.status is not None]

  return SummaryStats(
    count=count,
    avg_duration=avg,
    min_duration=durations[0],
    max_duration=durations[-1],
    total_duration=total,
    p50_duration=percentile(durations, 0.5),
    p95_duration=percentile(durations, 0.95),
    p99_duration=percentile(durations, 0.99),
    stddev_duration=stddev(durations, avg),
    error_count=sum(1 for s in statuses if s >= 400),
    success_count=sum(1 for s in statuses if s < 400),
    status_2xx=sum(1 for s in statuses if 200 <= s <= 299),
    status_3xx=sum(1 for s in statuses if 300 <= s <= 399),
    status_4xx=sum(1 for s in statuses if 400 <= s <= 499),
    status_5xx=sum(1 for s in statuses if s >= 500),
  )


def aggregate(
  period_type: Union[str, PeriodType], start: datetime, groups: Iterable[SampleGroup]
) -> List[SummaryStats]:
  """Compute stats for every non-empty group of one bucket.

  Raises:
      ValueError: If period_type is not a known period type
  """
  coerce_period_type(period_type)

  results = []
  for group in groups:
    stats = compute_summary_stats(group.samples)
    if stats is None:
      continue
    results.append(replace(stats, group_key=group.key))
  return results


def upsert_summary(
  session: Session,
  period_type: Union[str, PeriodType],
  start: datetime,
  end: datetime,
  stats: SummaryStats,
) -> Summary:
  """Create or overwrite the Summary row for stats.group_key in one bucket.

  The existing row is read under a row lock so concurrent writers of the
  same key serialize; every non-key field is replaced.
  """
  ptype = coerce_period_type(period_type)
  summarizable_type, summarizable_id = stats.group_key.to_columns()

  summary = (
    session.query(Summary)
    .filter(
      Summary.summarizable_type == summarizable_type,
      Summary.summarizable_id == summarizable_id,
      Summary.period_type == ptype.value,
      Summary.period_start == start,
    )
    .with_for_update()
    .first()
  )

  if summary is None:
    summary = Summary(
      summarizable_type=summarizable_type,
      summarizable_id=summarizable_id,
      period_type=ptype.value,
      period_start=start,
    )
    session.add(summary)

  summary.period_end = end
  for column, value in stats.as_columns().items():
    setattr(summary, column, value)

  return summary


class SummaryService:
  """Aggregate one period bucket into summaries.

  The service flushes its writes but never commits; the caller commits the
  whole period or rolls it back.

  Usage:
      SummaryService(session, 'hour', datetime(2024, 1, 1, 10)).perform()
      session.commit()
  """

  GROUP_KINDS = (GroupKind.OVERALL, GroupKind.ROUTE, GroupKind.QUERY)

  def __init__(
    self,
    session: Session,
    period_type: Union[str, PeriodType],
    start_time: datetime,
    store: Optional[SampleStore] = None,
  ):
    self.session = session
    self.period_type = coerce_period_type(period_type)
    self.start_time = period_start(self.period_type, start_time)
    self.end_time = period_end(self.period_type, self.start_time)
    self.end_exclusive = next_period_start(self.period_type, self.start_time)
    self.store = store or SampleStore(session)

  def perform(self) -> List[Summary]:
    """Compute and upsert every group's summary for the bucket.

    Returns:
        Summary rows written (empty when the bucket has no samples)

    Raises:
        Exception: Any failure, after logging; nothing is committed here
    """
    logger.info(
      f'Starting {self.period_type.value} summary for {self.start_time.isoformat()}',
      extra={'period_type': self.period_type.value, 'period_start': self.start_time},
    )
    started = time.time()

    try:
      written = []
      for kind in self.GROUP_KINDS:
        groups = self.store.fetch_groups(kind, self.start_time, self.end_exclusive)
        for stats in aggregate(self.period_type, self.start_time, groups):
          written.append(
            upsert_summary(self.session, self.period_type, self.start_time, self.end_time, stats)
          )
          record_summary_written(kind.value)
      self.session.flush()
    except Exception as e:
      duration = time.time() - started
      logger.error(
        f'{self.period_type.value} summary for {self.start_time.isoformat()} failed: {e}',
        exc_info=True,
        extra={'period_type': self.period_type.value, 'period_start': self.start_time},
      )
      record_summary_run(self.period_type.value, 'failure', duration)
      raise

    duration = time.time() - started
    record_summary_run(self.period_type.value, 'success', duration)
    logger.info(
      f'Completed {self.period_type.value} summary: {len(written)} summaries written',
      extra={
        'period_type': self.period_type.value,
        'period_start': self.start_time,
        'duration_ms': round(duration * 1000, 2),
      },
    )
    return written
