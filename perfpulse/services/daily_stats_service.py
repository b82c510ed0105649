"""Hour-to-day rollup of per-entity statistics.

Each hour the hourly job merges that hour's slice into the entity's DailyStat
row (hourly_data[str(hour)]). The top-level daily fields stay at zero until
the daily job finalizes the row by recomputing them from the raw samples of
the whole day, so they never drift from averaging partial averages.

Entity types:
    route: requests of one route
    request: all requests (entity_id is None)
    query: SQL operations of one query fingerprint (never errors)
"""

import logging
import time
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from perfpulse.lib.config import STATUS_CRITICAL, PulseConfig
from perfpulse.lib.metrics import record_day_finalized, record_hour_recorded
from perfpulse.lib.periods import PeriodType, day_window, period_start, to_utc_date
from perfpulse.lib.statistics import nearest_rank_percentile
from perfpulse.models.daily_stat import ENTITY_TYPES, DailyStat
from perfpulse.services.sample_store import Sample, SampleStore

logger = logging.getLogger(__name__)

# HTTP status at or above which a request counts as an error
ERROR_STATUS = 500

# The overall request stream; the only entity type stored without an id
OVERALL_ENTITY_TYPE = 'request'


class HourStats(BaseModel):
  """Stats for one entity over one hour, stored under hourly_data[str(hour)]."""

  requests: int = Field(..., ge=0, description='Sample count')
  avg_duration: float = Field(..., ge=0, description='Mean duration (ms, 3 decimals)')
  max_duration: float = Field(..., ge=0, description='Max duration (ms)')
  errors: int = Field(default=0, ge=0, description='Samples with status >= 500')
  p95_duration: float = Field(..., ge=0, description='Nearest-rank p95 (ms)')


def _is_error(sample: Sample) -> bool:
  return sample.status is not None and sample.status >= ERROR_STATUS


def _rounded_avg(durations: Sequence[float]) -> float:
  if not durations:
    return 0.0
  return round(sum(durations) / len(durations), 3)


def compute_hour_stats(samples: Sequence[Sample]) -> Optional[HourStats]:
  """Compute an hour slice; None when there are no samples."""
  if not samples:
    return None

  durations = [s.duration for s in samples]
  return HourStats(
    requests=len(durations),
    avg_duration=_rounded_avg(durations),
    max_duration=float(max(durations)),
    errors=sum(1 for s in samples if _is_error(s)),
    p95_duration=nearest_rank_percentile(durations, 0.95),
  )


def _validate_entity(entity_type: str, entity_id: Optional[int]):
  if entity_type not in ENTITY_TYPES:
    raise ValueError(f'Unknown entity type {entity_type!r} (expected one of {", ".join(ENTITY_TYPES)})')
  if entity_type != OVERALL_ENTITY_TYPE and entity_id is None:
    raise ValueError(f'entity_id is required for {entity_type} daily stats')


def _daily_stat_query(session: Session, entity_type: str, entity_id: Optional[int], day: date):
  query = session.query(DailyStat).filter(DailyStat.date == day, DailyStat.entity_type == entity_type)
  if entity_id is None:
    return query.filter(DailyStat.entity_id.is_(None))
  return query.filter(DailyStat.entity_id == entity_id)


def record_hour(
  session: Session,
  entity_type: str,
  entity_id: Optional[int],
  day: date,
  hour: int,
  hour_stats: HourStats,
) -> DailyStat:
  """Merge one hour's slice into the entity's DailyStat for day.

  Only hourly_data[str(hour)] is touched; other hours and the top-level daily
  fields are preserved. A new row starts with zeroed daily fields; when a
  concurrent writer creates the same row first, its row is locked and merged
  into instead.

  Raises:
      ValueError: If hour is outside 0..23, entity_type is unknown, or a
          route/query entity has no entity_id
  """
  if not 0 <= hour <= 23:
    raise ValueError(f'Hour must be between 0 and 23, got {hour}')
  _validate_entity(entity_type, entity_id)

  daily_stat = _daily_stat_query(session, entity_type, entity_id, day).with_for_update().first()
  if daily_stat is None:
    daily_stat = _create_daily_stat(session, entity_type, entity_id, day)

  # Assign a new dict so the JSON column change is detected
  merged = dict(daily_stat.hourly_data or {})
  merged[str(hour)] = hour_stats.model_dump()
  daily_stat.hourly_data = merged

  session.flush()
  record_hour_recorded(entity_type)
  return daily_stat


def _create_daily_stat(session: Session, entity_type: str, entity_id: Optional[int], day: date) -> DailyStat:
  savepoint = session.begin_nested()
  try:
    daily_stat = DailyStat(
      date=day,
      entity_type=entity_type,
      entity_id=entity_id,
      total_requests=0,
      avg_duration=0.0,
      max_duration=0.0,
      error_count=0,
      p95_duration=0.0,
      hourly_data={},
    )
    session.add(daily_stat)
    session.flush()
    savepoint.commit()
  except IntegrityError:
    savepoint.rollback()
    logger.info(f'Daily stat for {entity_type}:{entity_id} on {day} created concurrently, reusing existing row')
    daily_stat = _daily_stat_query(session, entity_type, entity_id, day).with_for_update().one()
  return daily_stat


def finalize_day(
  session: Session,
  store: SampleStore,
  entity_type: str,
  entity_id: Optional[int],
  day: date,
) -> Optional[DailyStat]:
  """Recompute the daily fields of an entity's DailyStat from raw samples.

  Overwrites total_requests, avg_duration, max_duration, error_count and
  p95_duration; hourly_data is left as recorded.

  Returns:
      The updated DailyStat, or None when there is no row or no samples
  """
  _validate_entity(entity_type, entity_id)

  daily_stat = _daily_stat_query(session, entity_type, entity_id, day).with_for_update().first()
  if daily_stat is None:
    return None

  start, end_exclusive = day_window(day)
  samples = store.fetch_entity_samples(entity_type, entity_id, start, end_exclusive)
  if not samples:
    logger.debug(f'No samples for {entity_type}:{entity_id} on {day}, leaving daily stat as is')
    return None

  durations = [s.duration for s in samples]
  daily_stat.total_requests = len(durations)
  daily_stat.avg_duration = _rounded_avg(durations)
  daily_stat.max_duration = float(max(durations))
  daily_stat.error_count = sum(1 for s in samples if _is_error(s))
  daily_stat.p95_duration = nearest_rank_percentile(durations, 0.95)

  session.flush()
  record_day_finalized(entity_type)
  return daily_stat


class DailyStatsService:
  """Hourly and daily rollup jobs over every entity.

  Writes are flushed, not committed. Routes whose hourly average reaches the
  configured critical route threshold are logged as warnings.
  """

  def __init__(
    self, session: Session, store: Optional[SampleStore] = None, config: Optional[PulseConfig] = None
  ):
    self.session = session
    self.store = store or SampleStore(session)
    self.config = config or PulseConfig()

  def process_hour(self, target_hour: datetime) -> Dict[str, Any]:
    """Record the hour slice of every route, the overall request stream and every query.

    Returns:
        Counts per entity type plus the processed date and hour
    """
    hour_start = period_start(PeriodType.HOUR, target_hour)
    hour_end = hour_start + timedelta(hours=1)
    day = hour_start.date()
    started = time.time()

    logger.info(f'Starting hourly stats for {hour_start.isoformat()}', extra={'period_start': hour_start})

    try:
      processed = {
        entity_type: self._process_entities_for_hour(entity_type, hour_start, hour_end)
        for entity_type in ENTITY_TYPES
      }
    except Exception as e:
      logger.error(f'Hourly stats for {hour_start.isoformat()} failed: {e}', exc_info=True)
      raise

    logger.info(
      f"Completed hourly stats - {processed['route']} routes, {processed['request']} requests, "
      f"{processed['query']} queries processed for hour {hour_start.hour}",
      extra={'period_start': hour_start, 'duration_ms': round((time.time() - started) * 1000, 2)},
    )
    return {
      'routes': processed['route'],
      'requests': processed['request'],
      'queries': processed['query'],
      'date': day,
      'hour': hour_start.hour,
    }

  def _process_entities_for_hour(self, entity_type: str, hour_start: datetime, hour_end: datetime) -> int:
    processed = 0
    for entity_id in self.store.entity_ids_with_samples(entity_type, hour_start, hour_end):
      samples = self.store.fetch_entity_samples(entity_type, entity_id, hour_start, hour_end)
      hour_stats = compute_hour_stats(samples)
      if hour_stats is None:
        continue
      record_hour(self.session, entity_type, entity_id, hour_start.date(), hour_start.hour, hour_stats)
      if entity_type == 'route':
        self._check_route_average(entity_id, hour_start, hour_stats)
      processed += 1
    return processed

  def _check_route_average(self, route_id: int, hour_start: datetime, hour_stats: HourStats):
    if self.config.route_thresholds.classify(hour_stats.avg_duration) == STATUS_CRITICAL:
      logger.warning(
        f'Critical average duration {hour_stats.avg_duration:.1f}ms for route {route_id} '
        f'in hour {hour_start.isoformat()}',
        extra={'entity_type': 'route', 'entity_id': route_id, 'period_start': hour_start},
      )

  def process_day(self, day: date) -> Dict[str, Any]:
    """Finalize every unfinalized DailyStat row of day.

    Returns:
        Finalized counts per entity type plus the date
    """
    day = to_utc_date(day)
    logger.info(f'Starting daily stats finalization for {day}')

    try:
      finalized = {entity_type: 0 for entity_type in ENTITY_TYPES}
      for daily_stat in self._unfinalized(day):
        result = finalize_day(self.session, self.store, daily_stat.entity_type, daily_stat.entity_id, day)
        if result is not None:
          finalized[daily_stat.entity_type] += 1
    except Exception as e:
      logger.error(f'Daily stats finalization for {day} failed: {e}', exc_info=True)
      raise

    logger.info(
      f"Completed daily stats - {finalized['route']} routes, {finalized['request']} requests, "
      f"{finalized['query']} queries finalized for {day}"
    )
    return {
      'routes': finalized['route'],
      'requests': finalized['request'],
      'queries': finalized['query'],
      'date': day,
    }

  def _unfinalized(self, day: date) -> List[DailyStat]:
    return (
      self.session.query(DailyStat)
      .filter(DailyStat.date == day, DailyStat.total_requests == 0)
      .order_by(DailyStat.entity_type, DailyStat.id)
      .all()
    )
