from typing import Any, Dict, List

from sqlalchemy import JSON, Column, Date, DateTime, Float, Index, Integer, String, UniqueConstraint, text

from perfpulse.lib.database import Base
from perfpulse.lib.periods import utc_now

ENTITY_TYPES = ('route', 'request', 'query')


class DailyStat(Base):
  """Per-entity statistics for one calendar day (UTC).

  hourly_data maps string hours ('0'..'23') to the hour's stats dict. The
  top-level fields stay at zero until the day is finalized from raw samples.
  entity_id is NULL for the overall 'request' entity.
  """

  __tablename__ = 'pulse_daily_stats'

  id = Column(Integer, primary_key=True, autoincrement=True)
  date = Column(Date, nullable=False)
  entity_type = Column(String(20), nullable=False)
  entity_id = Column(Integer, nullable=True)

  total_requests = Column(Integer, nullable=False, default=0)
  avg_duration = Column(Float, nullable=False, default=0.0)
  max_duration = Column(Float, nullable=False, default=0.0)
  error_count = Column(Integer, nullable=False, default=0)
  p95_duration = Column(Float, nullable=False, default=0.0)
  hourly_data = Column(JSON, nullable=False, default=dict)

  created_at = Column(DateTime, nullable=False, default=utc_now)
  updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

  __table_args__ = (
    UniqueConstraint('date', 'entity_type', 'entity_id', name='uq_pulse_daily_stats_entity_day'),
    # NULL entity ids are distinct under the constraint above; one overall row per day
    Index(
      'uq_pulse_daily_stats_overall_day',
      'date',
      'entity_type',
      unique=True,
      postgresql_where=text('entity_id IS NULL'),
      sqlite_where=text('entity_id IS NULL'),
    ),
    Index('ix_pulse_daily_stats_entity', 'entity_type', 'entity_id'),
    Index('ix_pulse_daily_stats_date', 'date'),
  )

  @property
  def is_finalized(self) -> bool:
    return (self.total_requests or 0) > 0

  def hourly_breakdown_for(self, hour: int) -> Dict[str, Any]:
    """Return the stats recorded for hour (0-23), or an empty dict."""
    return (self.hourly_data or {}).get(str(hour)) or {}

  def has_hourly_data(self) -> bool:
    return bool(self.hourly_data)

  def completed_hours(self) -> List[int]:
    """Hours that have a recorded slice, ascending."""
    return sorted(int(h) for h in (self.hourly_data or {}).keys())

  def __repr__(self) -> str:
    return f"<DailyStat({self.entity_type}:{self.entity_id} {self.date}, total={self.total_requests})>"
