from sqlalchemy import Column, DateTime, Float, Index, Integer, String, UniqueConstraint

from perfpulse.lib.database import Base
from perfpulse.lib.periods import utc_now
from perfpulse.models.group_key import GroupKey


class Summary(Base):
  """Pre-computed statistics for one group over one period bucket.

  Exactly one row exists per (summarizable_type, summarizable_id, period_type,
  period_start). Re-running aggregation overwrites the row in place.
  """

  __tablename__ = 'pulse_summaries'

  id = Column(Integer, primary_key=True, autoincrement=True)
  summarizable_type = Column(String(20), nullable=False)
  summarizable_id = Column(Integer, nullable=False)
  period_type = Column(String(10), nullable=False)
  period_start = Column(DateTime, nullable=False)
  period_end = Column(DateTime, nullable=False)

  count = Column(Integer, nullable=False, default=0)
  avg_duration = Column(Float, nullable=True)
  min_duration = Column(Float, nullable=True)
  max_duration = Column(Float, nullable=True)
  total_duration = Column(Float, nullable=True)
  p50_duration = Column(Float, nullable=True)
  p95_duration = Column(Float, nullable=True)
  p99_duration = Column(Float, nullable=True)
  stddev_duration = Column(Float, nullable=True)

  error_count = Column(Integer, nullable=False, default=0)
  success_count = Column(Integer, nullable=False, default=0)
  status_2xx = Column(Integer, nullable=False, default=0)
  status_3xx = Column(Integer, nullable=False, default=0)
  status_4xx = Column(Integer, nullable=False, default=0)
  status_5xx = Column(Integer, nullable=False, default=0)

  created_at = Column(DateTime, nullable=False, default=utc_now)
  updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

  __table_args__ = (
    UniqueConstraint(
      'summarizable_type',
      'summarizable_id',
      'period_type',
      'period_start',
      name='uq_pulse_summaries_natural_key',
    ),
    Index('ix_pulse_summaries_period_type_period_start', 'period_type', 'period_start'),
  )

  @property
  def group_key(self) -> GroupKey:
    return GroupKey.from_columns(self.summarizable_type, self.summarizable_id)

  def __repr__(self) -> str:
    return (
      f'<Summary({self.summarizable_type}:{self.summarizable_id} '
      f'{self.period_type}@{self.period_start}, count={self.count})>'
    )
