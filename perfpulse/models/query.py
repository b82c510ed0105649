from sqlalchemy import Column, DateTime, Integer, String

from perfpulse.lib.database import Base
from perfpulse.lib.periods import utc_now

# Practical cap on normalized SQL so the unique index stays portable
MAX_NORMALIZED_SQL_LENGTH = 1000


class Query(Base):
  """A canonical SQL shape (fingerprint).

  Created the first time a shape is seen and never mutated afterwards.
  """

  __tablename__ = 'pulse_queries'

  id = Column(Integer, primary_key=True, autoincrement=True)
  normalized_sql = Column(String(MAX_NORMALIZED_SQL_LENGTH), nullable=False, unique=True)
  created_at = Column(DateTime, nullable=False, default=utc_now)

  def __repr__(self) -> str:
    return f"<Query(id={self.id}, normalized_sql='{self.normalized_sql[:60]}')>"
