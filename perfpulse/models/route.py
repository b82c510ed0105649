
from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint

from perfpulse.lib.database import Base
from perfpulse.lib.periods import utc_now


class Route(Base):
  """An HTTP method + path pair that requests are recorded against."""

  __tablename__ = 'pulse_routes'

  id = Column(Integer, primary_key=True, autoincrement=True)
  method = Column(String(10), nullable=False)
  path = Column(String(500), nullable=False)
  created_at = Column(DateTime, nullable=False, default=utc_now)

  __table_args__ = (UniqueConstraint('method', 'path', name='uq_pulse_routes_method_path'),)

  def __repr__(self) -> str:
    return f"<Route(id={self.id}, method='{self.method}', path='{self.path}')>"

  @property
  def path_and_method(self) -> str:
    return f'{self.path} {self.method}'
