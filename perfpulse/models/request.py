import uuid

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, String

from perfpulse.lib.database import Base


class Request(Base):
  """One recorded HTTP request (a raw sample owned by the producer).

  Summaries read these rows and never modify them.
  """

  __tablename__ = 'pulse_requests'

  id = Column(Integer, primary_key=True, autoincrement=True)
  route_id = Column(Integer, ForeignKey('pulse_routes.id'), nullable=False)
  duration = Column(Float, nullable=False)
  status = Column(Integer, nullable=False)
  is_error = Column(Boolean, nullable=False, default=False)
  request_uuid = Column(String(36), nullable=False, unique=True, default=lambda: str(uuid.uuid4()))
  controller_action = Column(String(255), nullable=True)
  occurred_at = Column(DateTime, nullable=False)

  __table_args__ = (
    Index('ix_pulse_requests_occurred_at', 'occurred_at'),
    Index('ix_pulse_requests_route_id_occurred_at', 'route_id', 'occurred_at'),
  )
