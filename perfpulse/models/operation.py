from sqlalchemy import Column, DateTime, Float, ForeignKey, Index, Integer, String

from perfpulse.lib.database import Base

# Operation types whose labels are SQL and get a query fingerprint
SQL_OPERATION_TYPES = ('sql', 'db')


class Operation(Base):
  """One timed operation inside a request (SQL statement, view render, job...).

  SQL operations reference their normalized Query fingerprint.
  """

  __tablename__ = 'pulse_operations'

  id = Column(Integer, primary_key=True, autoincrement=True)
  request_id = Column(Integer, ForeignKey('pulse_requests.id'), nullable=False)
  query_id = Column(Integer, ForeignKey('pulse_queries.id'), nullable=True)
  operation_type = Column(String(50), nullable=False)
  label = Column(String, nullable=False)
  duration = Column(Float, nullable=False)
  codebase_location = Column(String(500), nullable=True)
  start_time = Column(Float, nullable=False, default=0.0)
  occurred_at = Column(DateTime, nullable=False)

  __table_args__ = (
    Index('ix_pulse_operations_occurred_at', 'occurred_at'),
    Index('ix_pulse_operations_query_id_occurred_at', 'query_id', 'occurred_at'),
    Index('ix_pulse_operations_operation_type', 'operation_type'),
  )
