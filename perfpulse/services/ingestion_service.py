"""Sample ingestion.

The producer-side write path: routes are created on first sight, requests
are recorded unless filtered by configuration, and SQL operations are linked
to their query fingerprint.
"""

import logging
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from perfpulse.lib.config import STATUS_CRITICAL, PulseConfig
from perfpulse.lib.periods import to_utc
from perfpulse.models.operation import SQL_OPERATION_TYPES, Operation
from perfpulse.models.request import Request
from perfpulse.models.route import Route
from perfpulse.services.query_registry import find_or_create_query
from perfpulse.services.sql_normalizer import get_sql_type

logger = logging.getLogger(__name__)

ERROR_STATUS = 500


class IngestionService:
  """Write raw samples into the producer tables.

  Writes are flushed, not committed.
  """

  def __init__(self, session: Session, config: PulseConfig):
    self.session = session
    self.config = config

  def get_or_create_route(self, method: str, path: str) -> Route:
    method = method.upper()
    route = self.session.query(Route).filter(Route.method == method, Route.path == path).first()
    if route is not None:
      return route

    savepoint = self.session.begin_nested()
    try:
      route = Route(method=method, path=path)
      self.session.add(route)
      self.session.flush()
      savepoint.commit()
    except IntegrityError:
      savepoint.rollback()
      route = self.session.query(Route).filter(Route.method == method, Route.path == path).one()
    return route

  def record_request(
    self,
    method: str,
    path: str,
    duration: float,
    status: int,
    occurred_at: datetime,
    controller_action: Optional[str] = None,
    request_uuid: Optional[str] = None,
  ) -> Optional[Request]:
    """Record one request sample.

    Returns:
        The new Request, or None when the route or request is ignored

    Raises:
        ValueError: If duration is negative
    """
    if duration < 0:
      raise ValueError(f'Duration must be non-negative, got {duration}')

    if self.config.is_route_ignored(path) or self.config.is_request_ignored(method, path):
      logger.debug(f'Ignoring request {method.upper()} {path}')
      return None

    route = self.get_or_create_route(method, path)
    request = Request(
      route_id=route.id,
      duration=duration,
      status=status,
      is_error=status >= ERROR_STATUS,
      request_uuid=request_uuid or str(uuid.uuid4()),
      controller_action=controller_action,
      occurred_at=to_utc(occurred_at),
    )
    self.session.add(request)
    self.session.flush()

    if self.config.request_thresholds.classify(duration) == STATUS_CRITICAL:
      logger.warning(f'Critical request duration {duration:.1f}ms for {route.method} {route.path}')

    return request

  def record_operation(
    self,
    request: Request,
    operation_type: str,
    label: str,
    duration: float,
    occurred_at: datetime,
    codebase_location: Optional[str] = None,
    start_time: float = 0.0,
  ) -> Operation:
    """Record one operation of a request, fingerprinting SQL labels.

    Raises:
        ValueError: If duration is negative
    """
    if duration < 0:
      raise ValueError(f'Duration must be non-negative, got {duration}')

    query = None
    if operation_type in SQL_OPERATION_TYPES and label:
      query = find_or_create_query(self.session, label, self.config)

    operation = Operation(
      request_id=request.id,
      query_id=query.id if query is not None else None,
      operation_type=operation_type,
      label=label,
      duration=duration,
      codebase_location=codebase_location,
      start_time=start_time,
      occurred_at=to_utc(occurred_at),
    )
    self.session.add(operation)
    self.session.flush()

    if query is not None and self.config.query_thresholds.classify(duration) == STATUS_CRITICAL:
      logger.warning(
        f'Critical {get_sql_type(label)} query duration {duration:.1f}ms (query {query.id})'
      )

    return operation
