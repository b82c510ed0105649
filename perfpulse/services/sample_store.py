"""Read-only access to raw samples.

Requests and operations are written by the producer; this module only runs
the two queries the aggregation paths need: samples grouped for one bucket
window, and samples for a single rollup entity. Every window is half-open,
[start, end_exclusive), so a sample on a bucket boundary is counted once.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from perfpulse.models.group_key import GroupKey, GroupKind
from perfpulse.models.operation import Operation
from perfpulse.models.request import Request


@dataclass(frozen=True)
class Sample:
  """One measurement: duration in ms, when it happened, optional HTTP status."""

  duration: float
  occurred_at: datetime
  status: Optional[int] = None


@dataclass(frozen=True)
class SampleGroup:
  key: GroupKey
  samples: List[Sample]


# Rollup entity types mapped to the group kind whose samples they read
ENTITY_GROUP_KINDS = {
  'route': GroupKind.ROUTE,
  'request': GroupKind.OVERALL,
  'query': GroupKind.QUERY,
}


class SampleStore:
  """Sample queries against the producer tables."""

  def __init__(self, session: Session):
    self.session = session

  def fetch_groups(self, kind: GroupKind, start: datetime, end_exclusive: datetime) -> List[SampleGroup]:
    """Return non-empty sample groups of one kind for a window.

    Args:
        kind: overall (one group of all requests), route or query
        start: Window start (inclusive)
        end_exclusive: Window end (exclusive)

    Returns:
        Groups ordered by entity id
    """
    kind = GroupKind(kind)

    if kind is GroupKind.OVERALL:
      samples = [self._request_sample(r) for r in self._requests(start, end_exclusive)]
      return [SampleGroup(GroupKey.overall(), samples)] if samples else []

    grouped: Dict[int, List[Sample]] = {}
    if kind is GroupKind.ROUTE:
      for request in self._requests(start, end_exclusive):
        grouped.setdefault(request.route_id, []).append(self._request_sample(request))
    else:
      for operation in self._operations(start, end_exclusive):
        grouped.setdefault(operation.query_id, []).append(self._operation_sample(operation))

    return [SampleGroup(GroupKey(kind, entity_id), grouped[entity_id]) for entity_id in sorted(grouped)]

  def fetch_entity_samples(
    self, entity_type: str, entity_id: Optional[int], start: datetime, end_exclusive: datetime
  ) -> List[Sample]:
    """Return samples for one rollup entity ('route', 'request' or 'query').

    The 'request' entity is the overall request stream and ignores entity_id.

    Raises:
        ValueError: If entity_type is unknown, or entity_id is None for a route or query
    """
    kind = _entity_kind(entity_type)
    if kind is not GroupKind.OVERALL and entity_id is None:
      raise ValueError(f'entity_id is required for {entity_type} samples')

    if kind is GroupKind.QUERY:
      operations = self._operations(start, end_exclusive, query_id=entity_id)
      return [self._operation_sample(op) for op in operations]

    route_id = entity_id if kind is GroupKind.ROUTE else None
    return [self._request_sample(r) for r in self._requests(start, end_exclusive, route_id=route_id)]

  def entity_ids_with_samples(self, entity_type: str, start: datetime, end_exclusive: datetime) -> List[Optional[int]]:
    """Return the distinct entity ids that have samples in the window.

    For the 'request' entity this is [None] when any request exists, else [].
    """
    kind = _entity_kind(entity_type)

    if kind is GroupKind.OVERALL:
      exists = (
        self.session.query(Request.id)
        .filter(Request.occurred_at >= start, Request.occurred_at < end_exclusive)
        .first()
      )
      return [None] if exists is not None else []

    if kind is GroupKind.ROUTE:
      column, occurred_at = Request.route_id, Request.occurred_at
    else:
      column, occurred_at = Operation.query_id, Operation.occurred_at

    rows = (
      self.session.query(column)
      .filter(occurred_at >= start, occurred_at < end_exclusive, column.isnot(None))
      .distinct()
      .order_by(column)
      .all()
    )
    return [row[0] for row in rows]

  def _requests(self, start: datetime, end_exclusive: datetime, route_id: Optional[int] = None) -> List[Request]:
    query = self.session.query(Request).filter(
      Request.occurred_at >= start, Request.occurred_at < end_exclusive
    )
    if route_id is not None:
      query = query.filter(Request.route_id == route_id)
    return query.order_by(Request.id).all()

  def _operations(
    self, start: datetime, end_exclusive: datetime, query_id: Optional[int] = None
  ) -> List[Operation]:
    query = self.session.query(Operation).filter(
      Operation.occurred_at >= start,
      Operation.occurred_at < end_exclusive,
      Operation.query_id.isnot(None),
    )
    if query_id is not None:
      query = query.filter(Operation.query_id == query_id)
    return query.order_by(Operation.id).all()

  @staticmethod
  def _request_sample(request: Request) -> Sample:
    return Sample(duration=request.duration, occurred_at=request.occurred_at, status=request.status)

  @staticmethod
  def _operation_sample(operation: Operation) -> Sample:
    return Sample(duration=operation.duration, occurred_at=operation.occurred_at)


def _entity_kind(entity_type: str) -> GroupKind:
  try:
    return ENTITY_GROUP_KINDS[entity_type]
  except KeyError:
    raise ValueError(f'Unknown entity type {entity_type!r}') from None
