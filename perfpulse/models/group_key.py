"""Summary group keys.

A summary belongs to exactly one group: the overall (all requests) bucket, a
route, or a query fingerprint. The overall group has no entity id; it is
persisted with summarizable_id 0 under its own type tag.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

OVERALL_SUMMARIZABLE_ID = 0


class GroupKind(str, Enum):
  OVERALL = 'overall'
  ROUTE = 'route'
  QUERY = 'query'


@dataclass(frozen=True)
class GroupKey:
  """Tagged group identity: (kind, entity_id)."""

  kind: GroupKind
  entity_id: Optional[int] = None

  def __post_init__(self):
    if self.kind is GroupKind.OVERALL:
      if self.entity_id is not None:
        raise ValueError('Overall group key carries no entity id')
    elif self.entity_id is None:
      raise ValueError(f'{self.kind.value} group key requires an entity id')

  @classmethod
  def overall(cls) -> 'GroupKey':
    return cls(GroupKind.OVERALL)

  @classmethod
  def route(cls, route_id: int) -> 'GroupKey':
    return cls(GroupKind.ROUTE, route_id)

  @classmethod
  def query(cls, query_id: int) -> 'GroupKey':
    return cls(GroupKind.QUERY, query_id)

  def to_columns(self) -> Tuple[str, int]:
    """Return the (summarizable_type, summarizable_id) pair stored on Summary rows."""
    if self.kind is GroupKind.OVERALL:
      return self.kind.value, OVERALL_SUMMARIZABLE_ID
    return self.kind.value, self.entity_id

  @classmethod
  def from_columns(cls, summarizable_type: str, summarizable_id: int) -> 'GroupKey':
    kind = GroupKind(summarizable_type)
    if kind is GroupKind.OVERALL:
      return cls.overall()
    return cls(kind, summarizable_id)
