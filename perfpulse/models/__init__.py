"""Models package for database entities."""

from perfpulse.models.daily_stat import DailyStat
from perfpulse.models.group_key import GroupKey, GroupKind
from perfpulse.models.operation import Operation
from perfpulse.models.query import Query
from perfpulse.models.request import Request
from perfpulse.models.route import Route
from perfpulse.models.summary import Summary

__all__ = [
  'Route',
  'Request',
  'Query',
  'Operation',
  'Summary',
  'DailyStat',
  'GroupKey',
  'GroupKind',
]
