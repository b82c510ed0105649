"""Unit tests for summary group keys."""

import pytest

from perfpulse.models.group_key import GroupKey, GroupKind


def test_overall_is_stored_under_its_own_tag():
  assert GroupKey.overall().to_columns() == ('overall', 0)


def test_route_and_query_keep_entity_id():
  assert GroupKey.route(7).to_columns() == ('route', 7)
  assert GroupKey.query(7).to_columns() == ('query', 7)


def test_overall_never_collides_with_entity_zero():
  assert GroupKey.overall().to_columns() != GroupKey.route(0).to_columns()
  assert GroupKey.overall() != GroupKey.query(0)


def test_round_trip_through_columns():
  for key in (GroupKey.overall(), GroupKey.route(3), GroupKey.query(11)):
    assert GroupKey.from_columns(*key.to_columns()) == key


def test_invalid_combinations():
  with pytest.raises(ValueError):
    GroupKey(GroupKind.OVERALL, 5)
  with pytest.raises(ValueError):
    GroupKey(GroupKind.ROUTE)


def test_keys_are_hashable():
  assert len({GroupKey.route(1), GroupKey.route(1), GroupKey.query(1)}) == 2
