"""Integration tests for the sample write path."""

import logging
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest

from perfpulse.lib.config import PulseConfig
from perfpulse.models import Operation, Query, Request, Route
from perfpulse.services.ingestion_service import IngestionService
from perfpulse.services.query_registry import find_or_create_query, fingerprint

OCCURRED_AT = datetime(2024, 1, 1, 10, 15)


def _first_lookup_misses(session):
  """Make the session's first lookup miss, as if another writer inserted the row meanwhile."""
  query = session.query
  calls = []

  def _query(*args, **kwargs):
    calls.append(args)
    if len(calls) == 1:
      missing = MagicMock()
      missing.filter.return_value.first.return_value = None
      return missing
    return query(*args, **kwargs)

  return patch.object(session, 'query', side_effect=_query)


@pytest.fixture
def service(db_session, pulse_config):
  return IngestionService(db_session, pulse_config)


class TestRecordRequest:
  def test_creates_route_on_first_sight(self, db_session, service):
    request = service.record_request('get', '/users', 120.5, 200, OCCURRED_AT, controller_action='users#index')
    db_session.commit()

    route = db_session.query(Route).one()
    assert route.method == 'GET'
    assert route.path == '/users'
    assert request.route_id == route.id
    assert request.controller_action == 'users#index'
    assert request.request_uuid

  def test_reuses_existing_route(self, db_session, service):
    first = service.record_request('GET', '/users', 100, 200, OCCURRED_AT)
    second = service.record_request('get', '/users', 110, 200, OCCURRED_AT)

    assert first.route_id == second.route_id
    assert db_session.query(Route).count() == 1
    assert db_session.query(Request).count() == 2

  def test_route_created_concurrently_is_reused(self, db_session, service, make_route):
    existing = make_route('GET', '/users')

    with _first_lookup_misses(db_session):
      route = service.get_or_create_route('GET', '/users')

    assert route.id == existing.id
    assert db_session.query(Route).count() == 1

  @pytest.mark.parametrize('status,is_error', [(200, False), (404, False), (500, True), (503, True)])
  def test_server_errors_are_flagged(self, service, status, is_error):
    request = service.record_request('GET', '/users', 100, status, OCCURRED_AT)

    assert request.is_error is is_error

  def test_aware_timestamps_are_stored_as_utc(self, db_session, service):
    aware = datetime(2024, 1, 1, 12, 15, tzinfo=timezone(timedelta(hours=2)))
    service.record_request('GET', '/users', 100, 200, aware)
    db_session.commit()

    assert db_session.query(Request).one().occurred_at == OCCURRED_AT

  def test_ignored_route(self, db_session):
    config = PulseConfig(ignored_routes=('/health',))
    service = IngestionService(db_session, config)

    assert service.record_request('GET', '/health', 1, 200, OCCURRED_AT) is None
    assert db_session.query(Route).count() == 0
    assert db_session.query(Request).count() == 0

  def test_ignored_request_pattern(self, db_session):
    config = PulseConfig(ignored_requests=('re:^POST /webhooks/',))
    service = IngestionService(db_session, config)

    assert service.record_request('post', '/webhooks/stripe', 1, 200, OCCURRED_AT) is None
    assert service.record_request('GET', '/webhooks/stripe', 1, 200, OCCURRED_AT) is not None

  def test_negative_duration(self, service):
    with pytest.raises(ValueError, match='non-negative'):
      service.record_request('GET', '/users', -1, 200, OCCURRED_AT)

  def test_critical_request_logs_warning(self, service, caplog):
    with caplog.at_level(logging.WARNING):
      service.record_request('GET', '/reports', 4500, 200, OCCURRED_AT)

    assert 'Critical request duration 4500.0ms for GET /reports' in caplog.text


class TestRecordOperation:
  @pytest.fixture
  def request_row(self, service):
    return service.record_request('GET', '/users', 100, 200, OCCURRED_AT)

  def test_same_shape_shares_a_fingerprint(self, db_session, service, request_row):
    first = service.record_operation(request_row, 'sql', 'SELECT * FROM users WHERE id = 1', 2.0, OCCURRED_AT)
    second = service.record_operation(request_row, 'sql', 'SELECT * FROM users WHERE id = 42', 3.0, OCCURRED_AT)
    db_session.commit()

    assert first.query_id is not None
    assert first.query_id == second.query_id
    assert db_session.query(Query).count() == 1

  def test_distinct_shapes_get_distinct_fingerprints(self, db_session, service, request_row):
    first = service.record_operation(request_row, 'sql', 'SELECT * FROM users WHERE id = 1', 2.0, OCCURRED_AT)
    second = service.record_operation(request_row, 'sql', 'SELECT * FROM posts WHERE id = 1', 2.0, OCCURRED_AT)

    assert first.query_id != second.query_id
    assert db_session.query(Query).count() == 2

  def test_non_sql_operations_are_not_fingerprinted(self, db_session, service, request_row):
    operation = service.record_operation(
      request_row, 'view', 'render users/index', 8.0, OCCURRED_AT, codebase_location='app/views/users/index.erb'
    )

    assert operation.query_id is None
    assert operation.codebase_location == 'app/views/users/index.erb'
    assert db_session.query(Query).count() == 0

  def test_ignored_query(self, db_session, request_row):
    service = IngestionService(db_session, PulseConfig(ignored_queries=('re:^SHOW ',)))

    operation = service.record_operation(request_row, 'sql', 'SHOW TABLES', 1.0, OCCURRED_AT)

    assert operation.query_id is None
    assert db_session.query(Operation).count() == 1
    assert db_session.query(Query).count() == 0

  def test_negative_duration(self, service, request_row):
    with pytest.raises(ValueError, match='non-negative'):
      service.record_operation(request_row, 'sql', 'SELECT 1', -0.5, OCCURRED_AT)

  def test_critical_query_logs_warning(self, service, request_row, caplog):
    with caplog.at_level(logging.WARNING):
      operation = service.record_operation(request_row, 'sql', 'SELECT * FROM users', 1500.0, OCCURRED_AT)

    assert f'Critical SELECT query duration 1500.0ms (query {operation.query_id})' in caplog.text


class TestQueryRegistry:
  def test_truncates_long_fingerprints(self, db_session):
    config = PulseConfig(max_normalized_sql_length=20)
    sql = 'SELECT id, name, email, created_at FROM users WHERE id = 7'

    query = find_or_create_query(db_session, sql, config)

    assert len(query.normalized_sql) == 20
    assert query.normalized_sql == fingerprint(sql, 1000)[:20]

  def test_blank_label_returns_none(self, db_session, pulse_config):
    assert find_or_create_query(db_session, '', pulse_config) is None
    assert find_or_create_query(db_session, None, pulse_config) is None


  def test_committed_fingerprint_is_reused(self, db_session, pulse_config):
    created_id = find_or_create_query(db_session, 'DELETE FROM users WHERE id = 3', pulse_config).id
    db_session.commit()

    found = find_or_create_query(db_session, 'DELETE FROM users WHERE id = 9', pulse_config)

    assert found.id == created_id

  def test_fingerprint_created_concurrently_is_reused(self, db_session, pulse_config, make_query):
    existing = make_query('SELECT * FROM users WHERE id = ?')

    with _first_lookup_misses(db_session):
      found = find_or_create_query(db_session, 'SELECT * FROM users WHERE id = 5', pulse_config)

    assert found.id == existing.id
    assert db_session.query(Query).count() == 1
