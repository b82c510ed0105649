"""Shared test fixtures and utilities for all tests.

Provides an in-memory SQLite database with the perfpulse schema plus small
factories for seeding routes, requests and SQL operations.
"""

import sys
from pathlib import Path

# CRITICAL: Ensure the correct project root is first in sys.path
# This prevents importing from other projects with similar module names
project_root = str(Path(__file__).parent.parent.absolute())
if project_root not in sys.path:
  sys.path.insert(0, project_root)
elif sys.path[0] != project_root:
  sys.path.remove(project_root)
  sys.path.insert(0, project_root)

from datetime import datetime
from typing import Optional

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.pool import StaticPool

import perfpulse.models  # noqa: F401
from perfpulse.lib.config import PulseConfig
from perfpulse.lib.database import Base, get_session_factory
from perfpulse.models import Operation, Query, Request, Route

# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def db_engine():
  """In-memory SQLite engine with every perfpulse table created.

  pysqlite's own transaction handling is switched off so SAVEPOINTs behave
  like they do on a server database.
  """
  engine = create_engine(
    'sqlite://',
    connect_args={'check_same_thread': False},
    poolclass=StaticPool,
  )

  @event.listens_for(engine, 'connect')
  def _disable_pysqlite_transactions(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None

  @event.listens_for(engine, 'begin')
  def _emit_begin(conn):
    conn.exec_driver_sql('BEGIN')

  Base.metadata.create_all(engine)
  yield engine
  engine.dispose()


@pytest.fixture
def db_session(db_engine):
  """Session bound to the in-memory database."""
  session = get_session_factory(db_engine)()
  yield session
  session.close()


@pytest.fixture
def pulse_config():
  """Default configuration (no ignores, default thresholds)."""
  return PulseConfig(database_url='sqlite://')


# ============================================================================
# Sample Factories
# ============================================================================


@pytest.fixture
def make_route(db_session):
  """Create (and flush) a Route."""

  def _make(method: str = 'GET', path: str = '/users') -> Route:
    route = Route(method=method, path=path)
    db_session.add(route)
    db_session.flush()
    return route

  return _make


@pytest.fixture
def make_request(db_session):
  """Create (and flush) a Request sample for a route."""

  def _make(route: Route, duration: float, occurred_at: datetime, status: int = 200) -> Request:
    request = Request(
      route_id=route.id,
      duration=duration,
      status=status,
      is_error=status >= 500,
      occurred_at=occurred_at,
    )
    db_session.add(request)
    db_session.flush()
    return request

  return _make


@pytest.fixture
def make_query(db_session):
  """Create (and flush) a Query fingerprint."""

  def _make(normalized_sql: str = 'SELECT * FROM users WHERE id = ?') -> Query:
    query = Query(normalized_sql=normalized_sql)
    db_session.add(query)
    db_session.flush()
    return query

  return _make


@pytest.fixture
def make_operation(db_session):
  """Create (and flush) an SQL Operation linked to a query."""

  def _make(
    request: Request,
    query: Optional[Query],
    duration: float,
    occurred_at: datetime,
    operation_type: str = 'sql',
  ) -> Operation:
    operation = Operation(
      request_id=request.id,
      query_id=query.id if query is not None else None,
      operation_type=operation_type,
      label=query.normalized_sql if query is not None else 'render users/index',
      duration=duration,
      occurred_at=occurred_at,
    )
    db_session.add(operation)
    db_session.flush()
    return operation

  return _make
