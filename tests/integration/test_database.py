"""Integration tests for engine and session helpers."""

import pytest

from perfpulse.lib.database import create_pulse_engine, get_session_factory, session_scope
from perfpulse.models import Route


def test_create_engine_requires_url():
  with pytest.raises(ValueError, match='DATABASE_URL'):
    create_pulse_engine('')


def test_sqlite_engine_uses_dialect_pool():
  engine = create_pulse_engine('sqlite://')
  try:
    assert engine.dialect.name == 'sqlite'
  finally:
    engine.dispose()


class TestSessionScope:
  def test_commits_on_success(self, db_engine):
    factory = get_session_factory(db_engine)

    with session_scope(factory) as session:
      session.add(Route(method='GET', path='/users'))

    with factory() as session:
      assert session.query(Route).count() == 1

  def test_rolls_back_and_reraises(self, db_engine):
    factory = get_session_factory(db_engine)

    with pytest.raises(RuntimeError, match='boom'):
      with session_scope(factory) as session:
        session.add(Route(method='GET', path='/users'))
        session.flush()
        raise RuntimeError('boom')

    with factory() as session:
      assert session.query(Route).count() == 0
