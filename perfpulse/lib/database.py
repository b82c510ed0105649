"""Database Connection Module

Provides the declarative Base shared by every perfpulse model, plus engine and
session helpers. Works against any SQLAlchemy URL; server databases get a
QueuePool with pre-ping, SQLite (used in tests and local runs) keeps the
dialect default pool.
"""

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool

logger = logging.getLogger(__name__)

Base = declarative_base()


def create_pulse_engine(
  database_url: str,
  pool_size: int = 10,
  max_overflow: int = 10,
  pool_pre_ping: bool = True,
  echo: bool = False,
) -> Engine:
  """Create SQLAlchemy engine for the summary store.

  Args:
      database_url: SQLAlchemy connection URL (e.g. postgresql+psycopg://... or sqlite:///pulse.db)
      pool_size: Number of connections to maintain in pool
      max_overflow: Maximum overflow connections beyond pool_size
      pool_pre_ping: Test connections before use to detect stale connections
      echo: Log emitted SQL (debugging)

  Returns:
      Configured SQLAlchemy engine

  Raises:
      ValueError: If database_url is empty
  """
  if not database_url:
    raise ValueError('Missing required configuration: DATABASE_URL')

  if database_url.startswith('sqlite'):
    return create_engine(database_url, echo=echo)

  return create_engine(
    database_url,
    poolclass=QueuePool,
    pool_size=pool_size,
    max_overflow=max_overflow,
    pool_pre_ping=pool_pre_ping,  # Verify connections before use
    pool_recycle=3600,  # Recycle connections after 1 hour
    echo=echo,
  )


def get_session_factory(engine: Engine) -> sessionmaker:
  """Get session factory for ORM operations.

  Returns:
      Session factory bound to the given engine

  Usage:
      SessionFactory = get_session_factory(engine)
      with SessionFactory() as session:
          summaries = session.query(Summary).filter_by(period_type='hour').all()
  """
  return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def session_scope(session_factory: sessionmaker) -> Generator[Session, None, None]:
  """Provide a transactional scope around a series of operations.

  Commits when the block succeeds, rolls back and re-raises otherwise.

  Usage:
      with session_scope(SessionFactory) as session:
          SummaryService(session, 'hour', target_hour).perform()
  """
  session = session_factory()
  try:
    yield session
    session.commit()
  except Exception:
    session.rollback()
    raise
  finally:
    session.close()
