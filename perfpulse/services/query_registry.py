"""Query fingerprint registry.

Maps raw SQL labels to their normalized Query row, creating the row the
first time a shape is seen.
"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from perfpulse.lib.config import PulseConfig
from perfpulse.lib.metrics import record_query_fingerprint
from perfpulse.models.query import Query
from perfpulse.services.sql_normalizer import normalize

logger = logging.getLogger(__name__)


def fingerprint(raw_sql: Optional[str], max_length: int) -> Optional[str]:
  """Normalize and truncate a SQL label; None for blank input."""
  normalized = normalize(raw_sql)
  if not normalized:
    return None
  return normalized[:max_length]


def find_or_create_query(session: Session, raw_sql: Optional[str], config: PulseConfig) -> Optional[Query]:
  """Return the Query for raw_sql's shape, creating it when missing.

  Labels matching config.ignored_queries, and blank labels, are not
  fingerprinted and return None. Concurrent creation of the same shape is
  resolved by retrying the lookup after the unique constraint fires.

  Args:
      session: SQLAlchemy database session (caller commits)
      raw_sql: SQL label as captured by the producer
      config: perfpulse configuration

  Returns:
      Existing or newly created Query, or None
  """
  if config.is_query_ignored(raw_sql):
    record_query_fingerprint('ignored')
    return None

  normalized = fingerprint(raw_sql, config.max_normalized_sql_length)
  if normalized is None:
    return None

  existing = session.query(Query).filter(Query.normalized_sql == normalized).first()
  if existing is not None:
    record_query_fingerprint('existing')
    return existing

  # Savepoint keeps a lost creation race from rolling back the caller's transaction
  savepoint = session.begin_nested()
  try:
    query = Query(normalized_sql=normalized)
    session.add(query)
    session.flush()
    savepoint.commit()
  except IntegrityError:
    savepoint.rollback()
    logger.info('Query fingerprint created concurrently, reusing existing row')
    record_query_fingerprint('existing')
    return session.query(Query).filter(Query.normalized_sql == normalized).one()

  logger.debug(f'Created query fingerprint {query.id}: {normalized[:80]}')
  record_query_fingerprint('created')
  return query
