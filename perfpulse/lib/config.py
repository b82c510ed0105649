"""Immutable configuration for perfpulse jobs and services.

Configuration is built once (usually with PulseConfig.from_env()) and passed
explicitly into the components that need thresholds or filters.

Environment variables:
    DATABASE_URL: SQLAlchemy URL of the summary store
    PULSE_ROUTE_THRESHOLDS / PULSE_REQUEST_THRESHOLDS / PULSE_QUERY_THRESHOLDS:
        'slow,very_slow,critical' in milliseconds
    PULSE_IGNORED_ROUTES / PULSE_IGNORED_REQUESTS / PULSE_IGNORED_QUERIES:
        comma-separated entries; exact strings, or regular expressions when
        prefixed with 're:'
    PULSE_MAX_NORMALIZED_SQL_LENGTH: fingerprint length cap (default 1000)
    PULSE_BACKFILL_STEP_DELAY: seconds to sleep between backfill steps (default 0.1)
"""

import os
import re
from typing import Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Status indicator levels returned by Thresholds.classify
STATUS_FAST = 0
STATUS_SLOW = 1
STATUS_VERY_SLOW = 2
STATUS_CRITICAL = 3

REGEX_PREFIX = 're:'


class Thresholds(BaseModel):
  """Duration thresholds in milliseconds."""

  model_config = ConfigDict(frozen=True)

  slow: float = Field(..., ge=0, description='Slow threshold (ms)')
  very_slow: float = Field(..., ge=0, description='Very slow threshold (ms)')
  critical: float = Field(..., ge=0, description='Critical threshold (ms)')

  @field_validator('very_slow')
  @classmethod
  def validate_very_slow(cls, v: float, info) -> float:
    """Validate very_slow is not below slow."""
    if 'slow' in info.data and v < info.data['slow']:
      raise ValueError(f'very_slow ({v}) must be >= slow ({info.data["slow"]})')
    return v

  @field_validator('critical')
  @classmethod
  def validate_critical(cls, v: float, info) -> float:
    """Validate critical is not below very_slow."""
    if 'very_slow' in info.data and v < info.data['very_slow']:
      raise ValueError(f'critical ({v}) must be >= very_slow ({info.data["very_slow"]})')
    return v

  def classify(self, duration: float) -> int:
    """Map a duration to a status indicator (0 fast .. 3 critical)."""
    if duration >= self.critical:
      return STATUS_CRITICAL
    if duration >= self.very_slow:
      return STATUS_VERY_SLOW
    if duration >= self.slow:
      return STATUS_SLOW
    return STATUS_FAST


class PulseConfig(BaseModel):
  """perfpulse configuration.

  Attributes:
      database_url: SQLAlchemy URL of the summary store
      route_thresholds: Thresholds for per-route averages
      request_thresholds: Thresholds for individual requests
      query_thresholds: Thresholds for individual SQL operations
      ignored_routes: Route paths never recorded
      ignored_requests: 'METHOD path' strings never recorded
      ignored_queries: SQL labels never fingerprinted
      max_normalized_sql_length: Cap on stored normalized SQL
      backfill_step_delay_seconds: Pause between backfill steps
  """

  model_config = ConfigDict(frozen=True)

  database_url: str = Field(default='', description='SQLAlchemy database URL')
  route_thresholds: Thresholds = Field(
    default_factory=lambda: Thresholds(slow=500, very_slow=1500, critical=3000)
  )
  request_thresholds: Thresholds = Field(
    default_factory=lambda: Thresholds(slow=700, very_slow=2000, critical=4000)
  )
  query_thresholds: Thresholds = Field(
    default_factory=lambda: Thresholds(slow=100, very_slow=500, critical=1000)
  )
  ignored_routes: Tuple[str, ...] = ()
  ignored_requests: Tuple[str, ...] = ()
  ignored_queries: Tuple[str, ...] = ()
  max_normalized_sql_length: int = Field(default=1000, gt=0)
  backfill_step_delay_seconds: float = Field(default=0.1, ge=0)

  @field_validator('ignored_routes', 'ignored_requests', 'ignored_queries')
  @classmethod
  def validate_patterns(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
    """Reject regular expressions that do not compile."""
    for entry in v:
      if entry.startswith(REGEX_PREFIX):
        try:
          re.compile(entry[len(REGEX_PREFIX) :])
        except re.error as e:
          raise ValueError(f'Invalid ignore pattern {entry!r}: {e}')
    return v

  def is_route_ignored(self, path: str) -> bool:
    return matches_any(path, self.ignored_routes)

  def is_request_ignored(self, method: str, path: str) -> bool:
    return matches_any(f'{method.upper()} {path}', self.ignored_requests)

  def is_query_ignored(self, sql: str) -> bool:
    return matches_any(sql, self.ignored_queries)

  @classmethod
  def from_env(cls) -> 'PulseConfig':
    """Build configuration from environment variables.

    Raises:
        ValueError: If a variable is malformed
    """
    values = {'database_url': os.getenv('DATABASE_URL', '')}

    for name in ('route', 'request', 'query'):
      raw = os.getenv(f'PULSE_{name.upper()}_THRESHOLDS')
      if raw:
        values[f'{name}_thresholds'] = _parse_thresholds(raw)

      ignored = os.getenv(f'PULSE_IGNORED_{name.upper()}S')
      if ignored:
        values[f'ignored_{name}s'] = _split_list(ignored)

    max_length = os.getenv('PULSE_MAX_NORMALIZED_SQL_LENGTH')
    if max_length:
      values['max_normalized_sql_length'] = int(max_length)

    step_delay = os.getenv('PULSE_BACKFILL_STEP_DELAY')
    if step_delay:
      values['backfill_step_delay_seconds'] = float(step_delay)

    return cls(**values)


def matches_any(value: Optional[str], patterns: Iterable[str]) -> bool:
  """Check a value against exact-match and 're:' regular expression entries."""
  if not value:
    return False
  for pattern in patterns:
    if pattern.startswith(REGEX_PREFIX):
      if re.search(pattern[len(REGEX_PREFIX) :], value):
        return True
    elif value == pattern:
      return True
  return False


def _parse_thresholds(raw: str) -> Thresholds:
  parts = _split_list(raw)
  if len(parts) != 3:
    raise ValueError(f"Expected 'slow,very_slow,critical', got {raw!r}")
  slow, very_slow, critical = (float(p) for p in parts)
  return Thresholds(slow=slow, very_slow=very_slow, critical=critical)


def _split_list(raw: str) -> Tuple[str, ...]:
  return tuple(item.strip() for item in raw.split(',') if item.strip())
