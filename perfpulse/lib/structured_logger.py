"""Structured Logger with JSON Formatting.

Provides JSON log output for job runs so schedulers and log shippers can
filter by run ID, period and entity.
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Optional

from perfpulse.lib.run_context import get_run_id

# Optional context attributes copied from LogRecord extras
CONTEXT_FIELDS = (
  'period_type',
  'period_start',
  'entity_type',
  'entity_id',
  'group_kind',
  'duration_ms',
)

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class JSONFormatter(logging.Formatter):
  """JSON formatter for structured logging."""

  def format(self, record: logging.LogRecord) -> str:
    """Format log record as JSON.

    Args:
        record: Log record to format

    Returns:
        JSON-formatted log string
    """
    log_data = {
      'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
      'level': record.levelname,
      'logger': record.name,
      'message': record.getMessage(),
      'module': record.module,
      'function': record.funcName,
      'run_id': get_run_id(),
    }

    for field in CONTEXT_FIELDS:
      if hasattr(record, field):
        value = getattr(record, field)
        log_data[field] = value.isoformat() if isinstance(value, datetime) else value

    # Add exception info if present
    if record.exc_info:
      log_data['exception'] = {
        'type': record.exc_info[0].__name__ if record.exc_info[0] else None,
        'message': str(record.exc_info[1]) if record.exc_info[1] else None,
      }

    return json.dumps(log_data, default=str)


def configure_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
  """Configure root logging for job scripts.

  Args:
      level: Log level name (defaults to LOG_LEVEL, then INFO)
      log_format: 'json' for JSONFormatter, anything else for plain text
          (defaults to LOG_FORMAT)
  """
  level_name = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()
  log_level = getattr(logging, level_name, logging.INFO)
  fmt = (log_format or os.getenv('LOG_FORMAT', 'text')).lower()

  if fmt == 'json':
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    logging.basicConfig(level=log_level, handlers=[handler], force=True)
  else:
    logging.basicConfig(level=log_level, format=DEFAULT_FORMAT)
