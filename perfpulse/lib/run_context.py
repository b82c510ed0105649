"""Run tracking with correlation IDs.

Every job run (summary aggregation, daily rollup, backfill) gets a run ID kept
in a contextvar so that all log lines emitted while it runs can be correlated.
"""

import contextvars
from uuid import uuid4

# Context variable for the current job run ID
run_id: contextvars.ContextVar[str] = contextvars.ContextVar('run_id', default='no-run-id')


def get_run_id() -> str:
  """Retrieve the current job run ID.

  Returns:
      Current run ID or 'no-run-id' if not set
  """
  return run_id.get()


def set_run_id(value: str) -> None:
  """Set the run ID for the current context.

  Args:
      value: Unique run identifier
  """
  run_id.set(value)


def generate_run_id() -> str:
  """Generate a new run ID and set it in context.

  Returns:
      Generated run ID (UUID)

  Usage:
      run = generate_run_id()
      logger.info(f'Starting summary job {run}')
  """
  value = str(uuid4())
  set_run_id(value)
  return value


def reset_run_id() -> None:
  """Reset run ID to default value.

  Useful for testing or cleanup after a job finishes.
  """
  run_id.set('no-run-id')
