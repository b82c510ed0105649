"""Prometheus-compatible metrics for aggregation and rollup jobs."""

from prometheus_client import Counter, Histogram

# Summary aggregation metrics
summary_runs_total = Counter(
  'pulse_summary_runs_total',
  'Total summary aggregation runs',
  ['period_type', 'status'],
)

summary_run_duration_seconds = Histogram(
  'pulse_summary_run_duration_seconds',
  'Summary aggregation run duration in seconds',
  ['period_type'],
  buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 120.0],
)

summaries_written_total = Counter(
  'pulse_summaries_written_total',
  'Summary rows created or overwritten',
  ['group_kind'],
)

# Daily stats rollup metrics
daily_stat_hours_recorded_total = Counter(
  'pulse_daily_stat_hours_recorded_total',
  'Hourly slices merged into daily stats',
  ['entity_type'],
)

daily_stat_days_finalized_total = Counter(
  'pulse_daily_stat_days_finalized_total',
  'Daily stats finalized from raw samples',
  ['entity_type'],
)

# Backfill metrics
backfill_failures_total = Counter(
  'pulse_backfill_failures_total',
  'Backfill steps that failed and were skipped',
  ['job'],
)

# Ingestion metrics
query_fingerprints_total = Counter(
  'pulse_query_fingerprints_total',
  'Query fingerprint lookups',
  ['outcome'],
)


def record_summary_run(period_type: str, status: str, duration_seconds: float):
  """Record a summary aggregation run.

  Args:
      period_type: Period type ('hour', 'day', 'week', 'month')
      status: Run status ('success' or 'failure')
      duration_seconds: Run duration in seconds
  """
  summary_runs_total.labels(period_type=period_type, status=status).inc()
  summary_run_duration_seconds.labels(period_type=period_type).observe(duration_seconds)


def record_summary_written(group_kind: str):
  """Record one summary row upserted for a group kind ('overall', 'route', 'query')."""
  summaries_written_total.labels(group_kind=group_kind).inc()


def record_hour_recorded(entity_type: str):
  """Record one hourly slice merged into a daily stat."""
  daily_stat_hours_recorded_total.labels(entity_type=entity_type).inc()


def record_day_finalized(entity_type: str):
  """Record one daily stat finalized."""
  daily_stat_days_finalized_total.labels(entity_type=entity_type).inc()


def record_backfill_failure(job: str):
  """Record a failed backfill step.

  Args:
      job: Backfill job name ('summaries' or 'daily_stats')
  """
  backfill_failures_total.labels(job=job).inc()


def record_query_fingerprint(outcome: str):
  """Record a query fingerprint lookup.

  Args:
      outcome: 'created', 'existing' or 'ignored'
  """
  query_fingerprints_total.labels(outcome=outcome).inc()
