"""Unit tests for hour slices and DailyStat helpers."""

from datetime import date, datetime

import pytest
from pydantic import ValidationError

from perfpulse.models.daily_stat import DailyStat
from perfpulse.services.daily_stats_service import HourStats, compute_hour_stats
from perfpulse.services.sample_store import Sample

T = datetime(2024, 1, 1, 5, 10)


class TestComputeHourStats:
  def test_request_samples(self):
    samples = [Sample(100, T, 200), Sample(150, T, 404), Sample(200.5, T, 500)]

    stats = compute_hour_stats(samples)

    assert stats == HourStats(requests=3, avg_duration=150.167, max_duration=200.5, errors=1, p95_duration=200.5)

  def test_operations_never_count_errors(self):
    stats = compute_hour_stats([Sample(3, T), Sample(4, T)])

    assert stats.errors == 0
    assert stats.requests == 2

  def test_empty_returns_none(self):
    assert compute_hour_stats([]) is None

  def test_serializes_with_stable_keys(self):
    stats = compute_hour_stats([Sample(10, T, 200)])

    assert stats.model_dump() == {
      'requests': 1,
      'avg_duration': 10.0,
      'max_duration': 10.0,
      'errors': 0,
      'p95_duration': 10.0,
    }

  def test_rejects_negative_counts(self):
    with pytest.raises(ValidationError):
      HourStats(requests=-1, avg_duration=0, max_duration=0, p95_duration=0)


class TestDailyStatHelpers:
  def _stat(self, hourly_data, total_requests=0):
    return DailyStat(
      date=date(2024, 1, 1),
      entity_type='route',
      entity_id=1,
      total_requests=total_requests,
      hourly_data=hourly_data,
    )

  def test_completed_hours_sorted_numerically(self):
    stat = self._stat({'12': {'requests': 1}, '5': {'requests': 2}, '0': {'requests': 3}})

    assert stat.completed_hours() == [0, 5, 12]
    assert stat.has_hourly_data()

  def test_hourly_breakdown_for(self):
    stat = self._stat({'5': {'requests': 2}})

    assert stat.hourly_breakdown_for(5) == {'requests': 2}
    assert stat.hourly_breakdown_for(6) == {}

  def test_empty_hourly_data(self):
    stat = self._stat({})

    assert not stat.has_hourly_data()
    assert stat.completed_hours() == []

  def test_is_finalized(self):
    assert not self._stat({}).is_finalized
    assert self._stat({}, total_requests=4).is_finalized
