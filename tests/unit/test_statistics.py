"""Unit tests for percentile and dispersion helpers."""

import pytest

from perfpulse.lib.statistics import mean, nearest_rank_percentile, percentile, stddev


class TestPercentile:
  def test_median_of_odd_length(self):
    assert percentile([10, 20, 30, 40, 50], 0.5) == 30

  def test_p95_interpolates_between_neighbours(self):
    result = percentile([10, 20, 30, 40, 50], 0.95)
    assert 40 < result < 50
    assert result == pytest.approx(48.0)

  def test_exact_rank_returns_element(self):
    assert percentile([1, 2, 3, 4, 5], 0.25) == 2

  def test_bounds(self):
    values = [3, 7, 11]
    assert percentile(values, 0.0) == 3
    assert percentile(values, 1.0) == 11

  def test_single_value(self):
    assert percentile([42.0], 0.99) == 42.0

  def test_empty_returns_none(self):
    assert percentile([], 0.5) is None


class TestStddev:
  def test_sample_standard_deviation(self):
    assert stddev([2, 4, 4, 4, 5, 5, 7, 9], 5) == pytest.approx(2.138, abs=1e-3)

  def test_undefined_for_single_value(self):
    assert stddev([7.0], 7.0) is None

  def test_undefined_for_empty(self):
    assert stddev([], 0.0) is None

  def test_constant_values(self):
    assert stddev([5, 5, 5], 5) == 0.0


def test_mean():
  assert mean([100, 150, 200]) == 150.0
  assert mean([]) is None


class TestNearestRankPercentile:
  def test_picks_ceiling_rank(self):
    assert nearest_rank_percentile([100, 150, 200], 0.95) == 200.0

  def test_sorts_input(self):
    values = [70, 10, 100, 40, 20, 90, 30, 60, 50, 80]
    assert nearest_rank_percentile(values, 0.95) == 100.0
    assert nearest_rank_percentile(values, 0.5) == 50.0

  def test_empty_returns_zero(self):
    assert nearest_rank_percentile([], 0.95) == 0.0

  def test_returns_float(self):
    assert isinstance(nearest_rank_percentile([3], 0.95), float)
