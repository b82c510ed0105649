"""Percentile and dispersion helpers shared by the summary and rollup paths."""

import math
from typing import Optional, Sequence


def percentile(sorted_values: Sequence[float], p: float) -> Optional[float]:
  """Linear-interpolated percentile of an ascending sequence.

  Args:
      sorted_values: Values sorted ascending
      p: Percentile as a fraction (0.0 to 1.0)

  Returns:
      Percentile value, or None for an empty sequence

  Example:
      percentile([10, 20, 30, 40, 50], 0.5)  # 30
      percentile([10, 20, 30, 40, 50], 0.95)  # ~48.0, between 40 and 50
  """
  n = len(sorted_values)
  if n == 0:
    return None

  rank = p * (n - 1)
  k = math.floor(rank)
  f = rank - k

  if f == 0 or k + 1 >= n:
    return sorted_values[k]

  return sorted_values[k] + (sorted_values[k + 1] - sorted_values[k]) * f


def stddev(values: Sequence[float], mean: float) -> Optional[float]:
  """Sample standard deviation (Bessel's correction) around a precomputed mean.

  Returns:
      Standard deviation, or None when fewer than two values are given
  """
  n = len(values)
  if n <= 1:
    return None

  sum_of_squares = sum((v - mean) ** 2 for v in values)
  return math.sqrt(sum_of_squares / (n - 1))


def mean(values: Sequence[float]) -> Optional[float]:
  if not values:
    return None
  return sum(values) / len(values)


def nearest_rank_percentile(values: Sequence[float], p: float) -> float:
  """Nearest-rank percentile used by the hourly/daily rollup path.

  Picks sorted[ceil(n * p) - 1]; returns 0.0 for an empty sequence.
  """
  if not values:
    return 0.0

  ordered = sorted(values)
  index = max(math.ceil(len(ordered) * p) - 1, 0)
  return float(ordered[index])
