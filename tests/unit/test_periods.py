"""Unit tests for period bucket resolution."""

from datetime import date, datetime, timedelta, timezone

import pytest

from perfpulse.lib.periods import (
  PeriodType,
  advance_period,
  coerce_period_type,
  day_window,
  next_period_start,
  period_end,
  period_start,
  period_window,
  to_utc,
  to_utc_date,
)

INSTANT = datetime(2024, 1, 3, 10, 37, 12, 345)  # Wednesday


class TestPeriodStart:
  @pytest.mark.parametrize(
    'period_type,expected',
    [
      ('hour', datetime(2024, 1, 3, 10)),
      ('day', datetime(2024, 1, 3)),
      ('week', datetime(2024, 1, 1)),
      ('month', datetime(2024, 1, 1)),
    ],
  )
  def test_truncates_to_bucket(self, period_type, expected):
    assert period_start(period_type, INSTANT) == expected

  def test_accepts_enum(self):
    assert period_start(PeriodType.HOUR, INSTANT) == datetime(2024, 1, 3, 10)

  def test_week_starts_monday(self):
    sunday = datetime(2024, 1, 7, 23, 59)
    assert period_start('week', sunday) == datetime(2024, 1, 1)
    assert period_start('week', datetime(2024, 1, 8)) == datetime(2024, 1, 8)

  def test_aware_instant_is_converted_to_utc(self):
    plus_two = timezone(timedelta(hours=2))
    aware = datetime(2024, 1, 3, 1, 30, tzinfo=plus_two)
    assert period_start('hour', aware) == datetime(2024, 1, 2, 23)
    assert period_start('day', aware) == datetime(2024, 1, 2)

  def test_date_means_midnight(self):
    assert period_start('day', date(2024, 5, 6)) == datetime(2024, 5, 6)

  def test_unknown_period_type_raises(self):
    with pytest.raises(ValueError, match='Unknown period type'):
      period_start('year', INSTANT)


class TestPeriodEnd:
  @pytest.mark.parametrize(
    'period_type,expected',
    [
      ('hour', datetime(2024, 1, 3, 10, 59, 59, 999999)),
      ('day', datetime(2024, 1, 3, 23, 59, 59, 999999)),
      ('week', datetime(2024, 1, 7, 23, 59, 59, 999999)),
      ('month', datetime(2024, 1, 31, 23, 59, 59, 999999)),
    ],
  )
  def test_inclusive_last_instant(self, period_type, expected):
    assert period_end(period_type, INSTANT) == expected

  def test_february_leap_year(self):
    assert period_end('month', datetime(2024, 2, 10)) == datetime(2024, 2, 29, 23, 59, 59, 999999)

  def test_start_never_after_end(self):
    for ptype in ('hour', 'day', 'week', 'month'):
      assert period_start(ptype, INSTANT) <= period_end(ptype, INSTANT)


class TestNextPeriodStart:
  def test_december_rolls_into_next_year(self):
    assert next_period_start('month', datetime(2023, 12, 15)) == datetime(2024, 1, 1)

  def test_advance_period_walks_buckets(self):
    current = datetime(2024, 1, 31)
    assert advance_period('day', current) == datetime(2024, 2, 1)
    assert advance_period('month', current) == datetime(2024, 2, 1)
    assert advance_period('hour', datetime(2024, 1, 1, 23)) == datetime(2024, 1, 2)

  def test_period_window_is_half_open(self):
    start, end_exclusive = period_window('hour', INSTANT)
    assert start == datetime(2024, 1, 3, 10)
    assert end_exclusive == datetime(2024, 1, 3, 11)

  def test_day_window(self):
    assert day_window(date(2024, 3, 9)) == (datetime(2024, 3, 9), datetime(2024, 3, 10))


def test_coerce_period_type():
  assert coerce_period_type('week') is PeriodType.WEEK
  with pytest.raises(ValueError):
    coerce_period_type('fortnight')


def test_to_utc_naive_passthrough():
  assert to_utc(INSTANT) is INSTANT


def test_to_utc_date():
  aware = datetime(2024, 1, 1, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
  assert to_utc_date(aware) == date(2024, 1, 2)
  assert to_utc_date(date(2024, 1, 1)) == date(2024, 1, 1)
