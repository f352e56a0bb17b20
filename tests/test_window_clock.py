"""
Tests for the daily stat window boundary.
"""

from datetime import date, datetime, timedelta, timezone

import pytest
import pytz

from rankwatch.data_models.stats import StatWindow
from rankwatch.utils.window_clock import WindowClock


@pytest.fixture
def clock():
    return WindowClock(reset_hour_utc=7)


def test_before_reset_hour_is_previous_day(clock):
    assert clock.stat_date(datetime(2026, 3, 14, 6, 59, 59, tzinfo=timezone.utc)) == date(2026, 3, 13)


def test_at_and_after_reset_hour_is_current_day(clock):
    assert clock.stat_date(datetime(2026, 3, 14, 7, 0, tzinfo=timezone.utc)) == date(2026, 3, 14)
    assert clock.stat_date(datetime(2026, 3, 14, 23, 59, tzinfo=timezone.utc)) == date(2026, 3, 14)


def test_year_boundary(clock):
    assert clock.stat_date(datetime(2026, 1, 1, 3, 0, tzinfo=timezone.utc)) == date(2025, 12, 31)


def test_naive_datetime_is_utc(clock):
    assert clock.stat_date(datetime(2026, 3, 14, 6, 0)) == date(2026, 3, 13)


def test_aware_datetime_is_converted(clock):
    pacific = pytz.timezone('America/Los_Angeles')
    # 01:00 PDT is 08:00 UTC
    moment = pacific.localize(datetime(2026, 6, 1, 1, 0))
    assert clock.stat_date(moment) == date(2026, 6, 1)


def test_window_bounds(clock):
    start, end = clock.window_bounds(date(2026, 3, 14))
    assert start == datetime(2026, 3, 14, 7, 0, tzinfo=pytz.utc)
    assert end - start == timedelta(days=1)
    assert clock.stat_date(start) == date(2026, 3, 14)
    assert clock.stat_date(end - timedelta(seconds=1)) == date(2026, 3, 14)


def test_custom_reset_hour():
    clock = WindowClock(reset_hour_utc=0)
    assert clock.stat_date(datetime(2026, 3, 14, 0, 30, tzinfo=timezone.utc)) == date(2026, 3, 14)


def test_format_and_parse_round_trip():
    assert WindowClock.format_date(date(2026, 3, 4)) == '2026-03-04'
    assert WindowClock.parse_date('2026-03-04') == date(2026, 3, 4)
    with pytest.raises(ValueError):
        WindowClock.parse_date('03/04/2026')


def test_stat_window_keys():
    assert StatWindow.all_time().key == 'all_time'
    assert StatWindow.all_time().is_all_time
    assert StatWindow.day(date(2026, 3, 4)).key == '2026-03-04'
