from __future__ import annotations

from datetime import datetime, timezone

from quizlock.models import ALL_WEEKDAYS, TimeWindow, Weekday
from quizlock.windows import at_minute, is_window_active, is_within_window, minute_of_day


def test_same_day_window_every_minute():
    w = TimeWindow(600, 720, ALL_WEEKDAYS)
    for minute in range(1440):
        assert is_within_window(w, minute, Weekday.MONDAY) == (600 <= minute < 720)


def test_overnight_window_every_minute():
    w = TimeWindow(1320, 360, ALL_WEEKDAYS)
    for minute in range(1440):
        assert is_within_window(w, minute, Weekday.FRIDAY) == (minute >= 1320 or minute < 360)


def test_disabled_weekday_never_inside():
    w = TimeWindow(0, 1439, frozenset({Weekday.SATURDAY, Weekday.SUNDAY}))
    for minute in range(1440):
        assert not is_within_window(w, minute, Weekday.WEDNESDAY)
    assert is_within_window(w, 100, Weekday.SUNDAY)


def test_zero_length_window_is_never_inside():
    w = TimeWindow(600, 600, ALL_WEEKDAYS)
    assert not any(is_within_window(w, m, Weekday.MONDAY) for m in range(1440))


def test_evening_window_scenario():
    # 19:00-22:00, evaluated at 20:00 on a Monday
    w = TimeWindow(1140, 1320, ALL_WEEKDAYS)
    now = datetime(2024, 1, 1, 20, 0, tzinfo=timezone.utc)
    assert minute_of_day(now) == 1200
    assert is_window_active(w, now)


def test_overnight_tail_after_midnight():
    w = TimeWindow(1320, 360, ALL_WEEKDAYS)
    now = datetime(2024, 1, 2, 0, 30, tzinfo=timezone.utc)
    assert is_window_active(w, now)


def test_overnight_tail_uses_current_weekday():
    # enabled Monday only; the Tuesday-morning tail does not apply
    w = TimeWindow(1320, 360, frozenset({Weekday.MONDAY}))
    assert is_window_active(w, datetime(2024, 1, 1, 23, 0, tzinfo=timezone.utc))
    assert not is_window_active(w, datetime(2024, 1, 2, 1, 0, tzinfo=timezone.utc))


def test_at_minute_zeroes_seconds():
    dt = datetime(2024, 1, 1, 8, 15, 42, 123, tzinfo=timezone.utc)
    assert at_minute(dt, 1320) == datetime(2024, 1, 1, 22, 0, tzinfo=timezone.utc)
