from __future__ import annotations

from datetime import datetime, timedelta

from quizlock.models import TimeWindow, Weekday


def minute_of_day(dt: datetime) -> int:
    return dt.hour * 60 + dt.minute


def at_minute(dt: datetime, minutes: int) -> datetime:
    """Return dt's calendar day at the given minute-of-day (seconds zeroed)."""
    return dt.replace(hour=minutes // 60, minute=minutes % 60, second=0, microsecond=0)


def start_of_next_day(dt: datetime) -> datetime:
    return at_minute(dt, 0) + timedelta(days=1)


def is_within_window(window: TimeWindow, minute: int, weekday: Weekday) -> bool:
    """Same-day windows cover [start, end); overnight ones cover minute >= start or < end.

    The weekday is the weekday of the instant being evaluated, so the early
    morning tail of an overnight window only applies on enabled days.
    """
    if weekday not in window.enabled_weekdays:
        return False

    start = window.start_minutes
    end = window.end_minutes
    if start < end:
        return start <= minute < end
    if start > end:
        return minute >= start or minute < end
    # zero-length windows are rejected at configuration time
    return False


def is_window_active(window: TimeWindow, now: datetime) -> bool:
    return is_within_window(window, minute_of_day(now), Weekday.of(now))
