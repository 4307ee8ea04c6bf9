"""Validators for configuration input.

The `validate_*` helpers return (ok, error_message) for text input; the
`check_*` helpers raise ConfigurationInvalid at the mutation boundary.
"""

from __future__ import annotations

from typing import Optional, Tuple

from quizlock.config import MINUTES_PER_DAY
from quizlock.errors import ConfigurationInvalid
from quizlock.models import TimeWindow


def validate_int_in_range(text: str, lo: int, hi: int) -> Tuple[bool, str | None]:
    try:
        v = int(text.strip())
    except ValueError:
        return False, f"Invalid value. Expected an integer between {lo} and {hi}."
    if not (lo <= v <= hi):
        return False, f"Invalid value. Expected an integer between {lo} and {hi}."
    return True, None


def validate_hhmm(text: str) -> Tuple[bool, str | None]:
    s = text.strip()
    if len(s) != 5 or s[2] != ":" or not (s[:2].isdigit() and s[3:].isdigit()):
        return False, "Invalid time. Expected HH:MM (24h)."
    hh = int(s[:2])
    mm = int(s[3:])
    if not (0 <= hh <= 23 and 0 <= mm <= 59):
        return False, "Invalid time. Hours 00–23 and minutes 00–59."
    return True, None


def parse_hhmm(text: str) -> int:
    """HH:MM -> minute of day."""
    ok, err = validate_hhmm(text)
    if not ok:
        raise ConfigurationInvalid(err)
    s = text.strip()
    return int(s[:2]) * 60 + int(s[3:])


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def check_minute(value: int, name: str) -> int:
    if not (0 <= value < MINUTES_PER_DAY):
        raise ConfigurationInvalid(f"{name} must be within 0..{MINUTES_PER_DAY - 1}, got {value}")
    return value


def check_window(window: TimeWindow) -> TimeWindow:
    check_minute(window.start_minutes, "start")
    check_minute(window.end_minutes, "end")
    if window.start_minutes == window.end_minutes:
        raise ConfigurationInvalid("window start and end must differ")
    return window


def check_daily_limit(minutes: Optional[int]) -> Optional[int]:
    if minutes is not None and minutes < 0:
        raise ConfigurationInvalid(f"daily limit must not be negative, got {minutes}")
    return minutes


def check_duration(minutes: int) -> int:
    if minutes < 1:
        raise ConfigurationInvalid(f"unlock duration must be >= 1 minute, got {minutes}")
    return minutes
