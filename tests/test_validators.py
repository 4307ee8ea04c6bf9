from __future__ import annotations

import pytest

from quizlock.errors import ConfigurationInvalid
from quizlock.models import TimeWindow
from quizlock.validators import (
    check_daily_limit,
    check_duration,
    check_window,
    format_minutes,
    parse_hhmm,
    validate_hhmm,
    validate_int_in_range,
)


def test_validate_int_in_range():
    assert validate_int_in_range(" 5 ", 1, 10) == (True, None)
    ok, err = validate_int_in_range("11", 1, 10)
    assert not ok and "between 1 and 10" in err
    assert not validate_int_in_range("x", 1, 10)[0]


def test_hhmm():
    assert validate_hhmm("07:30") == (True, None)
    assert not validate_hhmm("7:30")[0]
    assert not validate_hhmm("24:00")[0]
    assert parse_hhmm("22:15") == 22 * 60 + 15
    assert format_minutes(parse_hhmm("06:05")) == "06:05"
    with pytest.raises(ConfigurationInvalid):
        parse_hhmm("12:60")


def test_check_window():
    assert check_window(TimeWindow(1320, 360)).overnight
    with pytest.raises(ConfigurationInvalid):
        check_window(TimeWindow(600, 600))
    with pytest.raises(ConfigurationInvalid):
        check_window(TimeWindow(0, 1440))


def test_limits():
    assert check_daily_limit(None) is None
    assert check_daily_limit(0) == 0
    with pytest.raises(ConfigurationInvalid):
        check_daily_limit(-1)
    assert check_duration(1) == 1
    with pytest.raises(ConfigurationInvalid):
        check_duration(0)
