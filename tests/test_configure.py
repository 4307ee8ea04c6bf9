from __future__ import annotations

import pytest

from quizlock.errors import ConfigurationInvalid
from quizlock.models import ALL_WEEKDAYS, Weekday
from scripts.configure import parse_days, parse_int


def test_parse_int_checks_range():
    assert parse_int(" 15 ", 1, 1440) == 15
    with pytest.raises(ConfigurationInvalid, match="between 1 and 100"):
        parse_int("0", 1, 100)
    with pytest.raises(ConfigurationInvalid):
        parse_int("ten", 1, 100)


def test_parse_days():
    assert parse_days(None) == ALL_WEEKDAYS
    assert parse_days("mon, Tuesday") == frozenset({Weekday.MONDAY, Weekday.TUESDAY})
    with pytest.raises(ConfigurationInvalid):
        parse_days("mon,funday")
