#!/usr/bin/env python3
"""Change the restriction configuration from the command line.

Usage:
    python scripts/configure.py window 22:00 06:00 --days mon,tue,wed
    python scripts/configure.py quota 60
    python scripts/configure.py unlock 15 3 --skip
    python scripts/configure.py apps --window com.example.game --quota com.example.video
    python scripts/configure.py entitlement on
"""
from __future__ import annotations

import argparse
import asyncio
import sys

from quizlock.config import ENTITLED_MAX_REQUIRED_QUESTIONS, MINUTES_PER_DAY
from quizlock.controller import RestrictionController
from quizlock.db import init_db
from quizlock.errors import ConfigurationInvalid
from quizlock.logging_setup import setup_logger
from quizlock.models import ALL_WEEKDAYS, Weekday
from quizlock.validators import parse_hhmm, validate_int_in_range

DAY_NAMES = {d.name[:3].lower(): d for d in Weekday}


def parse_days(text: str | None) -> frozenset[Weekday]:
    if not text:
        return ALL_WEEKDAYS
    try:
        return frozenset(DAY_NAMES[t.strip().lower()[:3]] for t in text.split(",") if t.strip())
    except KeyError as e:
        raise ConfigurationInvalid(f"Unknown weekday {e.args[0]!r}") from e


def parse_int(text: str, lo: int, hi: int) -> int:
    ok, err = validate_int_in_range(text, lo, hi)
    if not ok:
        raise ConfigurationInvalid(err)
    return int(text.strip())


def _csv(text: str | None) -> list[str] | None:
    if text is None:
        return None
    return [t.strip() for t in text.split(",") if t.strip()]


async def main() -> int:
    parser = argparse.ArgumentParser()
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("window", help="Blocking time window")
    p.add_argument("start", help="HH:MM")
    p.add_argument("end", help="HH:MM")
    p.add_argument("--days", help="Comma separated weekdays (entitled only)")

    p = sub.add_parser("quota", help="Daily usage limit in minutes, 0 to disable")
    p.add_argument("minutes")

    p = sub.add_parser("unlock", help="Unlock condition")
    p.add_argument("duration", help="Unlock duration in minutes")
    p.add_argument("required", help="Correct answers needed")
    p.add_argument("--skip", action=argparse.BooleanOptionalAction, default=None)

    p = sub.add_parser("apps", help="Blocked application handles")
    p.add_argument("--window", help="Comma separated handles for the time window")
    p.add_argument("--quota", help="Comma separated handles for the daily limit")
    p.add_argument("--legacy", help="Comma separated fallback handles")

    p = sub.add_parser("entitlement", help="Paid tier flag")
    p.add_argument("value", choices=["on", "off"])

    args = parser.parse_args()

    setup_logger()
    await init_db()
    controller = RestrictionController()
    await controller.load()
    try:
        if args.command == "window":
            await controller.update_window(parse_hhmm(args.start), parse_hhmm(args.end), parse_days(args.days))
        elif args.command == "quota":
            await controller.update_quota(parse_int(args.minutes, 0, MINUTES_PER_DAY) or None)
        elif args.command == "unlock":
            await controller.update_unlock_condition(
                parse_int(args.duration, 1, MINUTES_PER_DAY),
                parse_int(args.required, 1, ENTITLED_MAX_REQUIRED_QUESTIONS),
                args.skip,
            )
        elif args.command == "apps":
            await controller.update_selections(_csv(args.window), _csv(args.quota), _csv(args.legacy))
        else:
            await controller.set_entitlement(args.value == "on")
    except ConfigurationInvalid as e:
        print(f"Rejected: {e}", file=sys.stderr)
        return 1
    finally:
        controller.stop()
    print("Saved.")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
