#!/usr/bin/env python3
"""Deliver one OS monitor callback to the monitor logic.

Usage:
    python scripts/monitor_event.py start window_schedule
    python scripts/monitor_event.py end unlock_window
    python scripts/monitor_event.py threshold quota_schedule
"""
from __future__ import annotations

import argparse
import asyncio

from quizlock.db import init_db
from quizlock.logging_setup import setup_logger
from quizlock.monitor import RestrictionMonitor
from quizlock.platform import QUOTA_THRESHOLD_EVENT, Activity, MemoryShieldStore


async def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("callback", choices=["start", "end", "threshold"], help="Which callback the OS fired")
    parser.add_argument("activity", choices=[a.value for a in Activity], help="Activity name")
    parser.add_argument("--event", default=QUOTA_THRESHOLD_EVENT, help="Threshold event name")
    args = parser.parse_args()

    setup_logger()
    await init_db()
    monitor = RestrictionMonitor(MemoryShieldStore())
    if args.callback == "start":
        decision = await monitor.interval_did_start(args.activity)
    elif args.callback == "end":
        decision = await monitor.interval_did_end(args.activity)
    else:
        decision = await monitor.event_did_reach_threshold(args.event, args.activity)

    if decision is None:
        print("Ignored")
    elif decision.should_block:
        print(f"Blocking {len(decision.targets)} apps: {', '.join(sorted(decision.targets))}")
    else:
        print("Not blocking")


if __name__ == "__main__":
    asyncio.run(main())
