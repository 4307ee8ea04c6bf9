#!/usr/bin/env python3
"""Print the restriction state mirrored in the shared store.

Usage:
    python scripts/show_state.py
"""
from __future__ import annotations

import asyncio

from quizlock.bridge import SharedStateBridge
from quizlock.config import now_local
from quizlock.db import init_db
from quizlock.decision import decide
from quizlock.models import QuestionCount, Weekday
from quizlock.scheduler import next_boundary
from quizlock.validators import format_minutes


async def main() -> None:
    await init_db()
    state = await SharedStateBridge().fetch()
    if state is None:
        print("No restriction configured.")
        return

    now = now_local()
    w = state.window
    days = ", ".join(d.name.title()[:3] for d in Weekday if d in w.enabled_weekdays) or "none"
    trigger = (
        f"{state.unlock_trigger.required} correct answers"
        if isinstance(state.unlock_trigger, QuestionCount)
        else "first correct answer"
    )
    print(f"Window: {format_minutes(w.start_minutes)}-{format_minutes(w.end_minutes)} ({days})")
    print(f"Daily limit: {state.quota.daily_limit_minutes or 'none'} min, reached: {state.quota_reached}")
    print(f"Unlock: {trigger}, {state.unlock_duration_minutes} min, skip: {state.skip_enabled}")
    print(f"Unlocked until: {state.unlock_until.isoformat() if state.unlock_until else '-'}")
    print(f"Entitled: {state.entitled}")
    decision = decide(state, now)
    print(f"Blocking now: {decision.should_block} ({len(decision.targets)} apps)")
    nb = next_boundary(state, now)
    print(f"Next boundary: {nb.isoformat() if nb else '-'}")


if __name__ == "__main__":
    asyncio.run(main())
