"""Monitoring intervals registered with the OS so the monitor process can
re-evaluate while the main process is not running."""

from __future__ import annotations

from datetime import datetime, time
from typing import List, Optional

from quizlock.decision import quota_rule_active
from quizlock.models import RestrictionState, TimeWindow
from quizlock.platform import Activity, ActivitySchedule

DAY_START = time(0, 0)
DAY_END = time(23, 59)

WINDOW_ACTIVITIES = (Activity.WINDOW_SCHEDULE, Activity.WINDOW_SCHEDULE_OVERNIGHT)


def _time_of(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


def window_schedules(window: TimeWindow) -> List[ActivitySchedule]:
    """Overnight windows are split at midnight: [start, 23:59] and [00:00, end]."""
    if not window.enabled_weekdays or window.start_minutes == window.end_minutes:
        return []
    start = _time_of(window.start_minutes)
    end = _time_of(window.end_minutes)
    if not window.overnight:
        return [ActivitySchedule(Activity.WINDOW_SCHEDULE, start, end)]
    return [
        ActivitySchedule(Activity.WINDOW_SCHEDULE, start, DAY_END),
        ActivitySchedule(Activity.WINDOW_SCHEDULE_OVERNIGHT, DAY_START, end),
    ]


def quota_schedule(state: RestrictionState) -> Optional[ActivitySchedule]:
    if not quota_rule_active(state.quota, state.entitled):
        return None
    return ActivitySchedule(
        Activity.QUOTA_SCHEDULE,
        DAY_START,
        DAY_END,
        threshold_minutes=state.quota.daily_limit_minutes,
        targets=state.selections.quota_targets,
    )


def unlock_schedule(unlock_until: Optional[datetime], now: datetime) -> Optional[ActivitySchedule]:
    if unlock_until is None or unlock_until <= now:
        return None
    return ActivitySchedule(Activity.UNLOCK_WINDOW, now, unlock_until, repeats=False)
