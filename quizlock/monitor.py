"""Out-of-process monitor.

The OS invokes these callbacks briefly and in no particular order relative to
the main process. Nothing is remembered between calls: each one fetches the
mirrored state, decides and applies.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from quizlock.bridge import SharedStateBridge
from quizlock.config import now_local
from quizlock.decision import apply_decision, decide
from quizlock.models import Decision, NO_BLOCK
from quizlock.platform import QUOTA_THRESHOLD_EVENT, Activity, ShieldStore


logger = logging.getLogger(__name__)


def _activity(name: str | Activity) -> Optional[Activity]:
    try:
        return Activity(name)
    except ValueError:
        return None


class RestrictionMonitor:
    def __init__(
        self,
        shield: ShieldStore,
        bridge: Optional[SharedStateBridge] = None,
        clock: Callable[[], datetime] = now_local,
    ) -> None:
        self.shield = shield
        self.bridge = bridge or SharedStateBridge()
        self.clock = clock

    async def interval_did_start(self, name: str | Activity) -> Optional[Decision]:
        activity = _activity(name)
        logger.info("interval_did_start: %s", name)
        if activity is Activity.QUOTA_SCHEDULE:
            await self.reset_daily_usage()
            return await self.apply_for_current_state("quota interval started")
        if activity in (Activity.WINDOW_SCHEDULE, Activity.WINDOW_SCHEDULE_OVERNIGHT):
            return await self.apply_for_current_state(f"window interval started: {activity.value}")
        if activity is Activity.UNLOCK_WINDOW:
            apply_decision(self.shield, NO_BLOCK, "unlock window started")
            return NO_BLOCK
        logger.warning("Unknown activity: %s", name)
        return None

    async def interval_did_end(self, name: str | Activity) -> Optional[Decision]:
        activity = _activity(name)
        logger.info("interval_did_end: %s", name)
        if activity is Activity.QUOTA_SCHEDULE:
            await self.reset_daily_usage()
            return await self.apply_for_current_state("quota interval ended")
        if activity in (Activity.WINDOW_SCHEDULE, Activity.WINDOW_SCHEDULE_OVERNIGHT):
            return await self.apply_for_current_state(f"window interval ended: {activity.value}")
        if activity is Activity.UNLOCK_WINDOW:
            return await self.apply_for_current_state("unlock window ended, re-locking")
        logger.warning("Unknown activity: %s", name)
        return None

    async def event_did_reach_threshold(self, event: str, name: str | Activity) -> Optional[Decision]:
        logger.info("event_did_reach_threshold: event=%s activity=%s", event, name)
        if _activity(name) is not Activity.QUOTA_SCHEDULE:
            return None
        if event != QUOTA_THRESHOLD_EVENT:
            logger.warning("Unexpected threshold event %s on quota schedule", event)
        await self.bridge.set_quota_reached(True, self.clock())
        return await self.apply_for_current_state("quota threshold reached")

    async def reset_daily_usage(self) -> None:
        await self.bridge.set_quota_reached(False)
        logger.info("Daily usage reset")

    async def apply_for_current_state(self, reason: str) -> Decision:
        state = await self.bridge.fetch()
        if state is None:
            logger.warning("No restriction state in the shared store, removing shield")
            decision = NO_BLOCK
        else:
            decision = decide(state, self.clock())
        apply_decision(self.shield, decision, reason)
        logger.info("%s: %s", reason, f"blocking {len(decision.targets)} apps" if decision.should_block else "not blocking")
        return decision
