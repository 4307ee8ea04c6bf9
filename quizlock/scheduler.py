from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Dict, List, Optional

from quizlock.config import (
    BOUNDARY_EPSILON_SECONDS,
    HEARTBEAT_INTERVAL_SECONDS,
    QUOTA_RESET_TIME,
    now_local,
)
from quizlock.decision import quota_rule_active
from quizlock.models import RestrictionState, Weekday
from quizlock.windows import at_minute, start_of_next_day


logger = logging.getLogger(__name__)

Callback = Callable[[], Awaitable[None]]

BOUNDARY = "boundary"
HEARTBEAT = "heartbeat"
UNLOCK_EXPIRY = "unlock_expiry"


def quota_reset_at(now: datetime) -> datetime:
    reset = at_minute(now, QUOTA_RESET_TIME.hour * 60 + QUOTA_RESET_TIME.minute)
    if reset <= now:
        reset += timedelta(days=1)
    return reset


def boundary_candidates(state: RestrictionState, now: datetime) -> List[datetime]:
    """Every instant in the next day or so at which the decision may flip."""
    found: List[datetime] = []

    if state.unlock_until is not None and state.unlock_until > now:
        found.append(state.unlock_until)

    window = state.window
    if window.enabled_weekdays and window.start_minutes != window.end_minutes:
        for offset in (0, 1):
            day = now + timedelta(days=offset)
            if Weekday.of(day) in window.enabled_weekdays:
                found.append(at_minute(day, window.start_minutes))
                found.append(at_minute(day, window.end_minutes))
        if window.overnight:
            # weekday applicability of the wrapped tail changes at midnight
            found.append(start_of_next_day(now))

    if quota_rule_active(state.quota, state.entitled):
        found.append(quota_reset_at(now))

    return found


def next_boundary(
    state: RestrictionState,
    now: datetime,
    epsilon: float = BOUNDARY_EPSILON_SECONDS,
) -> Optional[datetime]:
    future = [b for b in boundary_candidates(state, now) if (b - now).total_seconds() > epsilon]
    return min(future, default=None)


class BoundaryScheduler:
    """Keeps at most one pending wakeup per kind.

    A wakeup is detached from the registry before its callback runs, so the
    callback may re-arm the same kind (and cancelling that kind later never
    interrupts an apply that is already running).
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = now_local,
        heartbeat_interval: float = HEARTBEAT_INTERVAL_SECONDS,
        epsilon: float = BOUNDARY_EPSILON_SECONDS,
    ) -> None:
        self._clock = clock
        self.heartbeat_interval = heartbeat_interval
        self.epsilon = epsilon
        self._tasks: Dict[str, asyncio.Task[None]] = {}
        self._stopped = False

    def pending(self, kind: str) -> bool:
        task = self._tasks.get(kind)
        return task is not None and not task.done()

    def schedule_wakeup(self, kind: str, at: datetime, on_fire: Callback) -> Optional[asyncio.Task[None]]:
        self.cancel(kind)
        if self._stopped:
            return None
        task = asyncio.create_task(self._wait_and_fire(kind, at, on_fire))
        self._tasks[kind] = task
        logger.debug("Armed %s wakeup at %s", kind, at.isoformat())
        return task

    def cancel(self, kind: str) -> None:
        task = self._tasks.pop(kind, None)
        if task is not None and not task.done():
            task.cancel()

    def reschedule(self, state: RestrictionState, on_fire: Callback) -> Optional[datetime]:
        """Arm the boundary wakeup for the nearest future change, if any."""
        at = next_boundary(state, self._clock(), self.epsilon)
        if at is None:
            self.cancel(BOUNDARY)
            return None
        self.schedule_wakeup(BOUNDARY, at, on_fire)
        return at

    def start_heartbeat(self, on_tick: Callback) -> None:
        self._stopped = False

        async def tick() -> None:
            try:
                await on_tick()
            finally:
                self._arm_heartbeat(tick)

        self._arm_heartbeat(tick)

    def stop(self) -> None:
        self._stopped = True
        for kind in list(self._tasks):
            self.cancel(kind)

    def _arm_heartbeat(self, tick: Callback) -> None:
        at = self._clock() + timedelta(seconds=self.heartbeat_interval)
        self.schedule_wakeup(HEARTBEAT, at, tick)

    async def _wait_and_fire(self, kind: str, at: datetime, on_fire: Callback) -> None:
        delay = max((at - self._clock()).total_seconds(), 0.0)
        await asyncio.sleep(delay)
        if self._tasks.get(kind) is asyncio.current_task():
            del self._tasks[kind]
        logger.debug("Firing %s wakeup", kind)
        try:
            await on_fire()
        except Exception:
            logger.exception("%s wakeup callback failed", kind)
