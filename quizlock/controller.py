"""Main-process owner of the restriction state.

There is one controller per process. Every mutation persists the private
record, mirrors it to the shared store and re-syncs the block. Re-syncs
re-arm the boundary wakeup through the scheduler, never by calling
themselves.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, FrozenSet, Iterable, Optional

from quizlock.bridge import SharedStateBridge
from quizlock.config import now_local
from quizlock.decision import apply_decision, decide
from quizlock.models import ALL_WEEKDAYS, Decision, RestrictionState, TimeWindow, Weekday, targets
from quizlock.platform import (
    Activity,
    ActivityCenter,
    MemoryActivityCenter,
    MemoryShieldStore,
    ShieldStore,
)
from quizlock.quiz import PreparedQuestion, QuestionPack, default_pack, is_answer_correct
from quizlock.scheduler import UNLOCK_EXPIRY, BoundaryScheduler
from quizlock.schedules import WINDOW_ACTIVITIES, quota_schedule, unlock_schedule, window_schedules
from quizlock.storage import AppStorage
from quizlock.unlock import QuizStartResult, UnlockSession, Unlocked, normalize_trigger
from quizlock.validators import check_daily_limit, check_duration, check_window


logger = logging.getLogger(__name__)


class RestrictionController:
    def __init__(
        self,
        shield: Optional[ShieldStore] = None,
        activity_center: Optional[ActivityCenter] = None,
        bridge: Optional[SharedStateBridge] = None,
        storage: Optional[AppStorage] = None,
        scheduler: Optional[BoundaryScheduler] = None,
        clock: Callable[[], datetime] = now_local,
    ) -> None:
        self.shield = shield if shield is not None else MemoryShieldStore()
        self.activity_center = activity_center if activity_center is not None else MemoryActivityCenter()
        self.bridge = bridge or SharedStateBridge()
        self.storage = storage or AppStorage()
        self.clock = clock
        self.scheduler = scheduler or BoundaryScheduler(clock=clock)

        self.state = RestrictionState()
        self.pack: QuestionPack = default_pack()
        self.session = UnlockSession()
        self.current_question: Optional[PreparedQuestion] = None
        self.last_answer_correct: Optional[bool] = None
        self.is_blocking_now = False

    # Lifecycle

    async def load(self) -> None:
        self.state, self.pack = await self.storage.load()
        reached = await self.bridge.fetch_quota_reached()
        if reached is not None:
            self.state.quota_reached = reached
        if self.state.unlocked_at(self.clock()):
            self.session.phase = Unlocked(until=self.state.unlock_until)  # type: ignore[arg-type]

    async def start(self) -> None:
        """Register OS schedules, sync once and start the heartbeat."""
        self._setup_window_schedule()
        await self._setup_quota_schedule()
        self._setup_unlock_wait()
        await self.persist_all()
        await self.sync_blocking()
        self.scheduler.start_heartbeat(self._on_heartbeat)

    def stop(self) -> None:
        self.scheduler.stop()

    async def persist_all(self) -> None:
        await self.storage.save(self.state, self.pack)
        await self.bridge.publish(self.state)

    # Blocking

    async def sync_blocking(self, now: Optional[datetime] = None, reason: str = "sync") -> Decision:
        now = now or self.clock()

        # the monitor process may have flipped the flag since the last sync;
        # an unreadable flag counts as not reached
        reached = await self.bridge.fetch_quota_reached()
        self.state.quota_reached = bool(reached)

        if self.state.unlock_until is not None and now >= self.state.unlock_until:
            logger.info("Unlock expired at %s", self.state.unlock_until.isoformat())
            self.state.unlock_until = None
            self.session.expire(now)
            self.scheduler.cancel(UNLOCK_EXPIRY)
            self.activity_center.stop_monitoring([Activity.UNLOCK_WINDOW])
            await self.persist_all()

        decision = decide(self.state, now)
        apply_decision(self.shield, decision, reason)
        if decision.should_block != self.is_blocking_now:
            logger.info(
                "Blocking %s (%s)",
                f"{len(decision.targets)} apps" if decision.should_block else "off",
                reason,
            )
        # recorded even if the platform refused; the next tick retries
        self.is_blocking_now = decision.should_block

        self.scheduler.reschedule(self.state, self._on_boundary)
        return decision

    async def _on_boundary(self) -> None:
        await self.sync_blocking(reason="boundary")

    async def _on_heartbeat(self) -> None:
        await self.sync_blocking(reason="heartbeat")

    async def _on_unlock_expired(self) -> None:
        await self.sync_blocking(reason="unlock expired")

    # Configuration

    async def update_window(self, start: int, end: int, weekdays: Iterable[Weekday]) -> None:
        """Raises ConfigurationInvalid (state unchanged) when start == end."""
        # only entitled users may restrict the window to some weekdays
        days = frozenset(weekdays) if self.state.entitled else ALL_WEEKDAYS
        window = check_window(TimeWindow(start_minutes=start, end_minutes=end, enabled_weekdays=days))
        self.state.window = window
        await self.persist_all()
        self._setup_window_schedule()
        await self.sync_blocking(reason="window updated")

    async def update_weekdays(self, weekdays: Iterable[Weekday]) -> None:
        window = self.state.window
        await self.update_window(window.start_minutes, window.end_minutes, weekdays)

    async def update_quota(self, daily_limit_minutes: Optional[int]) -> None:
        check_daily_limit(daily_limit_minutes)
        self.state.quota = replace(self.state.quota, daily_limit_minutes=daily_limit_minutes)
        await self.persist_all()
        await self._setup_quota_schedule()
        await self.sync_blocking(reason="quota updated")

    async def update_unlock_condition(
        self,
        duration_minutes: int,
        required_questions: int,
        skip_enabled: Optional[bool] = None,
    ) -> None:
        check_duration(duration_minutes)
        trigger = normalize_trigger(required_questions, self.state.entitled)
        self.state.unlock_duration_minutes = duration_minutes
        self.state.unlock_trigger = trigger
        if skip_enabled is not None:
            self.state.skip_enabled = skip_enabled
        await self.persist_all()
        await self.sync_blocking(reason="unlock condition updated")

    async def update_selections(
        self,
        window: Optional[Iterable[str]] = None,
        quota: Optional[Iterable[str]] = None,
        legacy: Optional[Iterable[str]] = None,
    ) -> None:
        sel = self.state.selections
        self.state.selections = replace(
            sel,
            window_targets=targets(window) if window is not None else sel.window_targets,
            quota_targets=targets(quota) if quota is not None else sel.quota_targets,
            legacy_targets=targets(legacy) if legacy is not None else sel.legacy_targets,
        )
        await self.persist_all()
        await self._setup_quota_schedule()
        await self.sync_blocking(reason="selection updated")

    async def set_entitlement(self, entitled: bool) -> None:
        if entitled == self.state.entitled:
            return
        self.state.entitled = entitled
        await self.persist_all()
        await self._setup_quota_schedule()
        await self.sync_blocking(reason="entitlement changed")

    async def set_quota_reached(self, reached: bool) -> None:
        await self.bridge.set_quota_reached(reached)
        self.state.quota_reached = reached
        await self.sync_blocking(reason="quota flag updated")

    async def set_pack(self, pack: QuestionPack) -> None:
        self.pack = pack
        await self.persist_all()

    # Quiz

    def start_quiz(self) -> QuizStartResult:
        result = self.session.start(
            group_selected=bool(self.pack.selected_group_ids),
            questions_available=bool(self.pack.selected_questions()),
            targets_configured=bool(self._configured_targets()),
            unlock_until=self.state.unlock_until,
            now=self.clock(),
        )
        if result is QuizStartResult.SUCCESS:
            self.last_answer_correct = None
            self.current_question = self.pack.random_question()
        return result

    async def answer_choice(self, choice_index: int) -> Optional[bool]:
        return await self._answer(choice_index, "multiple_choice")

    async def answer_text(self, text: str) -> Optional[bool]:
        return await self._answer(text, "text_input")

    async def skip_question(self) -> bool:
        """Counts as a correct answer when skipping is enabled."""
        if not self.state.skip_enabled or not self.session.in_progress:
            return False
        now = self.clock()
        until = self.session.skip(
            self.state.skip_enabled,
            self.state.unlock_trigger,
            self.state.unlock_duration_minutes,
            now,
        )
        if until is not None:
            await self._open_unlock(until, now)
        else:
            self.last_answer_correct = True
            self.current_question = self.pack.random_question()
        return True

    def next_question(self) -> None:
        self.last_answer_correct = None
        self.current_question = self.pack.random_question()

    async def _answer(self, answer: int | str, kind: str) -> Optional[bool]:
        q = self.current_question
        if q is None or q.type != kind:
            return None
        correct = is_answer_correct(q, answer)
        self.last_answer_correct = correct
        now = self.clock()
        until = self.session.record_answer(
            correct,
            self.state.unlock_trigger,
            self.state.unlock_duration_minutes,
            now,
        )
        if until is not None:
            await self._open_unlock(until, now)
        return correct

    async def _open_unlock(self, until: datetime, now: datetime) -> None:
        self.state.unlock_until = until
        self.current_question = None
        self._setup_unlock_wait(now)
        await self.persist_all()
        await self.sync_blocking(now, reason="unlocked")

    def _configured_targets(self) -> FrozenSet[str]:
        found = set(self.state.selections.window_or_legacy())
        if self.state.entitled:
            found |= self.state.selections.quota_targets
        return frozenset(found)

    # OS schedules

    def _setup_window_schedule(self) -> None:
        self.activity_center.stop_monitoring(WINDOW_ACTIVITIES)
        for schedule in window_schedules(self.state.window):
            self.activity_center.start_monitoring(schedule)

    async def _setup_quota_schedule(self) -> None:
        self.activity_center.stop_monitoring([Activity.QUOTA_SCHEDULE])
        schedule = quota_schedule(self.state)
        if schedule is not None:
            self.activity_center.start_monitoring(schedule)
            return
        # an inactive rule leaves no usage to track
        await self.bridge.set_quota_reached(False)
        self.state.quota_reached = False

    def _setup_unlock_wait(self, now: Optional[datetime] = None) -> None:
        """One-shot re-lock at the unlock expiry, locally and for the monitor."""
        now = now or self.clock()
        self.scheduler.cancel(UNLOCK_EXPIRY)
        self.activity_center.stop_monitoring([Activity.UNLOCK_WINDOW])
        schedule = unlock_schedule(self.state.unlock_until, now)
        if schedule is None:
            return
        self.activity_center.start_monitoring(schedule)
        self.scheduler.schedule_wakeup(UNLOCK_EXPIRY, self.state.unlock_until, self._on_unlock_expired)  # type: ignore[arg-type]
