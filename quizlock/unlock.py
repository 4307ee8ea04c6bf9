"""Unlock flow: how many correct answers (or skips) open a temporary unlock.

Phases: Idle -> InProgress(n) -> Unlocked(until) -> Idle. Leaving Unlocked
happens when the boundary scheduler re-syncs at `until`, never by polling.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional, Union

from quizlock.config import ENTITLED_MAX_REQUIRED_QUESTIONS, FREE_MAX_REQUIRED_QUESTIONS
from quizlock.errors import ConfigurationInvalid
from quizlock.models import Immediate, QuestionCount, UnlockTrigger


logger = logging.getLogger(__name__)


class QuizStartResult(str, Enum):
    SUCCESS = "success"
    NO_GROUP_SELECTED = "no_group_selected"
    NO_QUESTIONS = "no_questions"
    NO_APPS_SELECTED = "no_apps_selected"
    UNLOCKED = "unlocked"


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class InProgress:
    correct_count: int = 0


@dataclass(frozen=True)
class Unlocked:
    until: datetime


Phase = Union[Idle, InProgress, Unlocked]


def required_cap(entitled: bool) -> int:
    return ENTITLED_MAX_REQUIRED_QUESTIONS if entitled else FREE_MAX_REQUIRED_QUESTIONS


def normalize_trigger(required_questions: int, entitled: bool) -> UnlockTrigger:
    """1 means Immediate; values above the tier cap are clamped."""
    if required_questions < 1:
        raise ConfigurationInvalid(f"required questions must be >= 1, got {required_questions}")
    if required_questions == 1:
        return Immediate()
    return QuestionCount(required=min(required_questions, required_cap(entitled)))


def required_count(trigger: UnlockTrigger) -> int:
    if isinstance(trigger, QuestionCount):
        return trigger.required
    return 1


def encode_unlock_trigger(trigger: UnlockTrigger) -> dict[str, Any]:
    if isinstance(trigger, QuestionCount):
        return {"type": "questionCount", "required": trigger.required}
    return {"type": "immediate"}


def decode_unlock_trigger(data: Any) -> UnlockTrigger:
    """Decode a stored trigger, migrating legacy encodings.

    Accepts the current {"type": "immediate"|"questionCount"} form and the
    older "timeBased"/"questionBased" tags, either as a dict or as a bare tag
    string. Unknown tags fall back to Immediate.
    """
    if isinstance(data, str):
        data = {"type": data}
    if not isinstance(data, dict):
        raise ValueError(f"unlock trigger must be an object, got {type(data).__name__}")

    kind = data.get("type")
    if kind in ("immediate", "timeBased"):
        return Immediate()
    if kind == "questionCount":
        required = int(data["required"])
    elif kind == "questionBased":
        required = int(data.get("required") or 1)
    else:
        logger.warning("Unknown unlock trigger %r, using immediate", kind)
        return Immediate()
    if required <= 1:
        return Immediate()
    return QuestionCount(required=required)


class UnlockSession:
    """Progress toward an unlock for the current quiz."""

    def __init__(self) -> None:
        self.phase: Phase = Idle()

    @property
    def in_progress(self) -> bool:
        return isinstance(self.phase, InProgress)

    @property
    def correct_count(self) -> int:
        if isinstance(self.phase, InProgress):
            return self.phase.correct_count
        return 0

    def start(
        self,
        *,
        group_selected: bool,
        questions_available: bool,
        targets_configured: bool,
        unlock_until: Optional[datetime],
        now: datetime,
    ) -> QuizStartResult:
        if not group_selected:
            return QuizStartResult.NO_GROUP_SELECTED
        if not questions_available:
            return QuizStartResult.NO_QUESTIONS
        if not targets_configured:
            return QuizStartResult.NO_APPS_SELECTED
        if unlock_until is not None and now < unlock_until:
            self.phase = Unlocked(until=unlock_until)
            return QuizStartResult.UNLOCKED
        self.phase = InProgress(0)
        return QuizStartResult.SUCCESS

    def record_answer(
        self, correct: bool, trigger: UnlockTrigger, duration_minutes: int, now: datetime
    ) -> Optional[datetime]:
        """Advance on a correct answer. Returns the unlock expiry once satisfied."""
        if not correct:
            return None
        return self._advance(trigger, duration_minutes, now)

    def skip(
        self, skip_enabled: bool, trigger: UnlockTrigger, duration_minutes: int, now: datetime
    ) -> Optional[datetime]:
        if not skip_enabled:
            return None
        return self._advance(trigger, duration_minutes, now)

    def expire(self, now: datetime) -> bool:
        """Drop back to Idle if the unlock has run out."""
        if isinstance(self.phase, Unlocked) and now >= self.phase.until:
            self.phase = Idle()
            return True
        return False

    def reset(self) -> None:
        self.phase = Idle()

    def _advance(self, trigger: UnlockTrigger, duration_minutes: int, now: datetime) -> Optional[datetime]:
        if not isinstance(self.phase, InProgress):
            return None
        if duration_minutes < 1:
            raise ConfigurationInvalid(f"unlock duration must be >= 1, got {duration_minutes}")

        count = self.phase.correct_count + 1
        if count >= required_count(trigger):
            until = now + timedelta(minutes=duration_minutes)
            self.phase = Unlocked(until=until)
            logger.info("Unlocked until %s after %d answer(s)", until.isoformat(), count)
            return until
        self.phase = InProgress(count)
        return None
