from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Any, FrozenSet, Iterable, Optional, Union

from quizlock.config import DEFAULT_UNLOCK_DURATION_MINUTES


class Weekday(IntEnum):
    # Same numbering as date.weekday()
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @classmethod
    def of(cls, dt: datetime) -> "Weekday":
        return cls(dt.weekday())


ALL_WEEKDAYS: FrozenSet[Weekday] = frozenset(Weekday)


@dataclass(frozen=True)
class TimeWindow:
    start_minutes: int = 0  # 0..1439
    end_minutes: int = 1  # 0..1439, never equal to start
    enabled_weekdays: FrozenSet[Weekday] = ALL_WEEKDAYS

    @property
    def overnight(self) -> bool:
        return self.start_minutes > self.end_minutes

    def to_dict(self) -> dict[str, Any]:
        return {
            "start_minutes": self.start_minutes,
            "end_minutes": self.end_minutes,
            "enabled_weekdays": sorted(int(d) for d in self.enabled_weekdays),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimeWindow":
        return cls(
            start_minutes=int(data["start_minutes"]),
            end_minutes=int(data["end_minutes"]),
            enabled_weekdays=frozenset(Weekday(int(d)) for d in data["enabled_weekdays"]),
        )


@dataclass(frozen=True)
class QuotaRule:
    daily_limit_minutes: Optional[int] = None  # None means unlimited
    # kept for stored records; the quota rule always requires entitlement
    entitlement_required: bool = True

    @property
    def has_limit(self) -> bool:
        return self.daily_limit_minutes is not None and self.daily_limit_minutes > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "daily_limit_minutes": self.daily_limit_minutes,
            "entitlement_required": self.entitlement_required,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QuotaRule":
        limit = data.get("daily_limit_minutes")
        return cls(
            daily_limit_minutes=int(limit) if limit is not None else None,
            entitlement_required=bool(data.get("entitlement_required", True)),
        )


@dataclass(frozen=True)
class Immediate:
    """Unlock on the first correct answer or skip."""


@dataclass(frozen=True)
class QuestionCount:
    required: int


UnlockTrigger = Union[Immediate, QuestionCount]


@dataclass(frozen=True)
class BlockSelections:
    """Opaque application handles grouped by the rule that blocks them."""

    window_targets: FrozenSet[str] = frozenset()
    quota_targets: FrozenSet[str] = frozenset()
    legacy_targets: FrozenSet[str] = frozenset()

    def window_or_legacy(self) -> FrozenSet[str]:
        return self.window_targets or self.legacy_targets


def targets(items: Iterable[str]) -> FrozenSet[str]:
    return frozenset(str(i) for i in items)


@dataclass
class RestrictionState:
    window: TimeWindow = field(default_factory=TimeWindow)
    quota: QuotaRule = field(default_factory=QuotaRule)
    unlock_trigger: UnlockTrigger = field(default_factory=Immediate)
    unlock_duration_minutes: int = DEFAULT_UNLOCK_DURATION_MINUTES
    skip_enabled: bool = False
    selections: BlockSelections = field(default_factory=BlockSelections)
    unlock_until: Optional[datetime] = None
    quota_reached: bool = False
    entitled: bool = False

    def unlocked_at(self, now: datetime) -> bool:
        return self.unlock_until is not None and now < self.unlock_until


@dataclass(frozen=True)
class Decision:
    should_block: bool
    targets: FrozenSet[str] = frozenset()


NO_BLOCK = Decision(should_block=False)
