"""Platform collaborators: the block primitive and the OS activity scheduler.

The real implementations belong to the host platform. The in-memory versions
here back the entry points and the tests, and log what they would do.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, time
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Optional, Protocol


logger = logging.getLogger(__name__)


class Activity(str, Enum):
    QUOTA_SCHEDULE = "quota_schedule"
    WINDOW_SCHEDULE = "window_schedule"
    WINDOW_SCHEDULE_OVERNIGHT = "window_schedule_overnight"
    UNLOCK_WINDOW = "unlock_window"


QUOTA_THRESHOLD_EVENT = "quota_threshold"


@dataclass(frozen=True)
class ActivitySchedule:
    """A monitoring interval handed to the OS.

    Repeating schedules carry times of day; one-shot schedules carry full
    datetimes.
    """

    name: Activity
    start: time | datetime
    end: time | datetime
    repeats: bool = True
    # usage threshold in minutes over `targets`, fires event_did_reach_threshold
    threshold_minutes: Optional[int] = None
    targets: FrozenSet[str] = frozenset()


class ShieldStore(Protocol):
    def set_blocked(self, targets: FrozenSet[str]) -> None: ...

    def clear_blocked(self) -> None: ...

    def current(self) -> FrozenSet[str]: ...


class ActivityCenter(Protocol):
    def start_monitoring(self, schedule: ActivitySchedule) -> None: ...

    def stop_monitoring(self, names: Iterable[Activity]) -> None: ...


class MemoryShieldStore:
    def __init__(self) -> None:
        self._blocked: FrozenSet[str] = frozenset()
        self.apply_count = 0

    def set_blocked(self, targets: FrozenSet[str]) -> None:
        targets = frozenset(targets)
        if targets == self._blocked:
            return
        self._blocked = targets
        self.apply_count += 1
        logger.info("Shield applied: %d apps", len(targets))

    def clear_blocked(self) -> None:
        if not self._blocked:
            return
        self._blocked = frozenset()
        self.apply_count += 1
        logger.info("Shield removed")

    def current(self) -> FrozenSet[str]:
        return self._blocked


@dataclass
class MemoryActivityCenter:
    schedules: Dict[Activity, ActivitySchedule] = field(default_factory=dict)

    def start_monitoring(self, schedule: ActivitySchedule) -> None:
        self.schedules[schedule.name] = schedule
        logger.info("Monitoring %s: %s -> %s", schedule.name.value, schedule.start, schedule.end)

    def stop_monitoring(self, names: Iterable[Activity]) -> None:
        for name in names:
            if self.schedules.pop(name, None) is not None:
                logger.info("Stopped monitoring %s", name.value)
