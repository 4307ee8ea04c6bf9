"""Cross-process mirror of the restriction state.

The main process publishes; the monitor process fetches (and writes only the
quota-reached flag). Each field lives under its own key so a bad entry never
hides the others. There is no cross-key atomicity: a fetched snapshot may be
stale or mixed by the time it is acted on.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, FrozenSet, Optional, TypeVar

import aiosqlite

from quizlock import db
from quizlock.config import SHARED_NAMESPACE
from quizlock.errors import DECODE_ERRORS
from quizlock.models import (
    BlockSelections,
    Immediate,
    QuotaRule,
    RestrictionState,
    TimeWindow,
    UnlockTrigger,
    targets,
)
from quizlock.unlock import decode_unlock_trigger, encode_unlock_trigger
from quizlock.validators import check_window


logger = logging.getLogger(__name__)

T = TypeVar("T")

WINDOW_KEY = "window_v1"
QUOTA_KEY = "quota_v1"
UNLOCK_TRIGGER_KEY = "unlock_trigger_v1"
UNLOCK_DURATION_KEY = "unlock_duration_v1"
SKIP_ENABLED_KEY = "skip_enabled_v1"
WINDOW_SELECTION_KEY = "window_selection_v1"
QUOTA_SELECTION_KEY = "quota_selection_v1"
LEGACY_SELECTION_KEY = "fallback_selection_v1"
UNLOCK_UNTIL_KEY = "unlock_until_v1"
ENTITLED_KEY = "entitled_v1"
QUOTA_REACHED_KEY = "quota_reached"
QUOTA_REACHED_AT_KEY = "quota_reached_at"

STATE_KEYS = (
    WINDOW_KEY,
    QUOTA_KEY,
    UNLOCK_TRIGGER_KEY,
    UNLOCK_DURATION_KEY,
    SKIP_ENABLED_KEY,
    WINDOW_SELECTION_KEY,
    QUOTA_SELECTION_KEY,
    LEGACY_SELECTION_KEY,
    UNLOCK_UNTIL_KEY,
    ENTITLED_KEY,
    QUOTA_REACHED_KEY,
)

# A window that applies on no day; stands in for a missing or unreadable entry
UNSET_WINDOW = TimeWindow(enabled_weekdays=frozenset())


def _require_object(data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise TypeError(f"expected an object, got {type(data).__name__}")
    return data


def _parse_window(data: Any) -> TimeWindow:
    return check_window(TimeWindow.from_dict(_require_object(data)))


def _parse_quota(data: Any) -> QuotaRule:
    return QuotaRule.from_dict(_require_object(data))


def _parse_targets(data: Any) -> FrozenSet[str]:
    if not isinstance(data, list):
        raise TypeError("selection must be a list")
    return targets(data)


def _parse_bool(data: Any) -> bool:
    if not isinstance(data, bool):
        raise TypeError("expected a boolean")
    return data


def _parse_positive_int(data: Any) -> int:
    v = int(data)
    if v < 1:
        raise ValueError(f"expected a positive integer, got {v}")
    return v


def _parse_timestamp(data: Any) -> Optional[datetime]:
    v = float(data)
    if v <= 0:
        return None
    return datetime.fromtimestamp(v, timezone.utc)


def _dump(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"))


class SharedStateBridge:
    def __init__(self, namespace: str = SHARED_NAMESPACE) -> None:
        self.namespace = namespace

    async def publish(self, state: RestrictionState) -> None:
        """Mirror every field the main process owns.

        The quota-reached flag is owned by the usage tracker and is written
        only through `set_quota_reached`.
        """
        entries: Dict[str, str] = {
            WINDOW_KEY: _dump(state.window.to_dict()),
            QUOTA_KEY: _dump(state.quota.to_dict()),
            UNLOCK_TRIGGER_KEY: _dump(encode_unlock_trigger(state.unlock_trigger)),
            UNLOCK_DURATION_KEY: _dump(state.unlock_duration_minutes),
            SKIP_ENABLED_KEY: _dump(state.skip_enabled),
            WINDOW_SELECTION_KEY: _dump(sorted(state.selections.window_targets)),
            QUOTA_SELECTION_KEY: _dump(sorted(state.selections.quota_targets)),
            LEGACY_SELECTION_KEY: _dump(sorted(state.selections.legacy_targets)),
            ENTITLED_KEY: _dump(state.entitled),
        }
        if state.unlock_until is not None:
            entries[UNLOCK_UNTIL_KEY] = _dump(state.unlock_until.timestamp())
        try:
            await db.kv_set_many(self.namespace, entries)
            if state.unlock_until is None:
                await db.kv_delete(self.namespace, [UNLOCK_UNTIL_KEY])
        except (aiosqlite.Error, OSError):
            logger.exception("Failed to publish shared restriction state")
            return
        logger.debug("Published shared restriction state")

    async def fetch(self) -> Optional[RestrictionState]:
        """Load the mirrored state, or None when nothing was ever published.

        Missing or malformed entries fall back to their unset value.
        """
        try:
            entries = await db.kv_get_many(self.namespace)
        except (aiosqlite.Error, OSError):
            logger.exception("Failed to read shared restriction state")
            return None
        if not any(k in entries for k in STATE_KEYS):
            return None

        trigger: UnlockTrigger = self._read(entries, UNLOCK_TRIGGER_KEY, decode_unlock_trigger, Immediate())
        defaults = RestrictionState()
        return RestrictionState(
            window=self._read(entries, WINDOW_KEY, _parse_window, UNSET_WINDOW),
            quota=self._read(entries, QUOTA_KEY, _parse_quota, QuotaRule()),
            unlock_trigger=trigger,
            unlock_duration_minutes=self._read(
                entries, UNLOCK_DURATION_KEY, _parse_positive_int, defaults.unlock_duration_minutes
            ),
            skip_enabled=self._read(entries, SKIP_ENABLED_KEY, _parse_bool, False),
            selections=BlockSelections(
                window_targets=self._read(entries, WINDOW_SELECTION_KEY, _parse_targets, frozenset()),
                quota_targets=self._read(entries, QUOTA_SELECTION_KEY, _parse_targets, frozenset()),
                legacy_targets=self._read(entries, LEGACY_SELECTION_KEY, _parse_targets, frozenset()),
            ),
            unlock_until=self._read(entries, UNLOCK_UNTIL_KEY, _parse_timestamp, None),
            quota_reached=self._read(entries, QUOTA_REACHED_KEY, _parse_bool, False),
            entitled=self._read(entries, ENTITLED_KEY, _parse_bool, False),
        )

    async def fetch_quota_reached(self) -> Optional[bool]:
        """Just the usage flag; None when it cannot be read."""
        try:
            raw = await db.kv_get(self.namespace, QUOTA_REACHED_KEY)
        except (aiosqlite.Error, OSError):
            logger.exception("Failed to read quota flag")
            return None
        if raw is None:
            return False
        return self._read({QUOTA_REACHED_KEY: raw}, QUOTA_REACHED_KEY, _parse_bool, None)

    async def set_quota_reached(self, reached: bool, at: Optional[datetime] = None) -> None:
        try:
            if reached:
                at = at or datetime.now(timezone.utc)
                await db.kv_set_many(
                    self.namespace,
                    {QUOTA_REACHED_KEY: _dump(True), QUOTA_REACHED_AT_KEY: _dump(at.timestamp())},
                )
            else:
                await db.kv_set(self.namespace, QUOTA_REACHED_KEY, _dump(False))
                await db.kv_delete(self.namespace, [QUOTA_REACHED_AT_KEY])
        except (aiosqlite.Error, OSError):
            logger.exception("Failed to write quota flag")

    @staticmethod
    def _read(entries: Dict[str, str], key: str, parse: Callable[[Any], T], default: T) -> T:
        raw = entries.get(key)
        if raw is None:
            return default
        try:
            return parse(json.loads(raw))
        except DECODE_ERRORS as e:
            logger.warning("Ignoring malformed shared entry %s: %s", key, e)
            return default
