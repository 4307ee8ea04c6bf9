from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict, Tuple

import aiosqlite

from quizlock import db
from quizlock.config import APP_NAMESPACE
from quizlock.errors import DECODE_ERRORS
from quizlock.models import BlockSelections, QuotaRule, RestrictionState, TimeWindow, targets
from quizlock.quiz import QuestionPack, default_pack
from quizlock.unlock import decode_unlock_trigger, encode_unlock_trigger


logger = logging.getLogger(__name__)

STATE_KEY = "state_v1"
PACK_KEY = "pack_v2"
LEGACY_PACK_KEY = "pack_v1"


def state_to_dict(state: RestrictionState) -> Dict[str, Any]:
    # quota_reached is owned by the usage tracker and lives in the shared store only
    return {
        "window": state.window.to_dict(),
        "quota": state.quota.to_dict(),
        "unlock_trigger": encode_unlock_trigger(state.unlock_trigger),
        "unlock_duration_minutes": state.unlock_duration_minutes,
        "skip_enabled": state.skip_enabled,
        "selections": {
            "window": sorted(state.selections.window_targets),
            "quota": sorted(state.selections.quota_targets),
            "legacy": sorted(state.selections.legacy_targets),
        },
        "unlock_until": state.unlock_until.isoformat() if state.unlock_until else None,
        "entitled": state.entitled,
    }


def state_from_dict(data: Dict[str, Any]) -> RestrictionState:
    """Build state from a stored record, migrating the unlock trigger once here."""
    if not isinstance(data, dict):
        raise TypeError(f"stored state must be an object, got {type(data).__name__}")
    defaults = RestrictionState()
    # older records kept only a bare condition tag
    raw_trigger = data.get("unlock_trigger", data.get("unlock_condition", "immediate"))
    selections = data.get("selections") or {}
    if not isinstance(selections, dict):
        raise TypeError("stored selections must be an object")
    until = data.get("unlock_until")
    return RestrictionState(
        window=TimeWindow.from_dict(data["window"]) if "window" in data else defaults.window,
        quota=QuotaRule.from_dict(data.get("quota") or {}),
        unlock_trigger=decode_unlock_trigger(raw_trigger),
        unlock_duration_minutes=int(data.get("unlock_duration_minutes", defaults.unlock_duration_minutes)),
        skip_enabled=bool(data.get("skip_enabled", False)),
        selections=BlockSelections(
            window_targets=targets(selections.get("window", [])),
            quota_targets=targets(selections.get("quota", [])),
            legacy_targets=targets(selections.get("legacy", [])),
        ),
        unlock_until=datetime.fromisoformat(until) if until else None,
        entitled=bool(data.get("entitled", False)),
    )


class AppStorage:
    """The main process's own persisted record."""

    def __init__(self, namespace: str = APP_NAMESPACE) -> None:
        self.namespace = namespace

    async def save(self, state: RestrictionState, pack: QuestionPack) -> None:
        try:
            await db.kv_set_many(
                self.namespace,
                {
                    STATE_KEY: json.dumps(state_to_dict(state)),
                    PACK_KEY: json.dumps(pack.to_dict(), ensure_ascii=False),
                },
            )
        except (aiosqlite.Error, OSError):
            logger.exception("Failed to persist app state")

    async def load(self) -> Tuple[RestrictionState, QuestionPack]:
        """Return the stored state and pack; defaults on first launch or bad data."""
        entries = await db.kv_get_many(self.namespace)

        state = RestrictionState()
        raw_state = entries.get(STATE_KEY)
        if raw_state is not None:
            try:
                state = state_from_dict(json.loads(raw_state))
            except DECODE_ERRORS as e:
                logger.warning("Stored state unreadable, starting from defaults: %s", e)

        pack = default_pack()
        raw_pack = entries.get(PACK_KEY) or entries.get(LEGACY_PACK_KEY)
        if raw_pack is not None:
            try:
                pack = QuestionPack.from_dict(json.loads(raw_pack))
            except DECODE_ERRORS as e:
                logger.warning("Stored question pack unreadable, using the default pack: %s", e)

        return state, pack
