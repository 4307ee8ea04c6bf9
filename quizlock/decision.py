"""Blocking decision: time window rule combined with the usage quota rule.

Pure helpers decide; `apply_decision` pushes the result to the block
primitive, which is best-effort and never raises to the caller.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import FrozenSet, Optional

from quizlock.errors import ShieldError
from quizlock.models import NO_BLOCK, Decision, QuotaRule, RestrictionState
from quizlock.platform import ShieldStore
from quizlock.windows import is_window_active


logger = logging.getLogger(__name__)


def quota_rule_active(quota: QuotaRule, entitled: bool) -> bool:
    """The quota rule only ever applies to entitled users."""
    return entitled and quota.has_limit


def is_quota_exceeded(quota: QuotaRule, entitled: bool, quota_reached: bool) -> bool:
    """The reached flag is owned by the usage tracker; this only gates it."""
    return quota_rule_active(quota, entitled) and quota_reached


def resolve_targets(state: RestrictionState, window_active: bool, quota_active: bool) -> FrozenSet[str]:
    found: set[str] = set()
    if window_active:
        found |= state.selections.window_or_legacy()
    if quota_active and state.entitled:
        found |= state.selections.quota_targets
    return frozenset(found)


def decide(state: Optional[RestrictionState], now: datetime) -> Decision:
    """Return whether to block at `now` and which targets.

    An active temporary unlock overrides every rule. An absent state means no
    restriction is configured. A rule that is active but resolves to no
    targets does not block.
    """
    if state is None:
        return NO_BLOCK
    if state.unlocked_at(now):
        return NO_BLOCK

    window_active = is_window_active(state.window, now)
    quota_active = is_quota_exceeded(state.quota, state.entitled, state.quota_reached)
    if not (window_active or quota_active):
        return NO_BLOCK

    found = resolve_targets(state, window_active, quota_active)
    if not found:
        return NO_BLOCK
    return Decision(should_block=True, targets=found)


def apply_decision(shield: ShieldStore, decision: Decision, reason: str = "") -> bool:
    """Apply or clear the block. Returns False when the platform refused."""
    try:
        if decision.should_block:
            shield.set_blocked(decision.targets)
        else:
            shield.clear_blocked()
    except ShieldError as e:
        logger.warning("Block apply failed (%s), will retry on next tick: %s", reason or "sync", e)
        return False
    return True
