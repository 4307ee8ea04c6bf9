from __future__ import annotations

from datetime import datetime, timedelta, timezone

import aiosqlite
import pytest

from quizlock import db
from quizlock.bridge import (
    ENTITLED_KEY,
    QUOTA_KEY,
    QUOTA_REACHED_KEY,
    SKIP_ENABLED_KEY,
    UNLOCK_DURATION_KEY,
    UNLOCK_TRIGGER_KEY,
    UNLOCK_UNTIL_KEY,
    UNSET_WINDOW,
    WINDOW_KEY,
    SharedStateBridge,
)
from quizlock.models import (
    BlockSelections,
    QuestionCount,
    QuotaRule,
    RestrictionState,
    TimeWindow,
    Weekday,
)

NS = "group.test"


def sample_state() -> RestrictionState:
    return RestrictionState(
        window=TimeWindow(1320, 360, frozenset({Weekday.MONDAY, Weekday.FRIDAY})),
        quota=QuotaRule(45),
        unlock_trigger=QuestionCount(3),
        unlock_duration_minutes=15,
        skip_enabled=True,
        selections=BlockSelections(
            window_targets=frozenset({"game"}),
            quota_targets=frozenset({"video"}),
            legacy_targets=frozenset({"old"}),
        ),
        unlock_until=datetime(2024, 1, 1, 20, 0, tzinfo=timezone.utc),
        entitled=True,
    )


@pytest.mark.asyncio
async def test_fetch_without_anything_published(db_path):
    await db.init_db()
    assert await SharedStateBridge(NS).fetch() is None


@pytest.mark.asyncio
async def test_publish_then_fetch(db_path):
    await db.init_db()
    bridge = SharedStateBridge(NS)
    state = sample_state()
    await bridge.publish(state)
    assert await bridge.fetch() == state


@pytest.mark.asyncio
async def test_corrupt_entry_does_not_hide_the_others(db_path):
    await db.init_db()
    bridge = SharedStateBridge(NS)
    await bridge.publish(sample_state())
    await db.kv_set(NS, WINDOW_KEY, "{not json")
    await db.kv_set(NS, SKIP_ENABLED_KEY, '"yes"')

    got = await bridge.fetch()
    assert got is not None
    assert got.window == UNSET_WINDOW
    assert got.skip_enabled is False
    assert got.selections.window_targets == frozenset({"game"})
    assert got.unlock_trigger == QuestionCount(3)


@pytest.mark.asyncio
async def test_zero_length_window_entry_is_treated_as_unset(db_path):
    await db.init_db()
    bridge = SharedStateBridge(NS)
    await db.kv_set(NS, WINDOW_KEY, '{"start_minutes":600,"end_minutes":600,"enabled_weekdays":[0]}')
    await db.kv_set(NS, ENTITLED_KEY, "true")
    got = await bridge.fetch()
    assert got is not None and got.window == UNSET_WINDOW
    assert got.entitled is True


@pytest.mark.asyncio
async def test_clearing_unlock_removes_its_entry(db_path):
    await db.init_db()
    bridge = SharedStateBridge(NS)
    state = sample_state()
    await bridge.publish(state)
    state.unlock_until = None
    await bridge.publish(state)
    assert await db.kv_get(NS, UNLOCK_UNTIL_KEY) is None
    got = await bridge.fetch()
    assert got is not None and got.unlock_until is None


@pytest.mark.asyncio
async def test_publish_leaves_quota_flag_to_the_tracker(db_path):
    await db.init_db()
    bridge = SharedStateBridge(NS)
    await bridge.set_quota_reached(True, datetime.now(timezone.utc) - timedelta(minutes=1))
    state = sample_state()
    state.quota_reached = False
    await bridge.publish(state)

    assert await bridge.fetch_quota_reached() is True
    got = await bridge.fetch()
    assert got is not None and got.quota_reached is True

    await bridge.set_quota_reached(False)
    assert await bridge.fetch_quota_reached() is False


@pytest.mark.asyncio
async def test_malformed_quota_flag_reads_as_unknown(db_path):
    await db.init_db()
    await db.kv_set(NS, QUOTA_REACHED_KEY, "maybe")
    assert await SharedStateBridge(NS).fetch_quota_reached() is None


@pytest.mark.asyncio
async def test_store_failure_reads_as_no_state(db_path, monkeypatch):
    async def broken(namespace):
        raise aiosqlite.OperationalError("disk I/O error")

    monkeypatch.setattr(db, "kv_get_many", broken)
    assert await SharedStateBridge(NS).fetch() is None


@pytest.mark.parametrize(
    "key, raw",
    [
        (QUOTA_KEY, "[]"),
        (QUOTA_KEY, '"x"'),
        (WINDOW_KEY, "[600, 700]"),
        (UNLOCK_UNTIL_KEY, "1e300"),
        (UNLOCK_DURATION_KEY, "1e400"),
        (UNLOCK_TRIGGER_KEY, '{"type":"questionCount","required":1e400}'),
    ],
)
@pytest.mark.asyncio
async def test_out_of_shape_entry_reads_as_unset(db_path, key, raw):
    await db.init_db()
    await db.kv_set(NS, ENTITLED_KEY, "true")
    await db.kv_set(NS, key, raw)

    got = await SharedStateBridge(NS).fetch()
    defaults = RestrictionState()
    assert got is not None
    assert got.entitled is True
    assert got.quota == defaults.quota
    assert got.window == UNSET_WINDOW
    assert got.unlock_until is None
    assert got.unlock_duration_minutes == defaults.unlock_duration_minutes
    assert got.unlock_trigger == defaults.unlock_trigger
