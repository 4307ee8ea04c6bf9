from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from quizlock import db
from quizlock.models import (
    ALL_WEEKDAYS,
    BlockSelections,
    Immediate,
    QuestionCount,
    QuotaRule,
    RestrictionState,
    TimeWindow,
)
from quizlock.quiz import QuestionPack, default_pack
from quizlock.storage import LEGACY_PACK_KEY, PACK_KEY, STATE_KEY, AppStorage, state_from_dict

NS = "app.test"


@pytest.mark.asyncio
async def test_first_launch_gives_defaults(db_path):
    await db.init_db()
    state, pack = await AppStorage(NS).load()
    assert state == RestrictionState()
    assert len(pack.questions) == 1


@pytest.mark.asyncio
async def test_save_and_load(db_path):
    await db.init_db()
    storage = AppStorage(NS)
    state = RestrictionState(
        window=TimeWindow(1320, 360),
        quota=QuotaRule(90),
        unlock_trigger=QuestionCount(5),
        unlock_duration_minutes=20,
        skip_enabled=True,
        selections=BlockSelections(window_targets=frozenset({"a"}), quota_targets=frozenset({"b"})),
        unlock_until=datetime(2024, 1, 1, 20, 0, tzinfo=timezone.utc),
        entitled=True,
    )
    pack = default_pack()
    await storage.save(state, pack)

    got_state, got_pack = await storage.load()
    assert got_state == state
    assert got_pack == pack


@pytest.mark.asyncio
async def test_quota_flag_is_not_kept_in_app_record(db_path):
    await db.init_db()
    storage = AppStorage(NS)
    await storage.save(RestrictionState(quota_reached=True), default_pack())
    state, _ = await storage.load()
    assert state.quota_reached is False


@pytest.mark.asyncio
async def test_unreadable_record_falls_back(db_path):
    await db.init_db()
    await db.kv_set_many(NS, {STATE_KEY: "[1, 2", PACK_KEY: '{"questions": [{"id": 1}]}'})
    state, pack = await AppStorage(NS).load()
    assert state == RestrictionState()
    assert len(pack.selected_questions()) == 1


@pytest.mark.asyncio
async def test_legacy_pack_key_is_read(db_path):
    await db.init_db()
    legacy = QuestionPack.from_dict({"questions": []})
    await db.kv_set(NS, LEGACY_PACK_KEY, json.dumps(legacy.to_dict()))
    _, pack = await AppStorage(NS).load()
    assert pack.questions == []


@pytest.mark.parametrize(
    "raw, expected",
    [
        ({"type": "questionBased", "required": 4}, QuestionCount(4)),
        ({"type": "questionBased"}, Immediate()),
        ({"type": "timeBased", "minutes": 15}, Immediate()),
        ("timeBased", Immediate()),
    ],
)
def test_old_unlock_condition_is_migrated(raw, expected):
    state = state_from_dict({"unlock_condition": raw})
    assert state.unlock_trigger == expected
    assert state.window.enabled_weekdays == ALL_WEEKDAYS


@pytest.mark.parametrize(
    "raw_state, raw_pack",
    [
        ("[]", "[]"),
        ('{"selections": ["a"]}', '"pack"'),
        ('{"unlock_trigger": {"type": "questionCount", "required": 1e400}}', "42"),
    ],
)
@pytest.mark.asyncio
async def test_out_of_shape_record_falls_back(db_path, raw_state, raw_pack):
    await db.init_db()
    await db.kv_set_many(NS, {STATE_KEY: raw_state, PACK_KEY: raw_pack})
    state, pack = await AppStorage(NS).load()
    assert state == RestrictionState()
    assert len(pack.selected_questions()) == 1
