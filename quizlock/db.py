from __future__ import annotations

import contextlib
from datetime import datetime, timezone
from typing import AsyncIterator, Dict, Iterable

import aiosqlite

from quizlock.config import DB_PATH


@contextlib.asynccontextmanager
async def get_db() -> AsyncIterator[aiosqlite.Connection]:
    db = await aiosqlite.connect(DB_PATH.as_posix())
    db.row_factory = aiosqlite.Row
    try:
        yield db
    finally:
        await db.close()


async def init_db() -> None:
    async with get_db() as db:
        await db.executescript(
            """
            PRAGMA journal_mode=WAL;

            -- Independently keyed entries; writers replace single keys only
            CREATE TABLE IF NOT EXISTS kv (
                namespace TEXT NOT NULL,
                key TEXT NOT NULL,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                PRIMARY KEY (namespace, key)
            );
            """
        )
        await db.commit()


async def kv_get(namespace: str, key: str) -> str | None:
    async with get_db() as db:
        cur = await db.execute(
            "SELECT value FROM kv WHERE namespace=? AND key=?",
            (namespace, key),
        )
        row = await cur.fetchone()
        return str(row["value"]) if row else None


async def kv_get_many(namespace: str) -> Dict[str, str]:
    async with get_db() as db:
        cur = await db.execute("SELECT key, value FROM kv WHERE namespace=?", (namespace,))
        rows = await cur.fetchall()
    return {str(r["key"]): str(r["value"]) for r in rows}


async def kv_set(namespace: str, key: str, value: str) -> None:
    await kv_set_many(namespace, {key: value})


async def kv_set_many(namespace: str, entries: Dict[str, str]) -> None:
    """Upsert each entry on its own; last writer wins per key."""
    if not entries:
        return
    now = datetime.now(timezone.utc).isoformat()
    async with get_db() as db:
        for key, value in entries.items():
            await db.execute(
                "INSERT INTO kv(namespace, key, value, updated_at) VALUES(?,?,?,?) "
                "ON CONFLICT(namespace, key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at",
                (namespace, key, value, now),
            )
            await db.commit()


async def kv_delete(namespace: str, keys: Iterable[str]) -> None:
    async with get_db() as db:
        for key in keys:
            await db.execute("DELETE FROM kv WHERE namespace=? AND key=?", (namespace, key))
        await db.commit()
