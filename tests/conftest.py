from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture
def db_path(tmp_path, monkeypatch) -> Path:
    # Patch quizlock.db.DB_PATH so all store operations go to a temp file
    import quizlock.db as dbmod

    path = tmp_path / "test.db"
    monkeypatch.setattr(dbmod, "DB_PATH", path, raising=False)
    return path


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now
