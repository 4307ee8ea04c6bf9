from __future__ import annotations

import os
from datetime import datetime, time, tzinfo
from pathlib import Path
from typing import Final
from zoneinfo import ZoneInfo

from dotenv import load_dotenv


load_dotenv()

ROOT_DIR: Final[Path] = Path(__file__).resolve().parents[1]
DATA_DIR: Final[Path] = Path(os.getenv("DATA_DIR", str(ROOT_DIR / "data")))
DATA_DIR.mkdir(parents=True, exist_ok=True)
DB_PATH: Final[Path] = DATA_DIR / "quizlock.db"

# Shared between the main process and the monitor process
SHARED_NAMESPACE: Final[str] = os.getenv("SHARED_NAMESPACE", "group.quizlock")
# Private to the main process
APP_NAMESPACE: Final[str] = "app"

DEFAULT_TZ: Final[str] = os.getenv("TZ", "")

LOG_DIR: Final[Path] = Path(os.getenv("LOG_DIR", str(DATA_DIR / "logs")))
LOG_FILE: Final[Path] = LOG_DIR / "quizlock.log"
LOG_LEVEL: Final[str] = os.getenv("LOG_LEVEL", "INFO")

HEARTBEAT_INTERVAL_SECONDS: Final[float] = float(os.getenv("HEARTBEAT_INTERVAL_SECONDS", "5.0"))
BOUNDARY_EPSILON_SECONDS: Final[float] = 0.5

DEFAULT_UNLOCK_DURATION_MINUTES: Final[int] = 10
FREE_MAX_REQUIRED_QUESTIONS: Final[int] = 10
ENTITLED_MAX_REQUIRED_QUESTIONS: Final[int] = 100

# End of the daily quota interval; the monitor resets usage when it rolls over
QUOTA_RESET_TIME: Final[time] = time(23, 59)

MINUTES_PER_DAY: Final[int] = 24 * 60


def local_tz() -> tzinfo:
    if DEFAULT_TZ:
        return ZoneInfo(DEFAULT_TZ)
    return datetime.now().astimezone().tzinfo  # type: ignore[return-value]


def now_local() -> datetime:
    return datetime.now(local_tz())
