from __future__ import annotations

import asyncio
from contextlib import suppress

from quizlock.controller import RestrictionController
from quizlock.db import init_db
from quizlock.logging_setup import setup_logger


async def main() -> None:
    logger = setup_logger()
    await init_db()

    controller = RestrictionController()
    await controller.load()
    await controller.start()
    logger.info("Restriction sync running")

    try:
        # boundary and heartbeat wakeups run as tasks on this loop
        await asyncio.Event().wait()
    finally:
        controller.stop()


if __name__ == "__main__":
    with suppress(KeyboardInterrupt):
        asyncio.run(main())
