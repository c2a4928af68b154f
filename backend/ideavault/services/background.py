"""Fire-and-forget side effects.

Prediction appends, click events and cache upserts are handed to a
``BackgroundDispatcher`` so the response path never waits on them and
never fails because of them.  Failures are logged, not raised.  In-flight
tasks are drained on application shutdown.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Set

logger = logging.getLogger(__name__)


class BackgroundDispatcher:
    def __init__(self) -> None:
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def dispatch(self, name: str, job: Callable[[], Awaitable[object]]) -> asyncio.Task:
        """Schedule *job* on the running loop and return immediately."""
        task = asyncio.get_running_loop().create_task(self._run(name, job), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, name: str, job: Callable[[], Awaitable[object]]) -> None:
        try:
            await job()
        except Exception:
            logger.warning("Background job %s failed (non-blocking)", name, exc_info=True)

    async def drain(self, timeout: float = 5.0) -> None:
        """Wait for in-flight jobs; cancel whatever is still running after *timeout*."""
        if not self._tasks:
            return
        tasks = list(self._tasks)
        done, still_running = await asyncio.wait(tasks, timeout=timeout)
        for task in still_running:
            logger.warning("Background job %s cancelled at shutdown", task.get_name())
            task.cancel()
        logger.info("Background dispatcher drained (%d done, %d cancelled)", len(done), len(still_running))
