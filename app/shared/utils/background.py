"""Fire-and-forget runner for best-effort side effects (activity log, analytics, counters).

Callers never await these for success. Failures are logged and dropped;
they never propagate to the primary operation.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)


class BestEffortTasks:
    """Tracks spawned side-effect tasks so they are not garbage collected mid-flight.

    drain() waits for everything currently pending; used at shutdown and in tests.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], description: str) -> asyncio.Task[Any]:
        """Schedule coro on the running loop; exceptions are logged, never raised."""
        task = asyncio.create_task(coro, name=description)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(
                "Best-effort task %s failed: %s",
                task.get_name(),
                exc,
                exc_info=exc,
            )

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for pending tasks (including ones spawned while waiting)."""
        while True:
            pending = [t for t in self._tasks if not t.done()]
            if not pending:
                return
            _, not_done = await asyncio.wait(pending, timeout=timeout)
            if not_done:
                logger.warning(
                    "%d best-effort task(s) still running after %.1fs; cancelling",
                    len(not_done),
                    timeout or 0.0,
                )
                for task in not_done:
                    task.cancel()
                await asyncio.gather(*not_done, return_exceptions=True)
                return
