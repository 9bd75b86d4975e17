"""Detached background tasks for fire-and-forget work.

Cache population and usage metering must never delay or fail a response.
``TaskSpawner`` schedules such coroutines on the running loop, keeps a strong
reference until they finish (the event loop only holds weak ones) and routes
any failure to the log instead of the caller.

Example:
    spawner = TaskSpawner()
    spawner.spawn(store.set(key, value, ttl), name="cache-populate")

    # On shutdown
    await spawner.drain(timeout=5.0)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)


class TaskSpawner:
    """Spawns and tracks detached tasks whose errors are logged, not raised."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def pending(self) -> int:
        """Number of tasks still running."""
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task[Any]:
        """Schedule ``coro`` without awaiting it."""
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                f"Background task {task.get_name()} failed: {exc}",
                exc_info=(type(exc), exc, exc.__traceback__),
            )

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for running tasks; cancel whatever is left after ``timeout``."""
        if not self._tasks:
            return

        tasks = list(self._tasks)
        done, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning(f"Cancelled {len(pending)} background tasks at shutdown")
        logger.debug(f"Drained {len(done)} background tasks")
