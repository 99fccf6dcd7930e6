"""Fire-and-forget task runner.

Background work (stale revalidation, error reporting) is detached from
the response path. The runner keeps a strong reference to every task
so the event loop cannot garbage-collect it mid-flight, and lets the
application wait for outstanding work on shutdown.
"""

import asyncio
from typing import Any, Coroutine

from edge_cache.logging import get_logger

logger = get_logger(__name__)


class BackgroundTaskRunner:
    """Owns detached asyncio tasks until they complete."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task:
        """Schedule a coroutine on the running loop without awaiting it."""
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(
                "background_task_failed",
                task=task.get_name(),
                error=str(error),
                exc_info=(type(error), error, error.__traceback__),
            )

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for every outstanding task, cancelling stragglers after timeout."""
        if not self._tasks:
            return
        tasks = list(self._tasks)
        done, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            logger.warning("background_task_abandoned", task=task.get_name())
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
