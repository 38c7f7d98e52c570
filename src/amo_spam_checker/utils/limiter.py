"""Bounded fire-and-forget task runner for background lead checks."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine

logger = logging.getLogger(__name__)


class TaskLimiter:
    """Runs coroutines in the background with at most ``limit`` active at once.

    Usage::

        limiter = TaskLimiter(limit=10)
        limiter.submit(service.check_and_apply(lead_id, phone), name="lead-42")
        ...
        await limiter.drain()  # on shutdown

    ``submit`` returns immediately. Tasks beyond the limit wait for a free
    slot. A failing task is logged here and never re-raised.
    """

    def __init__(self, limit: int) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self.limit = limit
        self._semaphore = asyncio.Semaphore(limit)
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def pending(self) -> int:
        """Number of submitted tasks that have not finished yet."""
        return len(self._tasks)

    def submit(
        self,
        coro: Coroutine[Any, Any, Any],
        name: str | None = None,
    ) -> asyncio.Task[Any]:
        """Schedule ``coro`` and return its task without waiting for it."""
        task = asyncio.create_task(self._run(coro), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, coro: Coroutine[Any, Any, Any]) -> Any:
        async with self._semaphore:
            try:
                return await coro
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Background task %s failed", _task_name())
                return None

    async def drain(self) -> None:
        """Wait until every submitted task has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


def _task_name() -> str:
    task = asyncio.current_task()
    return task.get_name() if task else "<unknown>"
