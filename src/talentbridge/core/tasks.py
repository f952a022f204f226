from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from fastapi import BackgroundTasks

logger = logging.getLogger(__name__)

AsyncJob = Callable[..., Awaitable[Any]]


class TaskScheduler(Protocol):
    """Fire-and-forget hand-off: nothing comes back to the caller."""

    def schedule(self, job: AsyncJob, *args: Any) -> None: ...


class BackgroundTaskQueue:
    """Runs jobs as asyncio tasks on the current loop.

    References are kept until a task finishes so it is not garbage collected
    mid-flight; failures are logged by the done-callback.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def schedule(self, job: AsyncJob, *args: Any) -> None:
        task = asyncio.create_task(job(*args), name=getattr(job, "__name__", "background-job"))
        self._tasks.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Background task %s was cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background task %s failed", task.get_name(), exc_info=exc)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every task scheduled so far, including ones scheduled while waiting."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class ResponseTaskScheduler:
    """Defers jobs until FastAPI has sent the response."""

    def __init__(self, background_tasks: BackgroundTasks):
        self.background_tasks = background_tasks

    def schedule(self, job: AsyncJob, *args: Any) -> None:
        self.background_tasks.add_task(job, *args)
