"""Background task utilities for async fire-and-forget operations."""

import asyncio
from collections.abc import Awaitable
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class BackgroundTasks:
    """Collects background asyncio tasks so they can be awaited later.

    Usage:
        bg = BackgroundTasks()
        bg.run(mercure.publish(event))
        await bg.wait(timeout=5)

    Finished tasks are dropped as they complete, so a long-lived instance
    does not grow without bound.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()
        self._counter = 0

    def __len__(self) -> int:
        return len(self._tasks)

    def run(self, coro: Awaitable[Any]) -> None:
        """Schedule a coroutine as a background task."""
        self._counter += 1
        name = f"bg:{getattr(coro, '__qualname__', 'task')}:{self._counter}"

        task: asyncio.Task[Any] = asyncio.create_task(coro, name=name)  # type: ignore[arg-type]
        self._tasks.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning("Background task failed", task_name=task.get_name(), error=str(task.exception()))

    async def wait(self, *, timeout: float) -> None:
        """Wait for pending tasks; cancel whatever is still running after timeout."""
        if not self._tasks:
            return

        pending = list(self._tasks)
        try:
            await asyncio.wait_for(asyncio.gather(*pending, return_exceptions=True), timeout=timeout)
        except TimeoutError:
            logger.warning(
                "Background tasks timed out, cancelling",
                timeout=timeout,
                pending=sum(1 for t in pending if not t.done()),
            )
            for task in pending:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
