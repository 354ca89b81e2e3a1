"""Best-effort background jobs.

Sweeping stale sockets and warming the cache must never slow down or fail a
caller's foreground operation. Jobs are plain asyncio tasks; their
exceptions are logged and swallowed, and references are held until they
finish so they are not garbage collected mid-flight.
"""

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

logger = logging.getLogger(__name__)


class BackgroundTasks:
    """Fire-and-forget task set bound to the running event loop."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def spawn(self, name: str, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        """Schedule ``coro`` without waiting for it.

        Args:
            name: Task name used in log messages
            coro: Coroutine to run

        Returns:
            The scheduled task
        """
        task = asyncio.create_task(self._guard(name, coro), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug("Background job %s scheduled (pending=%d)", name, len(self._tasks))
        return task

    def spawn_thread(
        self, name: str, func: Callable[..., Any], *args: Any
    ) -> asyncio.Task[Any]:
        """Run blocking ``func(*args)`` in a worker thread, in the background."""
        return self.spawn(name, asyncio.to_thread(func, *args))

    @staticmethod
    async def _guard(name: str, coro: Coroutine[Any, Any, Any]) -> Any:
        try:
            return await coro
        except asyncio.CancelledError:
            logger.debug("Background job %s cancelled", name)
            raise
        except Exception as e:
            logger.warning("Background job %s failed: %s", name, e)
            return None

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for outstanding jobs, cancelling whatever is left at timeout."""
        if not self._tasks:
            return
        tasks = list(self._tasks)
        done, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            logger.info("Cancelled %d unfinished background job(s)", len(pending))
            await asyncio.gather(*pending, return_exceptions=True)

    def cancel_all(self) -> None:
        for task in list(self._tasks):
            task.cancel()
