"""
A FIFO queue that runs async operations strictly one at a time.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")


class SerialTaskQueue:
    """
    Runs submitted coroutine factories in submission order, one at a time.

    A failing operation only fails its own caller; later operations still run.
    """

    def __init__(self, name: str = "queue"):
        self.name = name
        self._queue: asyncio.Queue[tuple[Callable[[], Awaitable[Any]], asyncio.Future]] | None = None
        self._worker: asyncio.Task | None = None
        self._pending = 0

    @property
    def pending(self) -> int:
        """Operations submitted but not yet finished."""
        return self._pending

    def _ensure_worker(self) -> asyncio.Queue:
        if self._queue is None or self._worker is None or self._worker.done():
            self._queue = asyncio.Queue()
            self._worker = asyncio.create_task(self._run(self._queue))
        return self._queue

    async def submit(self, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Enqueues ``operation`` and waits for its result.

        Args:
            operation: A zero-argument callable returning an awaitable; it is not
                called until every earlier operation has finished.
        """
        queue = self._ensure_worker()
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending += 1
        log.debug(f"[{self.name}] enqueued operation ({self._pending} pending)")
        queue.put_nowait((operation, future))
        return await asyncio.shield(future)

    async def _run(self, queue: asyncio.Queue) -> None:
        while True:
            operation, future = await queue.get()
            try:
                log.debug(f"[{self.name}] executing operation")
                result = await operation()
            except asyncio.CancelledError:
                if not future.done():
                    future.cancel()
                raise
            except Exception as e:
                log.debug(f"[{self.name}] operation failed: {e}")
                if not future.done():
                    future.set_exception(e)
            else:
                if not future.done():
                    future.set_result(result)
            finally:
                self._pending -= 1
                queue.task_done()

    async def join(self) -> None:
        """Waits until every submitted operation has finished."""
        if self._queue is not None and self._worker is not None and not self._worker.done():
            await self._queue.join()

    async def close(self) -> None:
        """Finishes outstanding operations, then stops the worker."""
        await self.join()
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
        self._worker = None
        self._queue = None
