"""Single-writer serialized execution.

All mutations of a component's state are posted here as messages and
processed one at a time, in arrival order, on the event loop. Posting is
thread-safe so platform callbacks (battery, configuration) can arrive
from any thread.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, TypeVar

from pypassive.exceptions import LifecycleError

_logger = logging.getLogger(__name__)

T = TypeVar("T")

_STOP = object()


class SerialExecutor:
    """A queue plus one worker task; the only writer of the state it guards."""

    def __init__(self, name: str) -> None:
        self._name = name
        self._loop: asyncio.AbstractEventLoop | None = None
        self._queue: asyncio.Queue[Any] | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._task is not None:
            raise LifecycleError(f"{self._name} executor already started")
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._task = self._loop.create_task(self._worker(), name=f"pypassive-{self._name}-actor")

    def post(self, fn: Callable[[], Any]) -> None:
        """Enqueue *fn*; failures are logged. Safe from any thread."""
        self._enqueue((fn, None))

    def call(self, fn: Callable[[], T]) -> asyncio.Future[T]:
        """Enqueue *fn* and return a future for its result.

        Must be called from the event loop thread.
        """
        if self._loop is None:
            raise LifecycleError(f"{self._name} executor not started")
        future: asyncio.Future[T] = self._loop.create_future()
        self._enqueue((fn, future))
        return future

    def _enqueue(self, item: Any) -> None:
        loop = self._loop
        queue = self._queue
        if loop is None or queue is None or loop.is_closed():
            raise LifecycleError(f"{self._name} executor not running")
        loop.call_soon_threadsafe(queue.put_nowait, item)

    async def stop(self) -> None:
        """Process everything already queued, then stop the worker."""
        task = self._task
        if task is None:
            return
        self._enqueue(_STOP)
        await task
        self._task = None

    async def _worker(self) -> None:
        assert self._queue is not None  # noqa: S101
        while True:
            item = await self._queue.get()
            if item is _STOP:
                return
            fn, future = item
            try:
                result = fn()
            except Exception as exc:
                if future is None:
                    _logger.exception("%s: queued task failed", self._name)
                elif not future.done():
                    future.set_exception(exc)
                continue
            if future is not None and not future.done():
                future.set_result(result)
