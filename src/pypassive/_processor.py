"""Periodic, non-overlapping processing of collector steps."""

from __future__ import annotations

import asyncio
import inspect
import logging
import threading
from collections.abc import Awaitable, Callable, Sequence
from enum import StrEnum

from pypassive.exceptions import LifecycleError

_logger = logging.getLogger(__name__)

Step = Callable[[], None] | Callable[[], Awaitable[None]]


class LifecycleState(StrEnum):
    CREATED = "created"
    RUNNING = "running"
    STOPPING = "stopping"
    CLOSED = "closed"


class PeriodicProcessor:
    """Runs a list of steps every ``interval`` seconds.

    Synchronous steps run in the default executor, coroutine steps on the
    event loop. Steps of one cycle run in order and cycles never overlap.
    :attr:`is_done` is the cooperative cancellation flag long-running
    steps poll between rows; it is safe to read from worker threads.
    ``on_cancel`` runs on the event loop right after the flag is set, to
    release steps that wait on external events.

    Usage::

        processor = PeriodicProcessor("phone_log", [step_a, step_b], interval=3600)
        await processor.start()
        ...
        await processor.close()
    """

    def __init__(
        self,
        name: str,
        steps: Sequence[Step],
        interval: float,
        *,
        on_start: Callable[[], None] | None = None,
        on_cancel: Callable[[], None] | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._name = name
        self._steps: tuple[Step, ...] = tuple(steps)
        self._interval = float(interval)
        self._on_start = on_start
        self._on_cancel = on_cancel
        self._done = threading.Event()
        self._state = LifecycleState.CREATED
        self._task: asyncio.Task[None] | None = None
        self._wake: asyncio.Event | None = None
        self._cycle_lock: asyncio.Lock | None = None
        self._cycles = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def is_done(self) -> bool:
        """Whether the current cycle should stop as soon as possible."""
        return self._done.is_set()

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def cycles(self) -> int:
        """Number of completed cycles."""
        return self._cycles

    def set_interval(self, interval: float) -> None:
        """Change the period; the next wait uses the new value."""
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._interval = float(interval)
        _logger.info("%s: interval set to %.0f s", self._name, interval)
        if self._wake is not None:
            self._wake.set()

    async def start(self) -> None:
        """Run ``on_start`` then schedule cycles, starting immediately."""
        if self._state != LifecycleState.CREATED:
            raise LifecycleError(f"{self._name} cannot start from state {self._state}")
        loop = asyncio.get_running_loop()
        self._wake = asyncio.Event()
        self._cycle_lock = asyncio.Lock()
        if self._on_start is not None:
            await loop.run_in_executor(None, self._on_start)
        self._state = LifecycleState.RUNNING
        self._task = loop.create_task(self._run(), name=f"pypassive-{self._name}")
        _logger.info("%s: started with a period of %.0f s", self._name, self._interval)

    async def run_once(self) -> None:
        """Run one cycle now, serialized with scheduled cycles."""
        if self._state != LifecycleState.RUNNING or self._cycle_lock is None:
            raise LifecycleError(f"{self._name} is not running")
        await self._run_cycle()

    async def close(self) -> None:
        """Stop scheduling, cancel the in-flight cycle and wait for it."""
        if self._state in (LifecycleState.CLOSED, LifecycleState.STOPPING):
            return
        if self._state == LifecycleState.CREATED:
            self._state = LifecycleState.CLOSED
            return
        self._state = LifecycleState.STOPPING
        self._done.set()
        if self._on_cancel is not None:
            self._on_cancel()
        if self._wake is not None:
            self._wake.set()
        task = self._task
        self._task = None
        if task is not None:
            await task
        self._state = LifecycleState.CLOSED
        _logger.info("%s: closed after %d cycles", self._name, self._cycles)

    async def _run(self) -> None:
        assert self._wake is not None  # noqa: S101
        while not self.is_done:
            await self._run_cycle()
            if self.is_done:
                break
            try:
                await asyncio.wait_for(self._wake.wait(), self._interval)
            except TimeoutError:
                pass
            self._wake.clear()

    async def _run_cycle(self) -> None:
        assert self._cycle_lock is not None  # noqa: S101
        loop = asyncio.get_running_loop()
        async with self._cycle_lock:
            for step in self._steps:
                if self.is_done:
                    break
                try:
                    if inspect.iscoroutinefunction(step):
                        await step()
                    else:
                        await loop.run_in_executor(None, step)
                except Exception:
                    _logger.exception("%s: step %s failed", self._name, getattr(step, "__name__", step))
            self._cycles += 1
