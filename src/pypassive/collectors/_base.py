"""Shared scaffolding for periodic collectors."""

from __future__ import annotations

from collections.abc import Sequence
from typing import ClassVar

from pypassive._processor import LifecycleState, PeriodicProcessor, Step


class PeriodicCollector:
    """A collector whose work runs as the steps of a :class:`PeriodicProcessor`.

    Subclasses set :attr:`name`, implement :meth:`steps` and call
    ``super().__init__(interval)`` once their own attributes exist.
    """

    name: ClassVar[str] = "collector"

    def __init__(self, interval: float) -> None:
        self._processor = PeriodicProcessor(
            self.name,
            self.steps(),
            interval,
            on_start=self.on_start,
            on_cancel=self.on_cancel,
        )

    def steps(self) -> Sequence[Step]:
        raise NotImplementedError

    def on_start(self) -> None:
        """Runs in a worker thread before the first cycle."""

    def on_cancel(self) -> None:
        """Runs on the event loop when the collector starts closing."""

    @property
    def state(self) -> LifecycleState:
        return self._processor.state

    @property
    def is_done(self) -> bool:
        return self._processor.is_done

    @property
    def interval(self) -> float:
        return self._processor.interval

    def set_interval(self, interval: float) -> None:
        self._processor.set_interval(interval)

    async def start(self) -> None:
        await self._processor.start()

    async def run_once(self) -> None:
        await self._processor.run_once()

    async def close(self) -> None:
        await self._processor.close()
