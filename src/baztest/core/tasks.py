"""Single-slot task de-duplication.

At most one call of a guarded coroutine runs at a time. A second caller either
gets dropped (``run_or_drop``) or awaits the call already in flight
(``run_or_join``).
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass
class SingleFlight(Generic[T]):
    """Guard that keeps one in-flight task per instance."""

    name: str = "task"

    _task: asyncio.Task[T] | None = field(default=None, init=False)

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    def _start(self, factory: Callable[[], Awaitable[T]]) -> asyncio.Task[T]:
        async def _runner() -> T:
            return await factory()

        task = asyncio.get_running_loop().create_task(_runner(), name=f"singleflight:{self.name}")
        self._task = task
        task.add_done_callback(self._release)
        return task

    def _release(self, task: asyncio.Task[T]) -> None:
        if self._task is task:
            self._task = None

    async def run_or_drop(self, factory: Callable[[], Awaitable[T]]) -> T | None:
        """Run factory unless a call is already running; return None when dropped."""
        if self.in_flight:
            logger.debug("singleflight_dropped", name=self.name)
            return None
        return await self._start(factory)

    async def run_or_join(self, factory: Callable[[], Awaitable[T]]) -> T:
        """Run factory, or await the result of the call already running."""
        task = self._task if self.in_flight else None
        if task is None:
            task = self._start(factory)
        else:
            logger.debug("singleflight_joined", name=self.name)
        # shield so one cancelled waiter doesn't cancel the shared call
        return await asyncio.shield(task)
