"""
kernel/timers.py - Timer service abstraction.

The orchestrator never touches the event loop directly; it asks a
TimerService for the current time, a cancellable one-shot callback and a
way to run a coroutine. Production code uses the running asyncio loop,
tests substitute a manually advanced clock.
"""

from __future__ import annotations
from typing import Any, Callable, Coroutine, Optional, Protocol, Set
import asyncio
import logging

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class TimerService(Protocol):
    """Clock plus one-shot scheduling."""

    def now(self) -> float:
        """Monotonic time in seconds."""
        ...

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle:
        ...

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> Any:
        """Start running a coroutine without waiting for it."""
        ...


class AsyncioTimerService:
    """TimerService backed by an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._tasks: Set[asyncio.Task] = set()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, delay_s), callback)

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = self.loop.create_task(coro)
        # keep a strong reference until done
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Background task failed: {task.exception()!r}")

    @property
    def active_tasks(self) -> int:
        return len(self._tasks)

    async def wait_idle(self) -> None:
        """Wait until every spawned task has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
