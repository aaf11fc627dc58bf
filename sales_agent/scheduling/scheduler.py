"""Schedulers for delayed, cancellable events."""
from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class ScheduledTask:
    """Handle for a delayed callback."""

    def __init__(self, name: str, due: float, callback: Callable[..., Any], args: Tuple[Any, ...]):
        self.name = name
        self.due = due
        self._callback = callback
        self._args = args
        self._cancel_hook: Optional[Callable[[], None]] = None
        self.cancelled = False
        self.fired = False

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self) -> bool:
        """Cancel the task. Returns False if it already fired or was cancelled."""
        if not self.active:
            return False
        self.cancelled = True
        if self._cancel_hook is not None:
            self._cancel_hook()
        logger.debug(f"SCHEDULER: cancelled '{self.name}'")
        return True

    def run(self) -> None:
        if not self.active:
            return
        self.fired = True
        logger.debug(f"SCHEDULER: firing '{self.name}'")
        self._callback(*self._args)

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "fired" if self.fired else "pending"
        return f"ScheduledTask(name={self.name!r}, due={self.due}, {state})"


class Scheduler(ABC):
    """Clock plus delayed-callback dispatch."""

    @abstractmethod
    def now(self) -> float:
        """Current time in seconds on this scheduler's clock."""

    @abstractmethod
    def call_later(
        self,
        delay: float,
        callback: Callable[..., Any],
        *args: Any,
        name: str = "task",
    ) -> ScheduledTask:
        """Run callback(*args) after delay seconds."""


class VirtualScheduler(Scheduler):
    """
    Deterministic scheduler driven by explicit time advancement.

    Events due at the same instant fire in the order they were scheduled.
    Callbacks may schedule further events; those fire within the same
    advance() call if they fall due before its end.
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: List[Tuple[float, int, ScheduledTask]] = []
        self._sequence = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(
        self,
        delay: float,
        callback: Callable[..., Any],
        *args: Any,
        name: str = "task",
    ) -> ScheduledTask:
        if delay < 0:
            raise ValueError("delay must be non-negative")
        task = ScheduledTask(name, self._now + delay, callback, args)
        heapq.heappush(self._queue, (task.due, next(self._sequence), task))
        logger.debug(f"SCHEDULER: scheduled '{name}' at t={task.due:.2f}")
        return task

    @property
    def pending(self) -> List[ScheduledTask]:
        return [task for _, _, task in sorted(self._queue) if task.active]

    def advance(self, seconds: float) -> int:
        """
        Move the clock forward, firing every event that falls due.

        Args:
            seconds: Amount of virtual time to advance

        Returns:
            Number of callbacks fired
        """
        if seconds < 0:
            raise ValueError("cannot move the clock backwards")
        deadline = self._now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= deadline:
            due, _, task = heapq.heappop(self._queue)
            self._now = due
            if task.active:
                task.run()
                fired += 1
        self._now = deadline
        return fired

    def run_until_idle(self, limit: int = 1000) -> int:
        """Fire events in time order until none remain."""
        fired = 0
        while self._queue and fired < limit:
            due = self._queue[0][0]
            fired += self.advance(max(0.0, due - self._now))
            while self._queue and not self._queue[0][2].active:
                heapq.heappop(self._queue)
        return fired


class AsyncioScheduler(Scheduler):
    """Scheduler backed by the running asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def call_later(
        self,
        delay: float,
        callback: Callable[..., Any],
        *args: Any,
        name: str = "task",
    ) -> ScheduledTask:
        task = ScheduledTask(name, self.now() + delay, callback, args)
        handle = self.loop.call_later(delay, self._run, task)
        task._cancel_hook = handle.cancel
        logger.debug(f"SCHEDULER: scheduled '{name}' in {delay:.2f}s")
        return task

    @staticmethod
    def _run(task: ScheduledTask) -> None:
        try:
            task.run()
        except Exception:
            logger.error(f"SCHEDULER: task '{task.name}' failed", exc_info=True)
