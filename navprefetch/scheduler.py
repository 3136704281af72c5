"""
Delayed-task scheduling for hover debounce and retry backoff.

``AsyncioScheduler`` runs callbacks on the running event loop via
``call_later``. ``ManualScheduler`` is a virtual clock: nothing fires until
``advance()`` moves time forward, which keeps debounce and backoff tests
free of real sleeps. Both also serve as the millisecond clock passed to
``CacheManager``.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


def system_clock_ms() -> float:
    """Wall-clock time in milliseconds."""
    return time.time() * 1000


@runtime_checkable
class Scheduler(Protocol):
    """Schedules zero-argument callbacks after a delay in milliseconds."""

    def schedule(self, callback: Callable[[], Any], delay_ms: float) -> Any:
        ...

    def cancel(self, token: Any) -> None:
        ...

    def now(self) -> float:
        ...


class AsyncioScheduler:
    """Scheduler backed by the running asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def schedule(self, callback: Callable[[], Any], delay_ms: float) -> asyncio.TimerHandle:
        return self._get_loop().call_later(max(delay_ms, 0) / 1000, callback)

    def cancel(self, token: asyncio.TimerHandle) -> None:
        token.cancel()

    def now(self) -> float:
        return system_clock_ms()


@dataclass(order=True)
class _ScheduledTask:
    due: float
    seq: int
    callback: Callable[[], Any] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)


class ManualScheduler:
    """
    Virtual-clock scheduler.

    Example:
        >>> sched = ManualScheduler()
        >>> token = sched.schedule(lambda: print("fired"), 100)
        >>> sched.advance(100)
        fired
        1
    """

    def __init__(self, start_ms: float = 0.0) -> None:
        self._now = start_ms
        self._queue: list[_ScheduledTask] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def schedule(self, callback: Callable[[], Any], delay_ms: float) -> _ScheduledTask:
        task = _ScheduledTask(
            due=self._now + max(delay_ms, 0), seq=next(self._seq), callback=callback
        )
        heapq.heappush(self._queue, task)
        return task

    def cancel(self, token: _ScheduledTask) -> None:
        token.cancelled = True

    @property
    def pending_count(self) -> int:
        """Number of scheduled, not-yet-fired, not-cancelled callbacks."""
        return sum(1 for task in self._queue if not task.cancelled)

    def next_due(self) -> float | None:
        """Virtual time of the next live callback, if any."""
        for task in sorted(self._queue):
            if not task.cancelled:
                return task.due
        return None

    def advance(self, ms: float) -> int:
        """
        Move the clock forward, firing due callbacks in time order.

        Callbacks scheduled while advancing fire in the same call if they
        fall due within the window.

        Returns:
            Number of callbacks fired
        """
        target = self._now + ms
        fired = 0
        while self._queue and self._queue[0].due <= target:
            task = heapq.heappop(self._queue)
            if task.cancelled:
                continue
            self._now = task.due
            task.callback()
            fired += 1
        self._now = target
        return fired
