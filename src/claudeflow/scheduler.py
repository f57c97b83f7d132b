"""Scheduler abstraction for periodic work (timeout sweeps, file polling)."""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable

logger = logging.getLogger(__name__)


class ScheduledTask(ABC):
    """Handle returned by Scheduler.schedule_repeating()."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop the task. No tick runs after this returns."""
        ...

    @property
    @abstractmethod
    def cancelled(self) -> bool: ...


class Scheduler(ABC):
    """Interface for clocks that can run a callback repeatedly."""

    @abstractmethod
    def now(self) -> float:
        """Current time in seconds."""
        ...

    @abstractmethod
    def schedule_repeating(self, interval: float, fn: Callable[[], None]) -> ScheduledTask:
        """Run *fn* every *interval* seconds until the returned task is cancelled."""
        ...


def _check_interval(interval: float) -> None:
    if interval <= 0:
        raise ValueError(f"interval must be > 0, got {interval!r}")


def _run_tick(fn: Callable[[], None]) -> None:
    try:
        fn()
    except Exception:
        logger.exception("Scheduled callback %r failed", fn)


# --- asyncio ---


class _AsyncioTask(ScheduledTask):
    def __init__(self, loop: asyncio.AbstractEventLoop, interval: float, fn: Callable[[], None]):
        self._loop = loop
        self._interval = interval
        self._fn = fn
        self._cancelled = False
        self._handle: asyncio.TimerHandle | None = loop.call_later(interval, self._tick)

    def _tick(self) -> None:
        self._handle = None
        _run_tick(self._fn)
        # Re-arm only after the body finished, so ticks never overlap
        if not self._cancelled:
            self._handle = self._loop.call_later(self._interval, self._tick)

    def cancel(self) -> None:
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class AsyncioScheduler(Scheduler):
    """Runs periodic callbacks on an asyncio event loop.

    Must be used from the loop's thread; callbacks run on the loop between
    other reactions, so tracker and reader state is never touched from two
    contexts at once.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return time.time()

    def schedule_repeating(self, interval: float, fn: Callable[[], None]) -> ScheduledTask:
        _check_interval(interval)
        return _AsyncioTask(self._get_loop(), interval, fn)


# --- virtual clock ---


class _ManualTask(ScheduledTask):
    def __init__(self, interval: float, fn: Callable[[], None]) -> None:
        self.interval = interval
        self.fn = fn
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler(Scheduler):
    """Deterministic scheduler driven by advance(). Time only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._queue: list[tuple[float, int, _ManualTask]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def schedule_repeating(self, interval: float, fn: Callable[[], None]) -> ScheduledTask:
        _check_interval(interval)
        task = _ManualTask(interval, fn)
        heapq.heappush(self._queue, (self._now + interval, next(self._seq), task))
        return task

    @property
    def pending(self) -> int:
        """Number of live scheduled tasks."""
        return sum(1 for _, _, task in self._queue if not task.cancelled)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing every tick that falls due in order."""
        if seconds < 0:
            raise ValueError(f"cannot advance by a negative amount: {seconds!r}")
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target:
            due, _, task = heapq.heappop(self._queue)
            if task.cancelled:
                continue
            self._now = due
            _run_tick(task.fn)
            if not task.cancelled:
                heapq.heappush(self._queue, (due + task.interval, next(self._seq), task))
        self._now = target
