"""
transfer/clock.py - Schedulable time source
AsyncioClock drives real sessions; VirtualClock lets tests advance time by hand
"""

import asyncio
import heapq
import itertools
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple
import logging

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


class TimerHandle:
    """Cancellable scheduled callback"""

    def __init__(self):
        self.cancelled = False
        self._on_cancel: Optional[Callback] = None

    def cancel(self):
        if self.cancelled:
            return
        self.cancelled = True
        if self._on_cancel is not None:
            self._on_cancel()


class Clock(ABC):
    """Time source with one-shot and recurring callbacks"""

    @abstractmethod
    def now(self) -> datetime:
        pass

    @abstractmethod
    def call_later(self, delay: float, callback: Callback) -> TimerHandle:
        pass

    def call_every(self, interval: float, callback: Callback) -> TimerHandle:
        """Run callback every interval seconds until the handle is cancelled"""
        handle = TimerHandle()

        def fire():
            if handle.cancelled:
                return
            callback()
            if not handle.cancelled:
                inner = self.call_later(interval, fire)
                handle._on_cancel = inner.cancel

        first = self.call_later(interval, fire)
        handle._on_cancel = first.cancel
        return handle


class AsyncioClock(Clock):
    """Wall clock backed by the running event loop"""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> datetime:
        return datetime.now()

    def call_later(self, delay: float, callback: Callback) -> TimerHandle:
        handle = TimerHandle()
        timer = self.loop.call_later(delay, callback)
        handle._on_cancel = timer.cancel
        return handle


class VirtualClock(Clock):
    """Manually advanced clock; callbacks run inside advance()"""

    def __init__(self, start: Optional[datetime] = None):
        self._start = start or datetime(2024, 1, 1)
        self._elapsed = 0.0
        self._queue: List[Tuple[float, int, TimerHandle, Callback]] = []
        self._counter = itertools.count()

    @property
    def elapsed(self) -> float:
        return self._elapsed

    def now(self) -> datetime:
        return self._start + timedelta(seconds=self._elapsed)

    def call_later(self, delay: float, callback: Callback) -> TimerHandle:
        handle = TimerHandle()
        heapq.heappush(self._queue, (self._elapsed + max(delay, 0.0), next(self._counter), handle, callback))
        return handle

    def advance(self, seconds: float) -> int:
        """Move time forward, firing due callbacks in order; returns how many ran"""
        target = self._elapsed + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, handle, callback = heapq.heappop(self._queue)
            self._elapsed = due
            if handle.cancelled:
                continue
            callback()
            fired += 1
        self._elapsed = target
        return fired

    def run_until_idle(self, limit: int = 10000) -> int:
        """Fire callbacks until nothing is scheduled"""
        fired = 0
        while self._queue:
            if fired >= limit:
                raise RuntimeError(f"Clock still busy after {limit} callbacks")
            due = self._queue[0][0]
            fired += self.advance(due - self._elapsed)
        return fired

    @property
    def pending(self) -> int:
        return sum(1 for _, _, handle, _ in self._queue if not handle.cancelled)
