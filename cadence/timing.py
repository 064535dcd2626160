"""
Clock and timer primitives used by the invocation governors.

Governors never touch ``time`` or ``asyncio`` directly; they read a ``Clock``
and arm one-shot timers through a ``Scheduler``. Three implementations are
provided:

- MonotonicClock: ``time.monotonic()``
- AsyncioScheduler: ``loop.call_later`` on the running (or a bound) event loop
- VirtualTimeline: deterministic clock + scheduler driven by ``advance()``

Usage:
    timeline = VirtualTimeline()
    handle = timeline.schedule(1.5, callback)
    timeline.advance(1.0)   # nothing fires
    timeline.cancel(handle) # idempotent
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import math
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from cadence.exceptions import InputValidationError, SchedulerError

TimerCallback = Callable[[], Any]


@runtime_checkable
class Clock(Protocol):
    """Protocol for monotonically non-decreasing time sources."""

    def now(self) -> float:
        """Return the current time in seconds."""
        ...


@runtime_checkable
class Scheduler(Protocol):
    """Protocol for one-shot, cancellable timers."""

    def schedule(self, delay: float, callback: TimerCallback) -> Any:
        """Run ``callback()`` once after ``delay`` seconds. Returns a handle."""
        ...

    def cancel(self, handle: Any) -> None:
        """Cancel a handle. Safe on fired or already-cancelled handles."""
        ...


@runtime_checkable
class Timeline(Clock, Scheduler, Protocol):
    """A clock and scheduler sharing one notion of time."""


class MonotonicClock:
    """Clock backed by ``time.monotonic``."""

    def now(self) -> float:
        return time.monotonic()


class AsyncioScheduler:
    """
    Scheduler backed by an asyncio event loop.

    Timers run on the loop thread, one at a time, which gives governors the
    single-threaded cooperative model they rely on. When no loop is bound the
    running loop is looked up on every ``schedule`` call.

    Raises:
        SchedulerError: If no loop is bound and none is running
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError as exc:
            raise SchedulerError(
                "no running event loop; call from async code or pass a scheduler"
            ) from exc

    def now(self) -> float:
        return self._get_loop().time()

    def schedule(self, delay: float, callback: TimerCallback) -> asyncio.TimerHandle:
        return self._get_loop().call_later(max(0.0, delay), callback)

    def cancel(self, handle: Any) -> None:
        if handle is not None:
            handle.cancel()


@dataclass(order=True)
class VirtualTimer:
    """Handle returned by ``VirtualTimeline.schedule``."""

    deadline: float
    seq: int
    callback: TimerCallback = field(compare=False)
    cancelled: bool = field(default=False, compare=False)
    fired: bool = field(default=False, compare=False)

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)


class VirtualTimeline:
    """
    Deterministic clock and scheduler for tests and simulations.

    Time only moves when ``advance`` is called. Due timers fire in deadline
    order (ties in scheduling order) and ``now()`` reads each timer's deadline
    while its callback runs. Timers scheduled by a callback fire within the
    same ``advance`` when they come due inside the window.

    Exceptions raised by callbacks propagate out of ``advance``; the clock
    stays at the failing timer's deadline.
    """

    def __init__(self, start: float = 0.0):
        self._now = float(start)
        self._queue: list[VirtualTimer] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self._now

    def schedule(self, delay: float, callback: TimerCallback) -> VirtualTimer:
        timer = VirtualTimer(
            deadline=self._now + max(0.0, delay),
            seq=next(self._counter),
            callback=callback,
        )
        heapq.heappush(self._queue, timer)
        return timer

    def cancel(self, handle: Any) -> None:
        if isinstance(handle, VirtualTimer):
            handle.cancelled = True

    @property
    def pending_count(self) -> int:
        """Number of timers that have neither fired nor been cancelled."""
        return sum(1 for timer in self._queue if timer.active)

    def next_deadline(self) -> Optional[float]:
        """Deadline of the earliest live timer, or None when idle."""
        self._discard_inactive()
        return self._queue[0].deadline if self._queue else None

    def _discard_inactive(self) -> None:
        while self._queue and not self._queue[0].active:
            heapq.heappop(self._queue)

    def advance(self, seconds: float) -> int:
        """
        Move the clock forward, firing every timer that comes due.

        Args:
            seconds: Non-negative amount of time to advance

        Returns:
            Number of callbacks fired
        """
        if seconds < 0 or math.isnan(seconds):
            raise InputValidationError("seconds", "cannot advance a clock backwards")
        return self.advance_to(self._now + seconds)

    def advance_to(self, target: float) -> int:
        """Advance the clock to an absolute time, firing due timers."""
        if target < self._now:
            raise InputValidationError("target", f"{target} is before now ({self._now})")

        fired = 0
        while True:
            self._discard_inactive()
            if not self._queue or self._queue[0].deadline > target:
                break
            timer = heapq.heappop(self._queue)
            self._now = max(self._now, timer.deadline)
            timer.fired = True
            fired += 1
            timer.callback()
        self._now = target
        return fired

    def run_until_idle(self, limit: int = 10_000) -> int:
        """Fire timers until none remain. Returns the number fired."""
        fired = 0
        while (deadline := self.next_deadline()) is not None:
            if fired >= limit:
                raise SchedulerError(f"timeline still busy after {limit} callbacks")
            fired += self.advance_to(deadline)
        return fired


__all__ = [
    "Clock",
    "Scheduler",
    "Timeline",
    "TimerCallback",
    "MonotonicClock",
    "AsyncioScheduler",
    "VirtualTimer",
    "VirtualTimeline",
]
