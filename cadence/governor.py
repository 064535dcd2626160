"""
Runtime for the debounce and throttle invocation governors.

A ``Governor`` owns one wrapped callable, its ``GovernorState``, the two timer
handles (primary and max-wait escape) and the cached result of the last
invocation. It feeds every request and timer expiry through the pure
functions in ``cadence.transitions`` and applies the effects they return.

``GovernedFunction`` is the user-facing wrapper returned by
``make_debounced``/``make_throttled``: call it like the original function and
use ``cancel()``, ``flush()`` and ``pending()`` to control it.

Error handling:
    Leading and flushed invocations raise straight into the caller. Trailing
    invocations fire from a timer and have no caller; their exceptions go to
    ``on_error`` when given, otherwise they are re-raised into the scheduler
    (the asyncio loop's exception handler, or whoever drives a
    ``VirtualTimeline``). Governor state is committed before user code runs,
    so a failing callable never leaves work stuck in the pending state.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
from dataclasses import asdict, dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

from cadence import transitions
from cadence.exceptions import SchedulerError
from cadence.logging_config import FIELDS_ATTR
from cadence.timing import AsyncioScheduler, Clock, MonotonicClock, Scheduler
from cadence.transitions import (
    UNBOUND,
    CancelEscape,
    CancelTimer,
    GovernorPolicy,
    GovernorState,
    Invoke,
    PendingCall,
    ScheduleEscape,
    ScheduleTimer,
    Transition,
)

logger = logging.getLogger(__name__)

R = TypeVar("R")
ErrorHandler = Callable[[BaseException], Any]


@dataclass
class GovernorStats:
    """Counters for a single governor."""

    calls: int = 0
    leading_invocations: int = 0
    trailing_invocations: int = 0
    max_wait_invocations: int = 0
    cancellations: int = 0
    flushes: int = 0
    errors: int = 0

    @property
    def invocations(self) -> int:
        return self.leading_invocations + self.trailing_invocations + self.max_wait_invocations

    def to_dict(self) -> dict[str, int]:
        return {**asdict(self), "invocations": self.invocations}


class Governor(Generic[R]):
    """
    Controls when a wrapped callable actually runs.

    Args:
        func: Callable to govern
        policy: DebouncePolicy or ThrottlePolicy
        clock: Time source (defaults to the scheduler when it is also a
            Clock, otherwise MonotonicClock)
        scheduler: Timer primitive (defaults to AsyncioScheduler)
        on_error: Receives exceptions from timer-fired invocations
        name: Label used in logs (defaults to the callable's qualified name)
    """

    def __init__(
        self,
        func: Callable[..., R],
        policy: GovernorPolicy,
        *,
        clock: Optional[Clock] = None,
        scheduler: Optional[Scheduler] = None,
        on_error: Optional[ErrorHandler] = None,
        name: Optional[str] = None,
    ):
        if not callable(func):
            raise TypeError(f"expected a callable, got {type(func).__name__}")
        self._func = func
        self._policy = policy
        self._scheduler: Scheduler = scheduler if scheduler is not None else AsyncioScheduler()
        if clock is None:
            clock = self._scheduler if isinstance(self._scheduler, Clock) else MonotonicClock()
        self._clock: Clock = clock
        self._on_error = on_error
        self.name = name or getattr(func, "__qualname__", None) or repr(func)

        self._state = GovernorState()
        self._result: Optional[R] = None
        self._timer: Any = None
        self._escape: Any = None
        # Bumped on every (re)arm/disarm; callbacks from older timers are inert
        self._timer_generation = 0
        self._escape_generation = 0
        self._stats = GovernorStats()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def policy(self) -> GovernorPolicy:
        return self._policy

    @property
    def state(self) -> GovernorState:
        return self._state

    @property
    def last_result(self) -> Optional[R]:
        return self._result

    def pending(self) -> bool:
        """True while the primary timer is armed."""
        return self._state.timer_armed

    def stats(self) -> GovernorStats:
        return GovernorStats(**asdict(self._stats))

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def call(
        self,
        args: tuple[Any, ...] = (),
        kwargs: Optional[dict[str, Any]] = None,
        receiver: Any = UNBOUND,
    ) -> Optional[R]:
        """Submit an invocation request. Returns a fresh or the cached result."""
        self._stats.calls += 1
        now = self._clock.now()
        call = PendingCall(args=tuple(args), kwargs=dict(kwargs or {}), receiver=receiver)
        return self._apply(transitions.on_call(self._policy, self._state, now, call), now)

    def cancel(self) -> None:
        """Drop pending work, disarm every timer and reset call history."""
        if not self._state.idle or self._state.pending is not None:
            self._stats.cancellations += 1
            logger.debug(f"Governor {self.name!r} cancelled", extra=self._log_extra())
        self._apply(transitions.cancel(self._policy, self._state))

    def flush(self) -> Optional[R]:
        """Run pending trailing work now; return its result or the cached one."""
        if self._state.idle:
            return self._result
        self._stats.flushes += 1
        now = self._clock.now()
        logger.debug(f"Governor {self.name!r} flushed", extra=self._log_extra(now=now))
        return self._apply(transitions.flush(self._policy, self._state, now), now)

    # ------------------------------------------------------------------
    # Timer callbacks
    # ------------------------------------------------------------------

    def _on_timer(self, generation: int) -> None:
        if generation != self._timer_generation:
            return
        self._timer = None
        now = self._clock.now()
        self._run_from_timer(transitions.timer_expired(self._policy, self._state, now), now)

    def _on_escape(self, generation: int) -> None:
        if generation != self._escape_generation:
            return
        self._escape = None
        now = self._clock.now()
        self._run_from_timer(transitions.escape_expired(self._policy, self._state, now), now)

    def _run_from_timer(self, transition: Transition, now: float) -> None:
        try:
            self._apply(transition, now, from_timer=True)
        except Exception as exc:
            if self._on_error is None:
                raise
            self._report_error(self._on_error, exc)

    def _log_extra(self, **fields: Any) -> dict[str, Any]:
        return {FIELDS_ATTR: {"governor": self.name, "mode": self._policy.mode, **fields}}

    def _report_error(self, handler: ErrorHandler, exc: BaseException) -> None:
        logger.debug(
            f"Trailing invocation failed: {type(exc).__name__}: {exc}",
            extra=self._log_extra(),
        )
        handler(exc)

    # ------------------------------------------------------------------
    # Effect application
    # ------------------------------------------------------------------

    def _apply(
        self, transition: Transition, now: Optional[float] = None, from_timer: bool = False
    ) -> Optional[R]:
        self._state = transition.state
        for effect in transition.effects:
            if isinstance(effect, ScheduleTimer):
                self._arm_timer(effect.delay)
            elif isinstance(effect, CancelTimer):
                self._disarm_timer()
            elif isinstance(effect, ScheduleEscape):
                self._arm_escape(effect.delay)
            elif isinstance(effect, CancelEscape):
                self._disarm_escape()
            elif isinstance(effect, Invoke):
                return self._invoke(effect, now, from_timer)
        return self._result

    def _arm_timer(self, delay: float) -> None:
        self._disarm_timer()
        generation = self._timer_generation
        self._timer = self._scheduler.schedule(delay, functools.partial(self._on_timer, generation))

    def _disarm_timer(self) -> None:
        self._timer_generation += 1
        if self._timer is not None:
            self._scheduler.cancel(self._timer)
            self._timer = None

    def _arm_escape(self, delay: float) -> None:
        self._disarm_escape()
        generation = self._escape_generation
        self._escape = self._scheduler.schedule(delay, functools.partial(self._on_escape, generation))

    def _disarm_escape(self) -> None:
        self._escape_generation += 1
        if self._escape is not None:
            self._scheduler.cancel(self._escape)
            self._escape = None

    def _invoke(self, effect: Invoke, now: Optional[float], from_timer: bool) -> Optional[R]:
        call = effect.call
        if effect.edge == "leading":
            self._stats.leading_invocations += 1
        elif effect.edge == "max_wait":
            self._stats.max_wait_invocations += 1
        else:
            self._stats.trailing_invocations += 1
        logger.debug(f"Invoking on {effect.edge} edge", extra=self._log_extra(now=now))

        try:
            if call.bound:
                result = self._func(call.receiver, *call.args, **call.kwargs)
            else:
                result = self._func(*call.args, **call.kwargs)
        except Exception:
            self._stats.errors += 1
            raise

        if inspect.isawaitable(result):
            task = self._schedule_awaitable(result)
            # Leading and flushed tasks belong to the caller
            if from_timer:
                task.add_done_callback(self._on_task_done)
            result = task
        self._result = result
        return result

    def _schedule_awaitable(self, result: Any) -> asyncio.Future:
        """Run an awaitable result as a task on the running loop."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            self._stats.errors += 1
            if inspect.iscoroutine(result):
                result.close()
            raise SchedulerError(
                f"{self.name!r} returned an awaitable outside a running event loop"
            ) from exc
        if inspect.iscoroutine(result):
            return loop.create_task(result)
        return asyncio.ensure_future(result, loop=loop)

    def _on_task_done(self, task: asyncio.Future) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        self._stats.errors += 1
        if self._on_error is not None:
            self._report_error(self._on_error, exc)
            return
        task.get_loop().call_exception_handler(
            {
                "message": f"Governed coroutine {self.name!r} failed",
                "exception": exc,
                "future": task,
            }
        )


class GovernedFunction(Generic[R]):
    """
    Callable wrapper around a ``Governor``.

    Calling it submits a request with the given arguments. When used as a
    method decorator the instance is passed through as the receiver; all
    instances share one governor and the latest caller's receiver wins.
    """

    def __init__(self, governor: Governor[R], func: Callable[..., R]):
        functools.update_wrapper(self, func)
        self._governor = governor

    @property
    def governor(self) -> Governor[R]:
        return self._governor

    def __call__(self, *args: Any, **kwargs: Any) -> Optional[R]:
        return self._governor.call(args, kwargs)

    def __get__(self, instance: Any, owner: Optional[type] = None) -> Any:
        if instance is None:
            return self
        return BoundGovernedFunction(self, instance)

    def cancel(self) -> None:
        """Cancel any pending invocation."""
        self._governor.cancel()

    def flush(self) -> Optional[R]:
        """Immediately run any pending invocation."""
        return self._governor.flush()

    def pending(self) -> bool:
        """Whether an invocation is currently scheduled."""
        return self._governor.pending()

    def stats(self) -> GovernorStats:
        return self._governor.stats()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._governor.name} {self._governor.policy!r}>"


class BoundGovernedFunction(Generic[R]):
    """A ``GovernedFunction`` bound to a receiver by attribute access."""

    def __init__(self, governed: GovernedFunction[R], receiver: Any):
        functools.update_wrapper(self, governed.__wrapped__)
        self._governed = governed
        self._receiver = receiver

    def __call__(self, *args: Any, **kwargs: Any) -> Optional[R]:
        return self._governed.governor.call(args, kwargs, receiver=self._receiver)

    def cancel(self) -> None:
        self._governed.cancel()

    def flush(self) -> Optional[R]:
        return self._governed.flush()

    def pending(self) -> bool:
        return self._governed.pending()

    def stats(self) -> GovernorStats:
        return self._governed.stats()


class DebouncedFunction(GovernedFunction[R]):
    """Governed wrapper returned by ``make_debounced``."""


class ThrottledFunction(GovernedFunction[R]):
    """Governed wrapper returned by ``make_throttled``."""


__all__ = [
    "Governor",
    "GovernorStats",
    "GovernedFunction",
    "BoundGovernedFunction",
    "DebouncedFunction",
    "ThrottledFunction",
    "ErrorHandler",
]
