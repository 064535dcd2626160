"""
Pure state machine behind the debounce and throttle governors.

Every transition is a function ``(policy, state, now, ...) -> Transition``.
Nothing here reads a clock, arms a timer or calls user code; the returned
effects describe what the runtime (``cadence.governor.Governor``) must do.

Effects are ordered and ``Invoke`` always comes last, so by the time user
code runs the new state is committed and timers are armed. A wrapped
callable that re-enters its own governor sees the updated state.

Timing contract:
    The primary timer is not rescheduled on every call. When it fires while
    the quiet period is still running, ``timer_expired`` re-arms it for the
    remaining time, so the callable still runs ``wait`` after the last call:

        wait=100, calls at t=0 and t=50
        t=100  timer fires, 50 left  -> re-armed
        t=150  timer fires           -> trailing invocation with t=50 args
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Optional, Union


class _Unbound:
    """Sentinel type for calls made without a receiver."""

    _instance: Optional["_Unbound"] = None

    def __new__(cls) -> "_Unbound":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNBOUND"

    def __bool__(self) -> bool:
        return False


UNBOUND = _Unbound()


@dataclass(frozen=True)
class PendingCall:
    """Arguments (and optional receiver) of the most recent request."""

    args: tuple[Any, ...] = ()
    kwargs: dict[str, Any] = field(default_factory=dict)
    receiver: Any = UNBOUND

    @property
    def bound(self) -> bool:
        return self.receiver is not UNBOUND


@dataclass(frozen=True)
class GovernorState:
    """
    Snapshot of a governor.

    ``last_call_time`` is None until the first request; a legitimate
    timestamp of 0.0 is never treated as "no call".
    """

    last_call_time: Optional[float] = None
    last_invoke_time: float = 0.0
    pending: Optional[PendingCall] = None
    timer_armed: bool = False
    escape_armed: bool = False

    @property
    def idle(self) -> bool:
        return not (self.timer_armed or self.escape_armed)


# =============================================================================
# Effects
# =============================================================================


@dataclass(frozen=True)
class ScheduleTimer:
    """Arm the primary timer, replacing any live one."""

    delay: float


@dataclass(frozen=True)
class CancelTimer:
    """Disarm the primary timer."""


@dataclass(frozen=True)
class ScheduleEscape:
    """Arm the max-wait escape timer, replacing any live one."""

    delay: float


@dataclass(frozen=True)
class CancelEscape:
    """Disarm the max-wait escape timer."""


@dataclass(frozen=True)
class Invoke:
    """Run the wrapped callable with ``call``."""

    call: PendingCall
    edge: str  # "leading", "trailing" or "max_wait"


Effect = Union[ScheduleTimer, CancelTimer, ScheduleEscape, CancelEscape, Invoke]


@dataclass(frozen=True)
class Transition:
    """New state plus the ordered side effects that realise it."""

    state: GovernorState
    effects: tuple[Effect, ...] = ()

    @property
    def invocation(self) -> Optional[Invoke]:
        for effect in self.effects:
            if isinstance(effect, Invoke):
                return effect
        return None


# =============================================================================
# Policies
# =============================================================================


@dataclass(frozen=True)
class GovernorPolicy:
    """Shared leading/trailing configuration and invoke predicates."""

    wait: float
    leading: bool
    trailing: bool

    mode = "governor"

    @property
    def invoke_limit(self) -> Optional[float]:
        """Longest time allowed since the last invocation, if bounded."""
        return None

    @property
    def uses_escape_timer(self) -> bool:
        return False

    @property
    def invokes_when_overdue(self) -> bool:
        """Whether a call that arrives past the limit invokes immediately."""
        return False

    def should_invoke(self, state: GovernorState, now: float) -> bool:
        if state.last_call_time is None:
            return True
        since_call = now - state.last_call_time
        since_invoke = now - state.last_invoke_time
        limit = self.invoke_limit
        return (
            since_call >= self.wait
            or since_call < 0
            or (limit is not None and since_invoke >= limit)
        )

    def remaining_wait(self, state: GovernorState, now: float) -> float:
        if state.last_call_time is None:
            return 0.0
        waiting = self.wait - (now - state.last_call_time)
        limit = self.invoke_limit
        if limit is not None:
            waiting = min(waiting, limit - (now - state.last_invoke_time))
        return max(0.0, waiting)


@dataclass(frozen=True)
class DebouncePolicy(GovernorPolicy):
    """Run after ``wait`` of quiet; optionally at least every ``max_wait``."""

    leading: bool = False
    trailing: bool = True
    max_wait: Optional[float] = None

    mode = "debounce"

    @property
    def invoke_limit(self) -> Optional[float]:
        return self.max_wait

    @property
    def uses_escape_timer(self) -> bool:
        return self.max_wait is not None

    @property
    def invokes_when_overdue(self) -> bool:
        return self.max_wait is not None


@dataclass(frozen=True)
class ThrottlePolicy(GovernorPolicy):
    """Run at most once per ``wait``."""

    leading: bool = True
    trailing: bool = True

    mode = "throttle"

    @property
    def invoke_limit(self) -> Optional[float]:
        return self.wait


# =============================================================================
# Transitions
# =============================================================================


def _invoke(state: GovernorState, now: float, edge: str) -> tuple[GovernorState, Invoke]:
    call = state.pending if state.pending is not None else PendingCall()
    return replace(state, pending=None, last_invoke_time=now), Invoke(call, edge)


def leading_edge(policy: GovernorPolicy, state: GovernorState, now: float) -> Transition:
    """Start a burst: arm timers and invoke iff ``policy.leading``."""
    state = replace(state, last_invoke_time=now, timer_armed=True)
    effects: list[Effect] = [ScheduleTimer(policy.wait)]

    if policy.uses_escape_timer:
        state = replace(state, escape_armed=True)
        effects.append(ScheduleEscape(policy.invoke_limit or 0.0))

    if policy.leading:
        state, invoke = _invoke(state, now, "leading")
        effects.append(invoke)

    return Transition(state, tuple(effects))


def trailing_edge(policy: GovernorPolicy, state: GovernorState, now: float) -> Transition:
    """End a burst: disarm both timers and invoke pending work iff ``policy.trailing``."""
    effects: list[Effect] = []
    if state.timer_armed:
        effects.append(CancelTimer())
    if state.escape_armed:
        effects.append(CancelEscape())
    state = replace(state, timer_armed=False, escape_armed=False)

    if policy.trailing and state.pending is not None:
        state, invoke = _invoke(state, now, "trailing")
        effects.append(invoke)
        return Transition(state, tuple(effects))

    return Transition(replace(state, pending=None), tuple(effects))


def on_call(
    policy: GovernorPolicy, state: GovernorState, now: float, call: PendingCall
) -> Transition:
    """Record an invocation request and decide what it triggers."""
    is_invoking = policy.should_invoke(state, now)
    state = replace(state, pending=call, last_call_time=now)

    if is_invoking:
        if not state.timer_armed:
            return leading_edge(policy, state, now)
        if policy.invokes_when_overdue:
            effects: list[Effect] = [ScheduleTimer(policy.wait)]
            if state.escape_armed:
                effects.append(CancelEscape())
            state = replace(state, escape_armed=False)
            if not (policy.leading or policy.trailing):
                # Neither edge enabled: the slot is consumed and the call swallowed
                state = replace(state, pending=None, last_invoke_time=now)
                return Transition(state, tuple(effects))
            state, invoke = _invoke(state, now, "max_wait")
            effects.append(invoke)
            return Transition(state, tuple(effects))

    if not state.timer_armed:
        return Transition(replace(state, timer_armed=True), (ScheduleTimer(policy.wait),))

    return Transition(state)


def timer_expired(policy: GovernorPolicy, state: GovernorState, now: float) -> Transition:
    """Primary timer fired: finish the burst or re-arm for the remaining wait."""
    if policy.should_invoke(state, now):
        return trailing_edge(policy, state, now)
    return Transition(
        replace(state, timer_armed=True),
        (ScheduleTimer(policy.remaining_wait(state, now)),),
    )


def escape_expired(policy: GovernorPolicy, state: GovernorState, now: float) -> Transition:
    """Max-wait timer fired: force pending trailing work through."""
    state = replace(state, escape_armed=False)
    if state.pending is not None and policy.trailing:
        return trailing_edge(policy, state, now)
    return Transition(state)


def cancel(policy: GovernorPolicy, state: GovernorState) -> Transition:
    """Drop all pending work and return to a freshly constructed state."""
    effects: list[Effect] = []
    if state.timer_armed:
        effects.append(CancelTimer())
    if state.escape_armed:
        effects.append(CancelEscape())
    return Transition(GovernorState(), tuple(effects))


def flush(policy: GovernorPolicy, state: GovernorState, now: float) -> Transition:
    """Run pending trailing work now, as if the timer had fired."""
    if state.idle:
        return Transition(state)
    return trailing_edge(policy, state, now)


__all__ = [
    "UNBOUND",
    "PendingCall",
    "GovernorState",
    "ScheduleTimer",
    "CancelTimer",
    "ScheduleEscape",
    "CancelEscape",
    "Invoke",
    "Effect",
    "Transition",
    "GovernorPolicy",
    "DebouncePolicy",
    "ThrottlePolicy",
    "leading_edge",
    "trailing_edge",
    "on_call",
    "timer_expired",
    "escape_expired",
    "cancel",
    "flush",
]
