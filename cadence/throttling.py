"""
Throttle: run a callable at most once per window.

Usage:
    from cadence import throttle, make_throttled

    on_scroll = make_throttled(redraw, 0.05)

    @throttle(1.0, leading=False)
    def report(progress: float) -> None:
        ...

Under continuous calls a throttled function with the defaults
(leading=True, trailing=True) runs at the start of the burst and then once
per window, each time with the latest arguments.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, TypeVar

from cadence.exceptions import GovernorConfigError
from cadence.governor import ErrorHandler, Governor, ThrottledFunction
from cadence.governor_config import ThrottleConfig
from cadence.timing import Clock, Scheduler

R = TypeVar("R")


def _resolve_config(
    wait: Optional[float],
    leading: Optional[bool],
    trailing: Optional[bool],
    config: Optional[ThrottleConfig],
) -> ThrottleConfig:
    if config is not None:
        if not isinstance(config, ThrottleConfig):
            raise GovernorConfigError(
                f"expected ThrottleConfig, got {type(config).__name__}", component="throttle"
            )
        if any(v is not None for v in (wait, leading, trailing)):
            raise GovernorConfigError(
                "pass either config or explicit timing options, not both", component="throttle"
            )
        return config
    if wait is None:
        raise GovernorConfigError("wait is required", component="throttle")
    return ThrottleConfig(
        wait=wait,
        leading=True if leading is None else leading,
        trailing=True if trailing is None else trailing,
    )


def make_throttled(
    func: Callable[..., R],
    wait: Optional[float] = None,
    *,
    leading: Optional[bool] = None,
    trailing: Optional[bool] = None,
    config: Optional[ThrottleConfig] = None,
    clock: Optional[Clock] = None,
    scheduler: Optional[Scheduler] = None,
    on_error: Optional[ErrorHandler] = None,
    name: Optional[str] = None,
) -> ThrottledFunction[R]:
    """
    Create a throttled wrapper around ``func``.

    Args:
        func: Callable to throttle
        wait: Window in seconds
        leading: Invoke on the leading edge (default True)
        trailing: Invoke on the trailing edge (default True)
        config: Prebuilt ThrottleConfig, instead of the timing options
        clock: Time source (see Governor)
        scheduler: Timer primitive (see Governor)
        on_error: Receives exceptions from timer-fired invocations
        name: Label used in logs

    Returns:
        ThrottledFunction with cancel(), flush() and pending()
    """
    resolved = _resolve_config(wait, leading, trailing, config)
    governor = Governor(
        func,
        resolved.to_policy(),
        clock=clock,
        scheduler=scheduler,
        on_error=on_error,
        name=name,
    )
    return ThrottledFunction(governor, func)


def throttle(
    wait: Optional[float] = None, **options: Any
) -> Callable[[Callable[..., R]], ThrottledFunction[R]]:
    """Decorator form of ``make_throttled``; options are passed through."""
    _resolve_config(wait, options.get("leading"), options.get("trailing"), options.get("config"))

    def decorator(func: Callable[..., R]) -> ThrottledFunction[R]:
        return make_throttled(func, wait, **options)

    return decorator


__all__ = ["make_throttled", "throttle", "ThrottledFunction"]
