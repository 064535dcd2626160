"""
Debounce: run a callable only after a quiet period.

Usage:
    from cadence import debounce, make_debounced

    # Factory form
    save = make_debounced(write_to_disk, 1.0, max_wait=10.0)
    save(doc)          # deferred
    save.flush()       # run pending work now
    save.cancel()      # drop pending work

    # Decorator form (inside a running event loop by default)
    @debounce(0.3)
    def search(query: str) -> None:
        ...

Behaviour:
    - leading=False, trailing=True (default): one invocation, ``wait`` after
      the last call of a burst, with that call's arguments.
    - leading=True: the first call of a burst invokes immediately; with
      trailing=True a second invocation follows the burst if it had more
      than one call.
    - max_wait: while calls keep arriving, invoke at least every ``max_wait``.
    - leading=False, trailing=False: calls are swallowed.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, TypeVar

from cadence.exceptions import GovernorConfigError
from cadence.governor import DebouncedFunction, ErrorHandler, Governor
from cadence.governor_config import DebounceConfig
from cadence.timing import Clock, Scheduler

R = TypeVar("R")


def _resolve_config(
    wait: Optional[float],
    leading: Optional[bool],
    trailing: Optional[bool],
    max_wait: Optional[float],
    config: Optional[DebounceConfig],
) -> DebounceConfig:
    if config is not None:
        if not isinstance(config, DebounceConfig):
            raise GovernorConfigError(
                f"expected DebounceConfig, got {type(config).__name__}", component="debounce"
            )
        if any(v is not None for v in (wait, leading, trailing, max_wait)):
            raise GovernorConfigError(
                "pass either config or explicit timing options, not both", component="debounce"
            )
        return config
    if wait is None:
        raise GovernorConfigError("wait is required", component="debounce")
    return DebounceConfig(
        wait=wait,
        leading=False if leading is None else leading,
        trailing=True if trailing is None else trailing,
        max_wait=max_wait,
    )


def make_debounced(
    func: Callable[..., R],
    wait: Optional[float] = None,
    *,
    leading: Optional[bool] = None,
    trailing: Optional[bool] = None,
    max_wait: Optional[float] = None,
    config: Optional[DebounceConfig] = None,
    clock: Optional[Clock] = None,
    scheduler: Optional[Scheduler] = None,
    on_error: Optional[ErrorHandler] = None,
    name: Optional[str] = None,
) -> DebouncedFunction[R]:
    """
    Create a debounced wrapper around ``func``.

    Args:
        func: Callable to debounce
        wait: Quiet period in seconds
        leading: Invoke on the leading edge (default False)
        trailing: Invoke on the trailing edge (default True)
        max_wait: Upper bound on how long a burst may defer invocation
        config: Prebuilt DebounceConfig, instead of the timing options
        clock: Time source (see Governor)
        scheduler: Timer primitive (see Governor)
        on_error: Receives exceptions from timer-fired invocations
        name: Label used in logs

    Returns:
        DebouncedFunction with cancel(), flush() and pending()

    Raises:
        GovernorConfigError: On invalid or conflicting configuration
    """
    resolved = _resolve_config(wait, leading, trailing, max_wait, config)
    governor = Governor(
        func,
        resolved.to_policy(),
        clock=clock,
        scheduler=scheduler,
        on_error=on_error,
        name=name,
    )
    return DebouncedFunction(governor, func)


def debounce(
    wait: Optional[float] = None, **options: Any
) -> Callable[[Callable[..., R]], DebouncedFunction[R]]:
    """Decorator form of ``make_debounced``; options are passed through."""
    # Fail at decoration time rather than on first call
    _resolve_config(
        wait,
        options.get("leading"),
        options.get("trailing"),
        options.get("max_wait"),
        options.get("config"),
    )

    def decorator(func: Callable[..., R]) -> DebouncedFunction[R]:
        return make_debounced(func, wait, **options)

    return decorator


__all__ = ["make_debounced", "debounce", "DebouncedFunction"]
