"""
cadence: rate-limited invocation governors.

Wrap any callable so that a stream of calls turns into a controlled number
of actual invocations:

DEBOUNCE:
- Run once the calls stop for ``wait`` seconds (trailing edge)
- Optionally run on the first call of a burst (leading edge)
- Optional ``max_wait`` guarantees a run while calls keep coming

THROTTLE:
- Run at most once per ``wait`` window, with the latest arguments

CONTROL:
- ``cancel()`` drops pending work, ``flush()`` runs it now,
  ``pending()`` reports whether a run is scheduled

TIMING:
- Pluggable clock/scheduler: asyncio event loop by default,
  ``VirtualTimeline`` for deterministic tests and simulations
- ``retry`` / ``sleep`` helpers for async code

Usage:
    from cadence import debounce, make_throttled

    @debounce(0.3)
    def search(query: str) -> None:
        ...

    redraw = make_throttled(render, 0.05)
"""

from __future__ import annotations

import importlib
from typing import Any

from cadence.__version__ import __version__

_EXPORT_MAP = {
    # Construction surface
    'make_debounced': ('cadence.debouncing', 'make_debounced'),
    'debounce': ('cadence.debouncing', 'debounce'),
    'make_throttled': ('cadence.throttling', 'make_throttled'),
    'throttle': ('cadence.throttling', 'throttle'),
    # Runtime
    'Governor': ('cadence.governor', 'Governor'),
    'GovernorStats': ('cadence.governor', 'GovernorStats'),
    'GovernedFunction': ('cadence.governor', 'GovernedFunction'),
    'DebouncedFunction': ('cadence.governor', 'DebouncedFunction'),
    'ThrottledFunction': ('cadence.governor', 'ThrottledFunction'),
    # State machine
    'GovernorState': ('cadence.transitions', 'GovernorState'),
    'PendingCall': ('cadence.transitions', 'PendingCall'),
    'DebouncePolicy': ('cadence.transitions', 'DebouncePolicy'),
    'ThrottlePolicy': ('cadence.transitions', 'ThrottlePolicy'),
    'UNBOUND': ('cadence.transitions', 'UNBOUND'),
    # Configuration
    'DebounceConfig': ('cadence.governor_config', 'DebounceConfig'),
    'ThrottleConfig': ('cadence.governor_config', 'ThrottleConfig'),
    'PRESET_CONFIGS': ('cadence.governor_config', 'PRESET_CONFIGS'),
    'get_governor_config': ('cadence.governor_config', 'get_governor_config'),
    'register_governor_config': ('cadence.governor_config', 'register_governor_config'),
    # Timing
    'Clock': ('cadence.timing', 'Clock'),
    'Scheduler': ('cadence.timing', 'Scheduler'),
    'Timeline': ('cadence.timing', 'Timeline'),
    'MonotonicClock': ('cadence.timing', 'MonotonicClock'),
    'AsyncioScheduler': ('cadence.timing', 'AsyncioScheduler'),
    'VirtualTimeline': ('cadence.timing', 'VirtualTimeline'),
    # Retry
    'RetryConfig': ('cadence.retrying', 'RetryConfig'),
    'retry': ('cadence.retrying', 'retry'),
    'retry_sync': ('cadence.retrying', 'retry_sync'),
    'sleep': ('cadence.retrying', 'sleep'),
    'wait': ('cadence.retrying', 'wait'),
    # Errors
    'CadenceError': ('cadence.exceptions', 'CadenceError'),
    'ConfigurationError': ('cadence.exceptions', 'ConfigurationError'),
    'GovernorConfigError': ('cadence.exceptions', 'GovernorConfigError'),
    'InputValidationError': ('cadence.exceptions', 'InputValidationError'),
    'SchedulerError': ('cadence.exceptions', 'SchedulerError'),
}


def __getattr__(name: str) -> Any:
    """Lazily import public symbols to avoid import side effects."""
    try:
        module_name, attr_name = _EXPORT_MAP[name]
    except KeyError as exc:
        raise AttributeError(f"module 'cadence' has no attribute {name!r}") from exc
    module = importlib.import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    return sorted(set(globals()) | set(__all__))


__all__ = ["__version__", *_EXPORT_MAP]
