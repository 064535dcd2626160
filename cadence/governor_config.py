"""
Governor configuration module.

Provides validated debounce/throttle configurations, named presets for common
UI and I/O patterns, and environment variable overrides.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from numbers import Real
from typing import Any, Optional, Union

from cadence.exceptions import GovernorConfigError
from cadence.transitions import DebouncePolicy, ThrottlePolicy

# Marks an override argument that was not passed
_UNSET: Any = object()


def _validate_duration(name: str, value: object) -> None:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise GovernorConfigError(f"{name} must be a number, got {type(value).__name__}")
    if math.isnan(value) or math.isinf(value):
        raise GovernorConfigError(f"{name} must be finite")
    if value < 0:
        raise GovernorConfigError(f"{name} must be non-negative")


@dataclass(frozen=True)
class DebounceConfig:
    """Configuration for a debounced governor.

    Attributes:
        wait: Quiet period in seconds before the trailing invocation.
        leading: Invoke on the first call of a burst.
        trailing: Invoke once the quiet period completes.
        max_wait: Longest a burst may defer invocation, in seconds.

    Example:
        # Save at most 10s after the first edit, 1s after the last one
        autosave = DebounceConfig(wait=1.0, max_wait=10.0)
    """

    wait: float
    leading: bool = False
    trailing: bool = True
    max_wait: Optional[float] = None

    def __post_init__(self) -> None:
        """Validate configuration values."""
        _validate_duration("wait", self.wait)
        if self.max_wait is not None:
            _validate_duration("max_wait", self.max_wait)

    def with_overrides(
        self,
        wait: Optional[float] = None,
        leading: Optional[bool] = None,
        trailing: Optional[bool] = None,
        max_wait: Any = _UNSET,
    ) -> DebounceConfig:
        """Create a new config with specified overrides.

        Pass ``max_wait=None`` to drop an existing max_wait.
        """
        return DebounceConfig(
            wait=wait if wait is not None else self.wait,
            leading=leading if leading is not None else self.leading,
            trailing=trailing if trailing is not None else self.trailing,
            max_wait=self.max_wait if max_wait is _UNSET else max_wait,
        )

    def scaled(self, factor: float) -> DebounceConfig:
        """Return a copy with every duration multiplied by ``factor``."""
        return DebounceConfig(
            wait=self.wait * factor,
            leading=self.leading,
            trailing=self.trailing,
            max_wait=self.max_wait * factor if self.max_wait is not None else None,
        )

    def to_policy(self) -> DebouncePolicy:
        return DebouncePolicy(
            wait=float(self.wait),
            leading=self.leading,
            trailing=self.trailing,
            max_wait=float(self.max_wait) if self.max_wait is not None else None,
        )


@dataclass(frozen=True)
class ThrottleConfig:
    """Configuration for a throttled governor.

    Attributes:
        wait: Window in seconds; at most one invocation per window.
        leading: Invoke on the first call of a window.
        trailing: Invoke with the latest arguments when the window closes.
    """

    wait: float
    leading: bool = True
    trailing: bool = True

    def __post_init__(self) -> None:
        """Validate configuration values."""
        _validate_duration("wait", self.wait)

    def with_overrides(
        self,
        wait: Optional[float] = None,
        leading: Optional[bool] = None,
        trailing: Optional[bool] = None,
    ) -> ThrottleConfig:
        """Create a new config with specified overrides."""
        return ThrottleConfig(
            wait=wait if wait is not None else self.wait,
            leading=leading if leading is not None else self.leading,
            trailing=trailing if trailing is not None else self.trailing,
        )

    def scaled(self, factor: float) -> ThrottleConfig:
        """Return a copy with the window multiplied by ``factor``."""
        return ThrottleConfig(wait=self.wait * factor, leading=self.leading, trailing=self.trailing)

    def to_policy(self) -> ThrottlePolicy:
        return ThrottlePolicy(wait=float(self.wait), leading=self.leading, trailing=self.trailing)


GovernorConfig = Union[DebounceConfig, ThrottleConfig]


# Named presets for common call patterns
PRESET_CONFIGS: dict[str, GovernorConfig] = {
    # Search-as-you-type: wait for the user to pause
    "search": DebounceConfig(wait=0.3),
    # Autosave: quiet period, but never hold edits for more than 10s
    "autosave": DebounceConfig(wait=1.0, max_wait=10.0),
    # Resize handlers: steady cadence while dragging
    "resize": ThrottleConfig(wait=0.1),
    # Scroll handlers: roughly frame-rate bound
    "scroll": ThrottleConfig(wait=0.05),
    "default_debounce": DebounceConfig(wait=0.25),
    "default_throttle": ThrottleConfig(wait=0.25),
}


def _get_env_float(name: str) -> Optional[float]:
    """Get a float from environment variable, or None if not set/invalid."""
    value = os.environ.get(name)
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def get_wait_scale() -> float:
    """Multiplier from CADENCE_WAIT_SCALE, or 1.0 when unset or invalid."""
    scale = _get_env_float("CADENCE_WAIT_SCALE")
    if scale is None or not math.isfinite(scale) or scale <= 0:
        return 1.0
    return scale


def get_governor_config(name: str) -> GovernorConfig:
    """Get a governor configuration by name.

    Resolution order:
    1. Registered configs (see register_governor_config)
    2. Built-in presets (PRESET_CONFIGS)

    The CADENCE_WAIT_SCALE environment variable, when set to a positive
    number, multiplies every duration of the resolved config.

    Args:
        name: Registered or preset config name (e.g., "search", "autosave")

    Returns:
        DebounceConfig or ThrottleConfig

    Raises:
        GovernorConfigError: If the name is unknown

    Example:
        os.environ["CADENCE_WAIT_SCALE"] = "0.1"
        config = get_governor_config("autosave")
        # config.wait == 0.1, config.max_wait == 1.0
    """
    if name in _REGISTERED_CONFIGS:
        config = _REGISTERED_CONFIGS[name]
    elif name in PRESET_CONFIGS:
        config = PRESET_CONFIGS[name]
    else:
        raise GovernorConfigError(f"unknown governor config {name!r}", component="registry")

    scale = get_wait_scale()
    if scale != 1.0:
        return config.scaled(scale)
    return config


# Application-specific configurations (can be extended at runtime)
_REGISTERED_CONFIGS: dict[str, GovernorConfig] = {}


def register_governor_config(name: str, config: GovernorConfig) -> None:
    """Register a named configuration, shadowing any preset of the same name."""
    if not isinstance(config, (DebounceConfig, ThrottleConfig)):
        raise GovernorConfigError(
            f"expected DebounceConfig or ThrottleConfig, got {type(config).__name__}",
            component="registry",
        )
    _REGISTERED_CONFIGS[name] = config


def unregister_governor_config(name: str) -> bool:
    """Remove a registered configuration.

    Returns:
        True if the name was registered and removed, False otherwise
    """
    if name in _REGISTERED_CONFIGS:
        del _REGISTERED_CONFIGS[name]
        return True
    return False


def get_registered_governor_configs() -> dict[str, GovernorConfig]:
    """Get a copy of all registered configurations."""
    return dict(_REGISTERED_CONFIGS)


def clear_governor_configs() -> None:
    """Clear all registered configurations. Useful for testing."""
    _REGISTERED_CONFIGS.clear()
