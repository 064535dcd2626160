"""
Custom exception types for cadence.

This module defines the hierarchy of exceptions raised by the library itself.
Exceptions raised by a governed callable are never wrapped: they propagate
unchanged to whichever caller triggered the invocation.

Using specific exception types enables:
- Failing fast on invalid governor configuration
- Telling library errors apart from errors in user callables
- Catching every cadence error with a single handler
"""

from __future__ import annotations

from typing import Any


class CadenceError(Exception):
    """Base exception for all cadence errors.

    All custom exceptions in cadence inherit from this class
    to enable catching all library errors with a single handler.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


# ============================================================================
# Configuration Errors
# ============================================================================


class ConfigurationError(CadenceError):
    """Raised when a component's configuration is missing or invalid."""

    def __init__(self, component: str, reason: str):
        super().__init__(
            f"Configuration error in {component}: {reason}",
            {"component": component, "reason": reason},
        )
        self.component = component
        self.reason = reason


class GovernorConfigError(ConfigurationError, ValueError):
    """Raised when a debounce or throttle governor is configured with invalid values.

    Also a ValueError so callers validating plain arguments can catch it
    without importing cadence types.
    """

    def __init__(self, reason: str, component: str = "governor"):
        super().__init__(component, reason)


# ============================================================================
# Validation Errors
# ============================================================================


class ValidationError(CadenceError):
    """Base exception for validation errors."""

    pass


class InputValidationError(ValidationError):
    """Raised when an argument fails validation."""

    def __init__(self, field: str, reason: str):
        super().__init__(
            f"Invalid input for '{field}': {reason}", {"field": field, "reason": reason}
        )
        self.field = field
        self.reason = reason


# ============================================================================
# Scheduling Errors
# ============================================================================


class SchedulerError(CadenceError):
    """Raised when a timer cannot be scheduled.

    Scheduling failures are unexpected; the governor does not try to recover.
    """

    def __init__(self, reason: str):
        super().__init__(f"Scheduler failure: {reason}", {"reason": reason})
        self.reason = reason


__all__ = [
    "CadenceError",
    "ConfigurationError",
    "GovernorConfigError",
    "ValidationError",
    "InputValidationError",
    "SchedulerError",
]
