"""
Retry and delay helpers.

Usage:
    from cadence.retrying import retry, sleep

    data = await retry(fetch, attempts=5, delay=1.0, backoff=2.0, max_delay=10.0)
    # Delays between attempts: 1s, 2s, 4s, 8s

    data = await retry(
        fetch,
        attempts=3,
        should_retry=lambda exc, attempt: isinstance(exc, TimeoutError),
    )
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from cadence.exceptions import GovernorConfigError, InputValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")
ShouldRetry = Callable[[BaseException, int], bool]


async def wait(seconds: float) -> None:
    """Suspend the current task for ``seconds``."""
    if seconds < 0 or math.isnan(seconds):
        raise InputValidationError("seconds", "must be non-negative")
    await asyncio.sleep(seconds)


sleep = wait


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for retry behaviour.

    Attributes:
        attempts: Total number of attempts, including the first.
        delay: Delay in seconds before the first retry.
        backoff: Multiplier applied per retry (1.0 keeps the delay constant).
        max_delay: Upper bound on any single delay.
    """

    attempts: int = 3
    delay: float = 1.0
    backoff: float = 1.0
    max_delay: float = math.inf

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.attempts < 1:
            raise GovernorConfigError("attempts must be at least 1", component="retry")
        if self.delay < 0:
            raise GovernorConfigError("delay must be non-negative", component="retry")
        if self.backoff < 1:
            raise GovernorConfigError("backoff must be at least 1", component="retry")
        if self.max_delay < 0:
            raise GovernorConfigError("max_delay must be non-negative", component="retry")

    def delay_for(self, attempt_index: int) -> float:
        """Delay after the zero-based ``attempt_index`` failed."""
        return min(self.delay * self.backoff**attempt_index, self.max_delay)


def _resolve(
    config: Optional[RetryConfig],
    attempts: Optional[int],
    delay: Optional[float],
    backoff: Optional[float],
    max_delay: Optional[float],
) -> RetryConfig:
    if config is not None:
        return config
    defaults = RetryConfig()
    return RetryConfig(
        attempts=defaults.attempts if attempts is None else attempts,
        delay=defaults.delay if delay is None else delay,
        backoff=defaults.backoff if backoff is None else backoff,
        max_delay=defaults.max_delay if max_delay is None else max_delay,
    )


def _give_up(
    cfg: RetryConfig, exc: BaseException, index: int, should_retry: Optional[ShouldRetry]
) -> bool:
    if index == cfg.attempts - 1:
        return True
    return should_retry is not None and not should_retry(exc, index + 1)


async def retry(
    fn: Callable[[], Awaitable[T]],
    *,
    attempts: Optional[int] = None,
    delay: Optional[float] = None,
    backoff: Optional[float] = None,
    max_delay: Optional[float] = None,
    should_retry: Optional[ShouldRetry] = None,
    config: Optional[RetryConfig] = None,
) -> T:
    """
    Await ``fn()`` until it succeeds or attempts run out.

    Args:
        fn: Zero-argument coroutine function
        attempts: Total attempts (default 3)
        delay: Seconds before the first retry (default 1.0)
        backoff: Delay multiplier per retry (default 1.0)
        max_delay: Cap on any single delay (default unbounded)
        should_retry: ``(exc, attempt_number) -> bool``; attempt numbers
            start at 1. Returning False re-raises immediately.
        config: Prebuilt RetryConfig, instead of the individual options

    Returns:
        The first successful result

    Raises:
        The last exception raised by ``fn``
    """
    cfg = _resolve(config, attempts, delay, backoff, max_delay)

    for index in range(cfg.attempts):
        try:
            return await fn()
        except Exception as exc:
            if _give_up(cfg, exc, index, should_retry):
                raise
            pause = cfg.delay_for(index)
            logger.warning(
                f"Attempt {index + 1}/{cfg.attempts} failed, retrying in {pause:.2f}s: "
                f"{type(exc).__name__}: {exc}"
            )
            await wait(pause)

    raise RuntimeError("unreachable: retry loop exited without result")


def retry_sync(
    fn: Callable[[], T],
    *,
    attempts: Optional[int] = None,
    delay: Optional[float] = None,
    backoff: Optional[float] = None,
    max_delay: Optional[float] = None,
    should_retry: Optional[ShouldRetry] = None,
    config: Optional[RetryConfig] = None,
) -> T:
    """Blocking counterpart of ``retry`` using ``time.sleep``."""
    cfg = _resolve(config, attempts, delay, backoff, max_delay)

    for index in range(cfg.attempts):
        try:
            return fn()
        except Exception as exc:
            if _give_up(cfg, exc, index, should_retry):
                raise
            pause = cfg.delay_for(index)
            logger.warning(
                f"Attempt {index + 1}/{cfg.attempts} failed, retrying in {pause:.2f}s: "
                f"{type(exc).__name__}: {exc}"
            )
            time.sleep(pause)

    raise RuntimeError("unreachable: retry loop exited without result")


__all__ = ["RetryConfig", "retry", "retry_sync", "wait", "sleep", "ShouldRetry"]
