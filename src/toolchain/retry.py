# src/toolchain/retry.py - v1
"""Bounded retry with exponential backoff around package-registry calls.

Retries only change how many times one install is attempted. Whether
the final failure is fatal is decided by the caller.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable

from ngupgrade.toolchain.runner import CommandResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryConfig:
    """Retry configuration for registry install calls."""

    max_retries: int = 0
    base_delay_s: float = 2.0
    backoff_factor: float = 2.0
    jitter: bool = True


NO_RETRY = RetryConfig(max_retries=0)


def compute_delay(config: RetryConfig, attempt: int) -> float:
    """Compute delay before retry number ``attempt`` (0-based)."""
    delay = config.base_delay_s * (config.backoff_factor ** attempt)
    if config.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
    return delay


async def run_with_retry(
    call: Callable[[], Awaitable[CommandResult]],
    config: RetryConfig = NO_RETRY,
    label: str = "command",
) -> tuple[CommandResult, int]:
    """Invoke ``call`` until it succeeds or retries are exhausted.

    A missing executable is never retried.

    Returns:
        Tuple of (last result, number of attempts made).
    """
    attempts = 0
    while True:
        result = await call()
        attempts += 1
        if result.ok or result.not_found or attempts > config.max_retries:
            return result, attempts

        delay = compute_delay(config, attempts - 1)
        logger.warning(
            "%s exited with %d (attempt %d/%d), retrying in %.1fs",
            label, result.exit_code, attempts, config.max_retries + 1, delay,
        )
        await asyncio.sleep(delay)
