"""
Bounded retry with exponential backoff.

The one place where failures propagate by raising: the operation is retried
up to ``max_attempts`` times, sleeping ``base_delay * 2**attempt`` between
attempts, and the last failure is re-raised.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)

Operation = Callable[[], Union[Any, Awaitable[Any]]]
RetryPredicate = Callable[[Exception], bool]


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int = 3
    base_delay: float = 0.3
    backoff_factor: float = 2.0
    max_delay: float = 60.0
    jitter: bool = False
    jitter_factor: float = 0.1

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay cannot be negative")

    def delay_for(self, attempt: int) -> float:
        """Delay after the failed attempt with zero-based index ``attempt``."""
        delay = min(self.base_delay * (self.backoff_factor ** attempt), self.max_delay)
        if self.jitter and delay > 0:
            delay += random.uniform(-1, 1) * delay * self.jitter_factor
        return max(delay, 0.0)


async def with_retry(
    operation: Operation,
    max_attempts: int = 3,
    base_delay: float = 0.3,
    *,
    config: Optional[RetryConfig] = None,
    retry_on: Optional[RetryPredicate] = None,
) -> Any:
    """
    Run ``operation`` with bounded retries.

    Args:
        operation: Zero-argument callable, sync or returning an awaitable
        max_attempts: Total attempts, including the first
        base_delay: Delay before the second attempt, doubled each time
        config: Full retry configuration, overriding the two shortcuts
        retry_on: Predicate deciding whether a failure is retried
            (all exceptions by default)

    Returns:
        The operation's result

    Raises:
        Exception: The last failure once attempts are exhausted, or the first
            failure ``retry_on`` rejects
    """
    retry_config = config or RetryConfig(max_attempts=max_attempts, base_delay=base_delay)

    attempt = 0
    while True:
        try:
            result = operation()
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception as e:
            final = attempt + 1 >= retry_config.max_attempts
            if final or (retry_on is not None and not retry_on(e)):
                if attempt > 0:
                    logger.warning(
                        "Giving up after %d attempt(s): %s", attempt + 1, e
                    )
                raise

            delay = retry_config.delay_for(attempt)
            logger.info(
                "Attempt %d/%d failed (%s); retrying in %.2fs",
                attempt + 1,
                retry_config.max_attempts,
                e,
                delay,
            )
            if delay > 0:
                await asyncio.sleep(delay)
            attempt += 1
