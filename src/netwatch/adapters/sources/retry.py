"""Generic async retry with exponential backoff."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)

Backoff = Callable[[int], float]


def exponential_backoff(
    base: float = 1.0, factor: float = 2.0, cap: float = 30.0
) -> Backoff:
    """Delay for attempt n (0-based): base * factor**n, capped."""

    def delay(attempt: int) -> float:
        return min(cap, base * factor**attempt)

    return delay


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    backoff: Backoff | None = None,
    retry_on: Callable[[Exception], bool] = lambda exc: True,
) -> T:
    """Await operation(), retrying up to max_retries times on failure.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt.
        max_retries: Retries after the first attempt; 0 disables retrying.
        backoff: Maps the retry number to a delay in seconds.
        retry_on: Predicate deciding whether an exception is retryable.

    Returns:
        The first successful result.

    Raises:
        The last exception once retries are exhausted, or immediately when
        retry_on rejects it.
    """
    delay_for = backoff or exponential_backoff()
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as exc:
            if attempt >= max_retries or not retry_on(exc):
                raise
            wait = delay_for(attempt)
            logger.debug(
                "Retrying after error",
                extra={
                    "attempt": attempt + 1,
                    "max_retries": max_retries,
                    "delay": wait,
                    "error": f"{type(exc).__name__}: {exc}",
                },
            )
            attempt += 1
            await asyncio.sleep(wait)
