"""
Retry Utilities for the EEI auditor.

Exponential backoff retries for transient network failures on static
fetches. HTTP status codes are never retried here: a 403/429 from a
hostile domain is a verdict, not a glitch.
"""

import asyncio
import random
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import httpx
import structlog

logger = structlog.get_logger()

T = TypeVar("T")

# Exceptions that should trigger a retry
RETRYABLE_EXCEPTIONS = (
    httpx.ConnectError,
    httpx.ReadError,
    httpx.WriteError,
    httpx.RemoteProtocolError,
    httpx.PoolTimeout,
)


async def with_retries(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    max_attempts: int = 2,
    backoff_base: float = 0.3,
    backoff_max: float = 5.0,
    jitter: float = 0.1,
    retry_on: tuple = RETRYABLE_EXCEPTIONS,
    **kwargs: Any,
) -> T:
    """
    Execute an async function with exponential backoff retries.

    Args:
        func: Async function to call
        *args: Positional arguments for func
        max_attempts: Maximum number of attempts (default: 2)
        backoff_base: Base delay in seconds
        backoff_max: Maximum delay in seconds
        jitter: Random jitter factor (0.1 = ±10%)
        retry_on: Tuple of exception types to retry on
        **kwargs: Keyword arguments for func

    Returns:
        Result from successful function call

    Raises:
        Last exception if all attempts fail
    """
    log = logger.bind(func=getattr(func, "__name__", "call"), max_attempts=max_attempts)

    for attempt in range(1, max_attempts + 1):
        try:
            return await func(*args, **kwargs)
        except retry_on as e:
            if attempt >= max_attempts:
                log.debug("All retry attempts failed", error=str(e), attempts=max_attempts)
                raise

            delay = min(backoff_base * (2 ** (attempt - 1)), backoff_max)
            delay *= 1 + random.uniform(-jitter, jitter)
            log.debug(
                "Retry after exception",
                error=str(e),
                attempt=attempt,
                delay=round(delay, 2),
            )
            await asyncio.sleep(delay)

    raise RuntimeError("Unexpected retry loop exit")
