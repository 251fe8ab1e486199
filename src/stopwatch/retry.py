"""Backoff for CircleCI requests.

Rate limits (429) and dropped connections are retried with a doubling,
jittered delay. When CircleCI says how long to wait (``Retry-After``),
the delay is raised to that value, still bounded by ``max_delay``.
"""

from __future__ import annotations

import asyncio
import secrets
from functools import wraps
from typing import TYPE_CHECKING, TypeVar

import httpx

from stopwatch.core.exceptions import RateLimitedError
from stopwatch.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")

logger = get_logger(__name__)

CIRCLECI_RETRYABLE: tuple[type[Exception], ...] = (RateLimitedError, httpx.TransportError)


def backoff_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    jitter: bool,
    retry_after: float | None = None,
) -> float:
    """Seconds to wait before retry number ``attempt + 1``."""
    delay = min(base_delay * (2**attempt), max_delay)
    if jitter:
        # Factor in [0.5, 1.5)
        delay = delay * (0.5 + secrets.randbelow(1000) / 1000)
    if retry_after is not None:
        delay = max(delay, min(retry_after, max_delay))
    return delay


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    jitter: bool = True,
    retryable_exceptions: tuple[type[Exception], ...] = CIRCLECI_RETRYABLE,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Retry an async CircleCI call on rate limits and transport errors.

    An exception with a ``retry_after`` attribute (see ``RateLimitedError``)
    sets a floor on the next delay. Once ``max_retries`` is used up the last
    error propagates.
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except retryable_exceptions as e:
                    if attempt >= max_retries:
                        logger.error(
                            "request_retries_exhausted",
                            function=func.__name__,
                            attempts=attempt + 1,
                            error=str(e),
                        )
                        raise

                    retry_after = getattr(e, "retry_after", None)
                    delay = backoff_delay(attempt, base_delay, max_delay, jitter, retry_after)
                    attempt += 1
                    logger.warning(
                        "request_retry_scheduled",
                        function=func.__name__,
                        attempt=attempt,
                        max_retries=max_retries,
                        delay_seconds=round(delay, 2),
                        retry_after=retry_after,
                        error=str(e),
                    )
                    await asyncio.sleep(delay)

        return wrapper

    return decorator
