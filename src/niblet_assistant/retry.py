"""Retry-with-backoff shared by every provider call that should survive a blip."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

from tenacity import AsyncRetrying, before_sleep_log, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[Any]]


def is_rate_limited(exc: BaseException) -> bool:
    """True for HTTP 429 responses, whatever client raised them."""

    return getattr(exc, "status_code", None) == 429


async def retry_with_backoff(
    fn: Callable[[], Awaitable[T]],
    *,
    attempts: int = 3,
    base_delay: float = 1.0,
    factor: float = 1.5,
    sleep: SleepFn = asyncio.sleep,
) -> T:
    """Await ``fn`` up to ``attempts`` times.

    Delays grow geometrically: ``base_delay``, ``base_delay * factor``, ...
    The last exception is re-raised once attempts are exhausted.
    """

    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=base_delay, exp_base=factor),
        sleep=sleep,
        reraise=True,
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )

    async def _attempt() -> T:
        return await fn()

    return await retrying(_attempt)
