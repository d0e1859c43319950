"""Bounded async retry with pluggable backoff and retry predicate."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")


def linear_backoff(base_s: float) -> Callable[[int], float]:
    """Delay after failed attempt n is base_s * n."""

    def _delay(attempt: int) -> float:
        return max(0.0, base_s * attempt)

    return _delay


async def retry_async(
    fn: Callable[[int], Awaitable[T]],
    *,
    max_attempts: int,
    backoff: Callable[[int], float],
    retryable: Callable[[BaseException], bool],
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    on_failure: Optional[Callable[[int, BaseException], None]] = None,
) -> T:
    """
    Await fn(attempt) for attempt = 1..max_attempts until it returns.

    Non-retryable errors propagate at once. When every attempt fails, the
    last error is re-raised; callers decide how to classify it.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    attempt = 1
    while True:
        try:
            return await fn(attempt)
        except Exception as e:
            if not retryable(e):
                raise
            if on_failure is not None:
                on_failure(attempt, e)
            if attempt >= max_attempts:
                raise
            delay = backoff(attempt)
            log.info(
                "[retry] attempt %d/%d failed (%s); retrying in %.2fs",
                attempt,
                max_attempts,
                e,
                delay,
            )
            await sleep(delay)
            attempt += 1
