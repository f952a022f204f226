from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from talentbridge.types import AIResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


def backoff_delay(attempt: int, base_delay: float) -> float:
    """Delay before retrying after the zero-based ``attempt`` failed."""
    return base_delay * (2**attempt)


async def with_rate_limit(
    operation: Callable[[], Awaitable[AIResult[T]]],
    retries: int = 3,
    *,
    base_delay: float = 1.0,
    sleep: Sleep = asyncio.sleep,
) -> AIResult[T]:
    """Retry ``operation`` while it reports failure.

    Only failed results are retried. An exception raised by ``operation``
    propagates on the spot.
    """
    if retries < 1:
        raise ValueError("retries must be at least 1")

    last_error = ""
    for attempt in range(retries):
        result = await operation()
        if result.success:
            return result

        last_error = result.error or "Unknown error"
        logger.info("AI call attempt %s/%s failed: %s", attempt + 1, retries, last_error)
        if attempt < retries - 1:
            await sleep(backoff_delay(attempt, base_delay))

    return AIResult.fail(f"Failed after {retries} retries: {last_error}")
