# promo_crawler/retry.py
from __future__ import annotations
import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from . import logger
from .config import RetryPolicy

T = TypeVar("T")


async def run_with_retries(
    policy: RetryPolicy,
    attempt_fn: Callable[[int, int], Awaitable[Optional[T]]],
    label: str,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> Optional[T]:
    """
    Call ``attempt_fn(attempt, timeout_ms)`` until it returns something other than None.

    The timeout grows with the attempt number and the delay between attempts is
    linear (``policy.delay_for``). Exceptions count as a failed attempt.
    """
    for attempt in range(1, policy.max_attempts + 1):
        timeout_ms = policy.timeout_for(attempt)
        logger.info("%s.attempt attempt=%d/%d timeout_ms=%d", label, attempt, policy.max_attempts, timeout_ms)
        try:
            result = await attempt_fn(attempt, timeout_ms)
        except Exception as e:
            logger.warning("%s.attempt_error attempt=%d error=%s", label, attempt, str(e)[:300])
            result = None
        if result is not None:
            return result
        if attempt < policy.max_attempts:
            await sleep(policy.delay_for(attempt))
    logger.info("%s.exhausted attempts=%d", label, policy.max_attempts)
    return None
