# src/market_data/retry.py
"""Exponential backoff with jitter for flaky external calls."""
import asyncio
import logging
import random
from typing import Awaitable, Callable, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_with_jitter(
    func: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 10.0,
    backoff_multiplier: float = 2.0,
    should_retry: Callable[[Exception], bool] = lambda e: True,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Call ``func`` until it succeeds or attempts run out.

    Each wait is the current delay scaled by a random factor in [0.5, 1.5),
    capped at ``max_delay``; the delay grows by ``backoff_multiplier`` after
    every failure.

    Args:
        func: Zero-argument coroutine factory to call.
        max_retries: Total number of attempts.
        initial_delay: First delay in seconds.
        max_delay: Upper bound for any single delay.
        backoff_multiplier: Growth factor between attempts.
        should_retry: Predicate; errors it rejects are raised immediately.
        sleep: Awaitable sleep, replaceable in tests.

    Returns:
        The result of the first successful call.

    Raises:
        The last exception once attempts are exhausted.
    """
    delay = initial_delay

    for attempt in range(1, max_retries + 1):
        try:
            return await func()
        except Exception as e:
            if not should_retry(e):
                raise
            if attempt == max_retries:
                logger.error(f"Max retries ({max_retries}) exceeded: {e}")
                raise

            jittered = min(delay * (0.5 + random.random()), max_delay)
            logger.warning(f"Retry attempt {attempt}/{max_retries} in {jittered:.2f}s: {e}")
            await sleep(jittered)
            delay = min(delay * backoff_multiplier, max_delay)

    raise RuntimeError("retry_with_jitter called with max_retries < 1")
