"""Minimum-interval rate limiter for external data calls."""

import asyncio
import time


class RateLimiter:
    """Spaces out calls so no more than ``requests_per_minute`` are made.

    Safe to share between concurrent tasks: callers queue on an internal
    lock and each waits out the remainder of the minimum interval.
    """

    def __init__(self, requests_per_minute: int):
        if requests_per_minute <= 0:
            raise ValueError("requests_per_minute must be positive")
        self.requests_per_minute = requests_per_minute
        self._min_interval = 60.0 / requests_per_minute
        self._last_call_time: float | None = None
        self._lock = asyncio.Lock()

    @property
    def min_interval(self) -> float:
        return self._min_interval

    async def acquire(self) -> None:
        """Wait until the next call is allowed."""
        async with self._lock:
            if self._last_call_time is not None:
                elapsed = time.monotonic() - self._last_call_time
                if elapsed < self._min_interval:
                    await asyncio.sleep(self._min_interval - elapsed)
            self._last_call_time = time.monotonic()
