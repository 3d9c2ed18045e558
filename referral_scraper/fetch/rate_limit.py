"""Rate limiter for the extraction service."""
import asyncio
import logging
import math
import time
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


def per_call_delay(requests_per_minute: int) -> float:
    """Seconds between calls for a requests-per-minute budget (rounded up to the millisecond)."""
    if requests_per_minute <= 0:
        return 0.0
    return math.ceil(60000 / requests_per_minute) / 1000


class RateLimiter:
    """Fixed-interval throttle: successive acquires are at least min_interval apart."""

    def __init__(
        self,
        requests_per_minute: int,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.requests_per_minute = requests_per_minute
        self.min_interval = per_call_delay(requests_per_minute)
        self._clock = clock
        self._sleep = sleep
        self._last_request: Optional[float] = None
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait if necessary to respect the rate limit."""
        async with self._lock:
            if self._last_request is not None:
                elapsed = self._clock() - self._last_request
                if elapsed < self.min_interval:
                    wait_time = self.min_interval - elapsed
                    logger.debug(
                        f"Waiting {wait_time:.2f}s before next request "
                        f"(rate limit: {self.requests_per_minute} RPM)"
                    )
                    await self._sleep(wait_time)

            self._last_request = self._clock()
