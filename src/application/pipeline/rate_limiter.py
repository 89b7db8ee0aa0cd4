"""
Single-permit cooldown limiter shared by every outbound market-data call.

RateLimiter:
    RateLimiter(clock, min_interval=15.0)
    await .acquire() -> None   Suspend until min_interval has passed since the
                               previous permitted call, then record this one.
"""

import asyncio
import logging
from typing import Optional

from src.domain.ports.clock_port import IClock

logger = logging.getLogger(__name__)


class RateLimiter:
    """Enforces a minimum spacing between outbound requests.

    One instance per process. The lock serializes acquire() so two refresh
    loops cannot both read the same last_request_at and fire together.
    """

    DEFAULT_MIN_INTERVAL = 15.0

    def __init__(self, clock: IClock, min_interval: float = DEFAULT_MIN_INTERVAL) -> None:
        if min_interval < 0:
            raise ValueError("min_interval must be >= 0")
        self._clock = clock
        self.min_interval = min_interval
        self._last_request_at: Optional[float] = None
        self._lock = asyncio.Lock()
        self._total_waits = 0
        self._total_wait_time = 0.0

    @property
    def last_request_at(self) -> Optional[float]:
        return self._last_request_at

    async def acquire(self) -> None:
        async with self._lock:
            if self._last_request_at is not None:
                elapsed = self._clock.now() - self._last_request_at
                if elapsed < self.min_interval:
                    wait_time = self.min_interval - elapsed
                    self._total_waits += 1
                    self._total_wait_time += wait_time
                    logger.debug(f"Cooldown active, waiting {wait_time:.2f}s")
                    await self._clock.sleep(wait_time)
            self._last_request_at = self._clock.now()

    @property
    def stats(self) -> dict:
        return {
            "min_interval": f"{self.min_interval:.1f}s",
            "total_waits": self._total_waits,
            "total_wait_time": f"{self._total_wait_time:.1f}s",
        }
