"""
Infrastructure adapter: wall clock + asyncio.sleep -> IClock.
"""

import asyncio
import time

from src.domain.ports.clock_port import IClock


class SystemClock(IClock):
    def now(self) -> float:
        return time.time()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(seconds, 0.0))
