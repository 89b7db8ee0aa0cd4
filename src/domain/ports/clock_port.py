"""
Port (interface) for wall-clock time and cooperative waiting.
Injected into the rate limiter, retry policy and cache so tests can run
without real delays.
"""

from abc import ABC, abstractmethod


class IClock(ABC):
    @abstractmethod
    def now(self) -> float:
        """Seconds since the epoch."""
        ...

    @abstractmethod
    async def sleep(self, seconds: float) -> None: ...
