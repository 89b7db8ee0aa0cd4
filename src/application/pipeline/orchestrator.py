"""
Fetch orchestration: cache -> cooldown -> request -> retry -> cache.

States per call:
    IDLE -> LIMITING -> REQUESTING -> SUCCESS
                                   -> RATE_LIMITED -> (retry_delay) -> LIMITING
                                   -> FAILED

The cooldown always precedes the network call within one attempt. A cache
hit ends the call in SUCCESS without touching the rate limiter. One fetch per
key is in flight at a time; a second caller for the same key waits and then
usually finds the fresh entry in the cache. A cache write that fails is
logged; the fetched payload is still returned.
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

from src.application.pipeline.cache import Payload, SnapshotCache
from src.application.pipeline.rate_limiter import RateLimiter
from src.application.pipeline.retry import RetryPolicy
from src.domain.errors import RateLimitedError

P = TypeVar("P", bound=Payload)

logger = logging.getLogger(__name__)


class FetchState(str, Enum):
    IDLE = "idle"
    LIMITING = "limiting"
    REQUESTING = "requesting"
    RATE_LIMITED = "rate_limited"
    SUCCESS = "success"
    FAILED = "failed"


class FetchOrchestrator:
    """Runs provider calls through the shared limiter, retry policy and cache.

    The limiter is process-wide and passed in by reference; the cache is
    optional (the aggregates source always fetches fresh).
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        retry_policy: RetryPolicy,
        cache: Optional[SnapshotCache] = None,
    ) -> None:
        self._rate_limiter = rate_limiter
        self._retry_policy = retry_policy
        self._cache = cache
        self._inflight: dict[str, asyncio.Lock] = {}
        self._transitions: dict[str, list[FetchState]] = {}

    def state(self, key: str) -> FetchState:
        """Current (or terminal) state of the latest fetch for *key*."""
        history = self._transitions.get(key)
        return history[-1] if history else FetchState.IDLE

    def transitions(self, key: str) -> list[FetchState]:
        """Every state the latest fetch for *key* passed through, in order."""
        return list(self._transitions.get(key, [FetchState.IDLE]))

    def _enter(self, key: str, state: FetchState) -> None:
        self._transitions[key].append(state)
        logger.debug(f"[{key}] -> {state.value}")

    async def fetch(self, key: str, request: Callable[[], Awaitable[P]]) -> P:
        """Return the payload for *key*, from cache or via *request*.

        Raises:
            RetriesExhaustedError: every attempt was rate limited or failed.
        """
        lock = self._inflight.setdefault(key, asyncio.Lock())
        async with lock:
            self._transitions[key] = [FetchState.IDLE]

            if self._cache is not None:
                cached = self._cache.get(key)
                if cached is not None:
                    logger.debug(f"[{key}] served from cache")
                    self._enter(key, FetchState.SUCCESS)
                    return cached  # type: ignore[return-value]

            async def attempt() -> P:
                self._enter(key, FetchState.LIMITING)
                await self._rate_limiter.acquire()
                self._enter(key, FetchState.REQUESTING)
                try:
                    return await request()
                except RateLimitedError:
                    self._enter(key, FetchState.RATE_LIMITED)
                    raise

            try:
                payload = await self._retry_policy.run(attempt, label=key)
            except Exception:
                self._enter(key, FetchState.FAILED)
                raise

            if self._cache is not None:
                try:
                    self._cache.put(key, payload)
                except OSError as exc:
                    logger.warning(f"[{key}] fetched but not cached: {exc}")
            self._enter(key, FetchState.SUCCESS)
            return payload
