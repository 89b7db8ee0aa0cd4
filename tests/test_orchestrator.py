import asyncio
from decimal import Decimal

import pytest

from src.application.pipeline.cache import SnapshotCache
from src.application.pipeline.orchestrator import FetchOrchestrator, FetchState
from src.application.pipeline.rate_limiter import RateLimiter
from src.application.pipeline.retry import RetryPolicy
from src.domain.entities.stock_price import QuoteSnapshot
from src.domain.errors import RateLimitedError, RetriesExhaustedError, TransportError
from src.infrastructure.storage.memory_store import InMemoryKeyValueStore

QUOTE = QuoteSnapshot.build(Decimal("185.50"), Decimal("180.00"), 45_000_000)


class ScriptedRequest:
    """Raises the scripted errors in order, then returns QUOTE."""

    def __init__(self, clock, errors=()):
        self.clock = clock
        self.errors = list(errors)
        self.called_at = []

    async def __call__(self):
        self.called_at.append(self.clock.now())
        if self.errors:
            raise self.errors.pop(0)
        return QUOTE


@pytest.fixture
def limiter(clock):
    return RateLimiter(clock, min_interval=15)


@pytest.fixture
def policy(clock):
    return RetryPolicy(clock, max_retries=3, retry_delay=20)


async def test_success_path_transitions(clock, limiter, policy):
    orchestrator = FetchOrchestrator(limiter, policy)

    result = await orchestrator.fetch("amzn_data", ScriptedRequest(clock))

    assert result == QUOTE
    assert orchestrator.transitions("amzn_data") == [
        FetchState.IDLE,
        FetchState.LIMITING,
        FetchState.REQUESTING,
        FetchState.SUCCESS,
    ]
    assert orchestrator.state("amzn_data") is FetchState.SUCCESS


async def test_rate_limited_loops_back_to_limiting(clock, limiter, policy):
    orchestrator = FetchOrchestrator(limiter, policy)
    request = ScriptedRequest(clock, [RateLimitedError()])

    await orchestrator.fetch("amzn_data", request)

    assert orchestrator.transitions("amzn_data") == [
        FetchState.IDLE,
        FetchState.LIMITING,
        FetchState.REQUESTING,
        FetchState.RATE_LIMITED,
        FetchState.LIMITING,
        FetchState.REQUESTING,
        FetchState.SUCCESS,
    ]
    # Retry delay exceeds the cooldown.
    assert clock.sleeps == [20]


async def test_limiter_wait_precedes_every_request(clock, limiter, policy):
    orchestrator = FetchOrchestrator(limiter, policy)
    first = ScriptedRequest(clock)
    second = ScriptedRequest(clock)

    await orchestrator.fetch("a", first)
    await orchestrator.fetch("b", second)

    assert second.called_at[0] - first.called_at[0] >= 15


async def test_exhausted_retries_end_in_failed(clock, limiter, policy):
    orchestrator = FetchOrchestrator(limiter, policy)
    request = ScriptedRequest(clock, [RateLimitedError()] * 10)

    with pytest.raises(RetriesExhaustedError):
        await orchestrator.fetch("amzn_data", request)

    assert len(request.called_at) == 4
    assert orchestrator.state("amzn_data") is FetchState.FAILED


async def test_transport_errors_are_retried(clock, limiter, policy):
    orchestrator = FetchOrchestrator(limiter, policy)
    request = ScriptedRequest(clock, [TransportError("down"), TransportError("down")])

    assert await orchestrator.fetch("amzn_data", request) == QUOTE
    assert len(request.called_at) == 3


async def test_cache_hit_skips_limiter_and_request(clock, limiter, policy, store):
    cache = SnapshotCache(store, clock, max_age=300)
    orchestrator = FetchOrchestrator(limiter, policy, cache=cache)
    await orchestrator.fetch("amzn_data", ScriptedRequest(clock))
    request = ScriptedRequest(clock)

    result = await orchestrator.fetch("amzn_data", request)

    assert result == QUOTE
    assert request.called_at == []
    assert orchestrator.transitions("amzn_data") == [FetchState.IDLE, FetchState.SUCCESS]


async def test_stale_cache_triggers_a_fresh_fetch(clock, limiter, policy, store):
    cache = SnapshotCache(store, clock, max_age=300)
    orchestrator = FetchOrchestrator(limiter, policy, cache=cache)
    await orchestrator.fetch("amzn_data", ScriptedRequest(clock))
    clock.advance(301)
    request = ScriptedRequest(clock)

    await orchestrator.fetch("amzn_data", request)

    assert len(request.called_at) == 1


async def test_failure_does_not_write_cache(clock, limiter, policy, store):
    cache = SnapshotCache(store, clock)
    orchestrator = FetchOrchestrator(limiter, policy, cache=cache)

    with pytest.raises(RetriesExhaustedError):
        await orchestrator.fetch("amzn_data", ScriptedRequest(clock, [TransportError("x")] * 4))

    assert cache.get("amzn_data") is None


async def test_concurrent_fetches_for_one_key_share_the_result(clock, limiter, policy, store):
    cache = SnapshotCache(store, clock)
    orchestrator = FetchOrchestrator(limiter, policy, cache=cache)
    request = ScriptedRequest(clock)

    results = await asyncio.gather(
        orchestrator.fetch("amzn_data", request),
        orchestrator.fetch("amzn_data", request),
    )

    assert results == [QUOTE, QUOTE]
    assert len(request.called_at) == 1


class ReadOnlyStore(InMemoryKeyValueStore):
    def set_item(self, key, value):
        raise PermissionError("read-only cache dir")


async def test_failed_cache_write_still_returns_the_payload(clock, limiter, policy, caplog):
    cache = SnapshotCache(ReadOnlyStore(), clock)
    orchestrator = FetchOrchestrator(limiter, policy, cache=cache)

    result = await orchestrator.fetch("amzn_data", ScriptedRequest(clock))

    assert result == QUOTE
    assert orchestrator.state("amzn_data") == FetchState.SUCCESS
    assert "not cached" in caplog.text
