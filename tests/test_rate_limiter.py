import asyncio

import pytest

from src.application.pipeline.rate_limiter import RateLimiter


async def test_first_acquire_does_not_wait(clock):
    limiter = RateLimiter(clock, min_interval=15)

    await limiter.acquire()

    assert clock.sleeps == []
    assert limiter.last_request_at == clock.now()


async def test_consecutive_acquires_are_spaced_by_min_interval(clock):
    limiter = RateLimiter(clock, min_interval=15)
    returns = []

    for _ in range(4):
        await limiter.acquire()
        returns.append(clock.now())

    gaps = [b - a for a, b in zip(returns, returns[1:])]
    assert all(gap >= 15 for gap in gaps)
    assert clock.sleeps == [15, 15, 15]


async def test_waits_only_for_the_remaining_cooldown(clock):
    limiter = RateLimiter(clock, min_interval=15)
    await limiter.acquire()

    clock.advance(10)
    await limiter.acquire()

    assert clock.sleeps == [pytest.approx(5)]


async def test_no_wait_once_interval_has_passed(clock):
    limiter = RateLimiter(clock, min_interval=15)
    await limiter.acquire()

    clock.advance(30)
    await limiter.acquire()

    assert clock.sleeps == []


async def test_concurrent_callers_are_serialized(clock):
    limiter = RateLimiter(clock, min_interval=15)
    returns = []

    async def caller():
        await limiter.acquire()
        returns.append(clock.now())

    await asyncio.gather(caller(), caller(), caller())

    returns.sort()
    assert [b - a for a, b in zip(returns, returns[1:])] == [15, 15]
    assert limiter.stats["total_waits"] == 2


def test_negative_interval_is_rejected(clock):
    with pytest.raises(ValueError):
        RateLimiter(clock, min_interval=-1)
