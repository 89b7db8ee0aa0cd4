import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from src.domain.entities.stock_price import HistoricalBar, HistoricalSeries
from src.domain.ports.clock_port import IClock
from src.infrastructure.storage.memory_store import InMemoryKeyValueStore


class FakeClock(IClock):
    """Virtual time: sleep() advances now() instantly and records the wait."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self._now = start
        self.sleeps: list[float] = []

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self._now += seconds
        await asyncio.sleep(0)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


def make_series(closes, symbol: str = "AMZN", start_day: int = 1) -> HistoricalSeries:
    bars = [
        HistoricalBar(
            timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(days=start_day - 1 + i),
            open=Decimal(str(c)),
            high=Decimal(str(c)),
            low=Decimal(str(c)),
            close=Decimal(str(c)),
            volume=1_000_000 + i,
        )
        for i, c in enumerate(closes)
    ]
    return HistoricalSeries.from_bars(symbol, bars)
