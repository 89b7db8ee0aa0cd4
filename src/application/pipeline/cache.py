"""
Time-bounded cache of fetched snapshots over a durable key-value store.

Classes:
    CacheEntry    key, stored_at (epoch seconds), payload
    SnapshotCache .get(key) -> payload | None, .put(key, payload), .invalidate(key)

Entries are stored as JSON text so any string key-value backend works
(a JSON file on disk, or memory in tests). An entry is served while
``now - stored_at < max_age``; a stale or undecodable entry is removed on read.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, Union

from src.domain.entities.stock_price import HistoricalBar, HistoricalSeries, QuoteSnapshot
from src.domain.ports.clock_port import IClock
from src.domain.ports.key_value_store_port import IKeyValueStore

logger = logging.getLogger(__name__)

Payload = Union[QuoteSnapshot, HistoricalSeries]

DEFAULT_CACHE_KEY = "amzn_data"


@dataclass(frozen=True)
class CacheEntry:
    key: str
    stored_at: float
    payload: Payload


# ----------------------------------------------------------------------
# Payload codec
# ----------------------------------------------------------------------

def encode_payload(payload: Payload) -> dict:
    if isinstance(payload, QuoteSnapshot):
        return {
            "kind": "quote",
            "price": str(payload.price),
            "open_price": str(payload.open_price),
            "volume": payload.volume,
            "captured_at": payload.captured_at.isoformat(),
        }
    if isinstance(payload, HistoricalSeries):
        return {
            "kind": "series",
            "symbol": payload.symbol,
            "bars": [
                {
                    "timestamp": bar.timestamp.isoformat(),
                    "open": str(bar.open),
                    "high": str(bar.high),
                    "low": str(bar.low),
                    "close": str(bar.close),
                    "volume": bar.volume,
                }
                for bar in payload.bars
            ],
        }
    raise TypeError(f"Cannot cache payload of type {type(payload).__name__}")


def decode_payload(data: dict) -> Payload:
    kind = data["kind"]
    if kind == "quote":
        # Derived fields are recomputed so they can never disagree with price/open.
        return QuoteSnapshot.build(
            price=Decimal(data["price"]),
            open_price=Decimal(data["open_price"]),
            volume=int(data["volume"]),
            captured_at=datetime.fromisoformat(data["captured_at"]),
        )
    if kind == "series":
        return HistoricalSeries(
            symbol=data["symbol"],
            bars=tuple(
                HistoricalBar(
                    timestamp=datetime.fromisoformat(bar["timestamp"]),
                    open=Decimal(bar["open"]),
                    high=Decimal(bar["high"]),
                    low=Decimal(bar["low"]),
                    close=Decimal(bar["close"]),
                    volume=int(bar["volume"]),
                )
                for bar in data["bars"]
            ),
        )
    raise ValueError(f"Unknown cached payload kind: {kind!r}")


# ----------------------------------------------------------------------
# Cache
# ----------------------------------------------------------------------

class SnapshotCache:
    DEFAULT_MAX_AGE = 300.0

    def __init__(
        self,
        store: IKeyValueStore,
        clock: IClock,
        max_age: float = DEFAULT_MAX_AGE,
    ) -> None:
        if max_age <= 0:
            raise ValueError("max_age must be > 0")
        self._store = store
        self._clock = clock
        self.max_age = max_age
        self._hits = 0
        self._misses = 0

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        raw = self._store.get_item(key)
        if raw is None:
            self._misses += 1
            return None

        entry = self._decode(key, raw)
        if entry is None:
            self._store.remove_item(key)
            self._misses += 1
            return None

        age = self._clock.now() - entry.stored_at
        if age >= self.max_age:
            logger.debug(f"Cache entry {key!r} is stale ({age:.0f}s old), evicting")
            self._store.remove_item(key)
            self._misses += 1
            return None

        self._hits += 1
        return entry

    def get(self, key: str) -> Optional[Payload]:
        entry = self.get_entry(key)
        return entry.payload if entry else None

    def put(self, key: str, payload: Payload) -> CacheEntry:
        entry = CacheEntry(key=key, stored_at=self._clock.now(), payload=payload)
        text = json.dumps(
            {"key": key, "stored_at": entry.stored_at, "payload": encode_payload(payload)}
        )
        self._store.set_item(key, text)
        return entry

    def invalidate(self, key: str) -> None:
        self._store.remove_item(key)

    def stats(self) -> dict:
        total = self._hits + self._misses
        return {
            "max_age": f"{self.max_age:.0f}s",
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": f"{self._hits / total:.1%}" if total else "0.0%",
        }

    @staticmethod
    def _decode(key: str, raw: str) -> Optional[CacheEntry]:
        try:
            data: Any = json.loads(raw)
            return CacheEntry(
                key=key,
                stored_at=float(data["stored_at"]),
                payload=decode_payload(data["payload"]),
            )
        except (ValueError, KeyError, TypeError, ArithmeticError) as exc:
            logger.warning(f"Discarding unreadable cache entry {key!r}: {exc}")
            return None
