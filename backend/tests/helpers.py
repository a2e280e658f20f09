"""
Test factories and in-memory fakes for services.
"""

import asyncio
from typing import Optional

import numpy as np

from cryptopulse.schemas.market import Candle, CryptoPrice, Timeframe
from cryptopulse.schemas.indicators import CacheEntry, IndicatorSnapshot
from cryptopulse.services.base import DataSourceError
from cryptopulse.services.cache.store import SnapshotStore
from cryptopulse.services.data_ingestion.interface import CandleSource

START_TS = 1_700_000_000_000
HOUR_MS = 3_600_000


def make_candles(closes, start: int = START_TS, step: int = HOUR_MS, volume=100.0) -> list[Candle]:
    """Candles around the given closes; high/low sit one unit either side."""
    volumes = volume if isinstance(volume, (list, tuple, np.ndarray)) else [volume] * len(closes)
    return [
        Candle(
            timestamp=start + i * step,
            open=float(close),
            high=float(close) + 1,
            low=float(close) - 1,
            close=float(close),
            volume=float(vol),
        )
        for i, (close, vol) in enumerate(zip(closes, volumes))
    ]


def flat_candles(count: int, price: float = 100.0) -> list[Candle]:
    return make_candles([price] * count)


def rising_candles(count: int, start_price: float = 100.0) -> list[Candle]:
    return make_candles([start_price + i for i in range(count)])


def random_walk_candles(count: int, seed: int = 42) -> list[Candle]:
    rng = np.random.default_rng(seed)
    closes = 30_000 + np.cumsum(rng.normal(0, 50, count))
    volumes = rng.uniform(1, 50, count)
    return make_candles(closes, volume=volumes)


class FakeCandleSource(CandleSource):
    """In-memory candle source; serves the newest ``limit`` candles."""

    def __init__(self, candles: Optional[list[Candle]] = None, fail: bool = False):
        self.candles = list(candles or [])
        self.fail = fail
        self.calls: list[tuple[str, Timeframe, int]] = []
        self.closed = False

    @property
    def name(self) -> str:
        return "FakeSource"

    async def fetch_candles(self, symbol, interval=Timeframe.H1, limit=100):
        self.calls.append((symbol, interval, limit))
        if self.fail:
            raise DataSourceError(self.name, f"Failed to fetch data for {symbol}")
        return self.candles[-limit:]

    async def fetch_price(self, symbol):
        if self.fail:
            raise DataSourceError(self.name, f"Failed to fetch price for {symbol}")
        last = self.candles[-1]
        return CryptoPrice(
            symbol=symbol,
            price=last.close,
            change_24h=0.0,
            change_percent_24h=0.0,
            high_24h=last.high,
            low_24h=last.low,
            volume_24h=last.volume,
            last_updated="2024-01-01T00:00:00Z",
        )

    async def health_check(self) -> bool:
        return not self.fail

    async def close(self) -> None:
        self.closed = True


class FakeSnapshotStore(SnapshotStore):
    """Dict-backed store that can be told to fail or hang."""

    def __init__(self, fail_reads: bool = False, fail_writes: bool = False, delay: float = 0.0):
        self.entries: dict[tuple[str, str], CacheEntry] = {}
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes
        self.delay = delay
        self.writes = 0

    async def load_latest_snapshot(self, symbol, interval):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_reads:
            raise ConnectionError("store down")
        return self.entries.get((symbol.upper(), interval))

    async def upsert_snapshot(self, symbol, interval, snapshot: IndicatorSnapshot, stored_at: int):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_writes:
            raise ConnectionError("store down")
        self.writes += 1
        self.entries[(symbol.upper(), interval)] = CacheEntry(
            symbol=symbol.upper(),
            interval=interval,
            snapshot=snapshot,
            stored_at=stored_at,
        )


class FakeMarketCache:
    """Candle cache stand-in with the MarketCache candle API."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.candles: dict[tuple[str, str, int], list[Candle]] = {}
        self.ttls: list[int] = []

    async def get_cached_candles(self, symbol, interval, limit):
        if self.fail:
            raise ConnectionError("redis down")
        return self.candles.get((symbol, interval, limit))

    async def cache_candles(self, symbol, interval, limit, candles, ttl=300):
        if self.fail:
            raise ConnectionError("redis down")
        self.ttls.append(ttl)
        self.candles[(symbol, interval, limit)] = list(candles)
