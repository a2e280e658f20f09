"""
Tests for the snapshot stores: SQLite (in-memory aiosqlite) and the Redis
market cache running on its in-memory fallback.
"""

import asyncio

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from cryptopulse.db.models import Base, IndicatorSnapshotRecord
from cryptopulse.services.cache.redis_client import MarketCache
from cryptopulse.services.cache.sql_store import SqlSnapshotStore
from cryptopulse.services.indicators.engine import calculate_all
from tests.helpers import flat_candles, random_walk_candles


async def make_sql_store(retention_seconds: int = 86400):
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    return engine, SqlSnapshotStore(factory, retention_seconds=retention_seconds)


# ============ SQLite ============


def test_sql_store_upsert_and_load():
    first = calculate_all("BTCUSDT", random_walk_candles(200, seed=1))
    second = calculate_all("BTCUSDT", random_walk_candles(200, seed=2))

    async def run():
        engine, store = await make_sql_store()
        try:
            missing = await store.load_latest_snapshot("BTCUSDT", "1h")
            await store.upsert_snapshot("btcusdt", "1h", first, stored_at=1_000)
            await store.upsert_snapshot("BTCUSDT", "1h", second, stored_at=2_000)
            latest = await store.load_latest_snapshot("BTCUSDT", "1h")
            other = await store.load_latest_snapshot("BTCUSDT", "4h")
            return missing, latest, other
        finally:
            await engine.dispose()

    missing, latest, other = asyncio.run(run())

    assert missing is None
    assert other is None
    assert latest.symbol == "BTCUSDT"
    assert latest.stored_at == 2_000
    assert latest.snapshot == second


def test_sql_store_concurrent_upserts_last_write_wins():
    first = calculate_all("BTCUSDT", random_walk_candles(200, seed=1))
    second = calculate_all("BTCUSDT", random_walk_candles(200, seed=2))

    async def run():
        engine, store = await make_sql_store()
        try:
            results = await asyncio.gather(
                store.upsert_snapshot("BTCUSDT", "1h", first, stored_at=1_000),
                store.upsert_snapshot("BTCUSDT", "1h", second, stored_at=2_000),
                return_exceptions=True,
            )
            latest = await store.load_latest_snapshot("BTCUSDT", "1h")
            async with engine.connect() as conn:
                rows = (
                    await conn.execute(select(func.count()).select_from(IndicatorSnapshotRecord))
                ).scalar_one()
            return results, latest, rows
        finally:
            await engine.dispose()

    results, latest, rows = asyncio.run(run())

    assert results == [None, None]
    assert rows == 1
    assert latest.stored_at == 2_000
    assert latest.snapshot == second


def test_sql_store_purge_expired():
    snapshot = calculate_all("ETHUSDT", flat_candles(200))

    async def run():
        engine, store = await make_sql_store(retention_seconds=60)
        try:
            await store.upsert_snapshot("ETHUSDT", "1h", snapshot, stored_at=0)
            await store.upsert_snapshot("ETHUSDT", "4h", snapshot, stored_at=100_000)
            removed = await store.purge_expired(now_ms=120_000)
            old = await store.load_latest_snapshot("ETHUSDT", "1h")
            recent = await store.load_latest_snapshot("ETHUSDT", "4h")
            return removed, old, recent
        finally:
            await engine.dispose()

    removed, old, recent = asyncio.run(run())

    assert removed == 1
    assert old is None
    assert recent is not None


# ============ Market cache (memory fallback) ============


def test_market_cache_snapshot_roundtrip():
    snapshot = calculate_all("BTCUSDT", random_walk_candles(200))
    cache = MarketCache(redis_client=None)

    async def run():
        await cache.upsert_snapshot("btcusdt", "1h", snapshot, stored_at=42)
        return await cache.load_latest_snapshot("BTCUSDT", "1h")

    entry = asyncio.run(run())

    assert entry.stored_at == 42
    assert entry.interval == "1h"
    assert entry.snapshot == snapshot


def test_market_cache_candles_expire():
    candles = random_walk_candles(10)
    cache = MarketCache(redis_client=None)

    async def run():
        await cache.cache_candles("BTCUSDT", "1h", 10, candles, ttl=300)
        hit = await cache.get_cached_candles("BTCUSDT", "1h", 10)
        other_limit = await cache.get_cached_candles("BTCUSDT", "1h", 20)
        await cache.cache_candles("ETHUSDT", "1h", 10, candles, ttl=0)
        expired = await cache.get_cached_candles("ETHUSDT", "1h", 10)
        return hit, other_limit, expired

    hit, other_limit, expired = asyncio.run(run())

    assert hit == candles
    assert other_limit is None
    assert expired is None
