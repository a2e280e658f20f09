"""
Redis cache client for indicator snapshots and candle history.

Snapshots are kept for the retention window and checked for freshness by
IndicatorCache. Candle history is cached briefly so repeated chart loads
don't hit the market data provider.
"""

import json
import logging
import time
from typing import Optional, Dict, List, Any, Tuple

import redis.asyncio as redis

from cryptopulse.core.config import settings
from cryptopulse.schemas.market import Candle
from cryptopulse.schemas.indicators import CacheEntry, IndicatorSnapshot
from cryptopulse.services.cache.store import SnapshotStore

logger = logging.getLogger(__name__)

# Global Redis connection pool
_redis_pool: Optional[redis.Redis] = None


async def init_redis() -> Optional[redis.Redis]:
    """
    Initialize Redis connection pool.
    Called on application startup.
    """
    global _redis_pool

    if _redis_pool is not None:
        return _redis_pool

    try:
        _redis_pool = redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
        )
        # Test connection
        await _redis_pool.ping()
        logger.info(f"Redis connected: {settings.redis_url}")
        return _redis_pool
    except Exception as e:
        logger.warning(f"Redis connection failed: {e}. Using in-memory fallback.")
        _redis_pool = None
        return None


async def close_redis() -> None:
    """Close Redis connection pool."""
    global _redis_pool
    if _redis_pool:
        await _redis_pool.close()
        _redis_pool = None
        logger.info("Redis connection closed")


def get_redis() -> Optional[redis.Redis]:
    """Get the Redis connection pool."""
    return _redis_pool


class MarketCache(SnapshotStore):
    """
    Redis-based cache for indicator snapshots and candles.

    Keys:
    - indicators:{symbol}:{interval} → JSON CacheEntry (expires after retention)
    - candles:{symbol}:{interval}:{limit} → JSON list of candles

    Each instance owns an in-memory fallback used when Redis is unavailable.
    """

    def __init__(
        self,
        redis_client: Optional[redis.Redis] = None,
        retention_seconds: int = None,
    ):
        self._redis = redis_client
        self._retention_seconds = retention_seconds or settings.snapshot_retention_seconds
        self._memory_cache: Dict[str, Tuple[float, str]] = {}

    @property
    def redis(self) -> Optional[redis.Redis]:
        return self._redis or _redis_pool

    def _memory_get(self, key: str) -> Optional[str]:
        """Fallback to memory cache."""
        item = self._memory_cache.get(key)
        if item is None:
            return None
        expires_at, value = item
        if time.time() >= expires_at:
            del self._memory_cache[key]
            return None
        return value

    def _memory_set(self, key: str, value: str, ex: int):
        """Fallback to memory cache."""
        self._memory_cache[key] = (time.time() + ex, value)

    async def _get(self, key: str) -> Optional[str]:
        if self.redis:
            try:
                return await self.redis.get(key)
            except Exception as e:
                logger.debug(f"Redis get {key} failed: {e}")

        return self._memory_get(key)

    async def _set(self, key: str, value: str, ex: int) -> None:
        if self.redis:
            try:
                await self.redis.set(key, value, ex=ex)
                return
            except Exception as e:
                logger.debug(f"Redis set {key} failed: {e}")

        self._memory_set(key, value, ex)

    # ============ Indicator Snapshots ============

    @staticmethod
    def _snapshot_key(symbol: str, interval: str) -> str:
        return f"indicators:{symbol.upper()}:{interval}"

    async def load_latest_snapshot(self, symbol: str, interval: str) -> Optional[CacheEntry]:
        """Get the stored snapshot for a symbol/interval."""
        value = await self._get(self._snapshot_key(symbol, interval))
        return CacheEntry.model_validate_json(value) if value else None

    async def upsert_snapshot(
        self,
        symbol: str,
        interval: str,
        snapshot: IndicatorSnapshot,
        stored_at: int,
    ) -> None:
        """Store a snapshot, replacing any previous one for the key."""
        entry = CacheEntry(
            symbol=symbol.upper(),
            interval=interval,
            snapshot=snapshot,
            stored_at=stored_at,
        )
        await self._set(
            self._snapshot_key(symbol, interval),
            entry.model_dump_json(by_alias=True),
            ex=self._retention_seconds,
        )

    # ============ Candle History ============

    @staticmethod
    def _candles_key(symbol: str, interval: str, limit: int) -> str:
        return f"candles:{symbol.upper()}:{interval}:{limit}"

    async def cache_candles(
        self,
        symbol: str,
        interval: str,
        limit: int,
        candles: List[Candle],
        ttl: int = 300,  # 5 minutes default
    ) -> None:
        """Cache fetched candle history for a symbol/interval."""
        value = json.dumps([c.model_dump() for c in candles])
        await self._set(self._candles_key(symbol, interval, limit), value, ex=ttl)

    async def get_cached_candles(
        self,
        symbol: str,
        interval: str,
        limit: int,
    ) -> Optional[List[Candle]]:
        """Get cached candle history, None if missing or expired."""
        value = await self._get(self._candles_key(symbol, interval, limit))
        if not value:
            return None
        data: List[Dict[str, Any]] = json.loads(value)
        return [Candle(**c) for c in data]


# Singleton instance
_market_cache: Optional[MarketCache] = None


def get_market_cache() -> MarketCache:
    """Get the market cache singleton."""
    global _market_cache
    if _market_cache is None:
        _market_cache = MarketCache()
    return _market_cache
