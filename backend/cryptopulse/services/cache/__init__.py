"""
Cache module for CryptoPulse.

Provides snapshot stores (Redis with in-memory fallback, SQLite), the
indicator reuse cache and a small in-process TTL cache.
"""

from cryptopulse.services.cache.store import SnapshotStore
from cryptopulse.services.cache.redis_client import (
    MarketCache,
    get_market_cache,
    init_redis,
    close_redis,
)
from cryptopulse.services.cache.sql_store import SqlSnapshotStore
from cryptopulse.services.cache.indicator_cache import IndicatorCache
from cryptopulse.services.cache.ttl_cache import TTLCache

__all__ = [
    "SnapshotStore",
    "MarketCache",
    "get_market_cache",
    "init_redis",
    "close_redis",
    "SqlSnapshotStore",
    "IndicatorCache",
    "TTLCache",
]
