"""
Indicator snapshot reuse cache.

Returns a stored snapshot while it is younger than the TTL, otherwise
computes a fresh one and stores it. The store is never allowed to fail a
request: read/write errors and timeouts are logged and treated as a miss
or a skipped write.

Concurrent misses for the same key may both compute and both write; the
last write wins. Results are deterministic for a given candle window.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from cryptopulse.core.config import settings
from cryptopulse.schemas.indicators import CacheEntry, IndicatorSnapshot
from cryptopulse.services.base import CacheUnavailableError
from cryptopulse.services.cache.store import SnapshotStore

logger = logging.getLogger(__name__)

ComputeFn = Callable[[], Awaitable[IndicatorSnapshot]]


def _now_ms() -> int:
    return int(time.time() * 1000)


class IndicatorCache:
    """
    get_or_compute over a SnapshotStore.

    Usage:
        cache = IndicatorCache(get_market_cache(), ttl_seconds=60)
        snapshot, cached = await cache.get_or_compute("BTCUSDT", "1h", compute)
    """

    def __init__(
        self,
        store: SnapshotStore,
        ttl_seconds: int = None,
        timeout_seconds: float = None,
        write_behind: bool = False,
        clock: Callable[[], int] = _now_ms,
    ):
        self._store = store
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.indicator_cache_ttl_seconds
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.cache_timeout_seconds
        self._write_behind = write_behind
        self._clock = clock
        self._pending_writes: set[asyncio.Task] = set()

    def is_fresh(self, entry: CacheEntry, now_ms: int) -> bool:
        return now_ms - entry.stored_at < self.ttl_seconds * 1000

    async def get_or_compute(
        self,
        symbol: str,
        interval: str,
        compute_fn: ComputeFn,
    ) -> tuple[IndicatorSnapshot, bool]:
        """
        Return (snapshot, cached).

        Errors raised by ``compute_fn`` propagate unchanged.
        """
        entry = await self._safe_load(symbol, interval)
        now_ms = self._clock()

        if entry is not None and self.is_fresh(entry, now_ms):
            logger.debug(f"Indicator cache hit for {symbol} {interval}")
            return entry.snapshot, True

        snapshot = await compute_fn()
        stored_at = self._clock()

        if self._write_behind:
            task = asyncio.create_task(self._safe_store(symbol, interval, snapshot, stored_at))
            self._pending_writes.add(task)
            task.add_done_callback(self._pending_writes.discard)
        else:
            await self._safe_store(symbol, interval, snapshot, stored_at)

        return snapshot, False

    async def drain(self) -> None:
        """Wait for background writes (shutdown, tests)."""
        if self._pending_writes:
            await asyncio.gather(*self._pending_writes)

    async def _safe_load(self, symbol: str, interval: str) -> Optional[CacheEntry]:
        try:
            return await asyncio.wait_for(
                self._store.load_latest_snapshot(symbol, interval),
                timeout=self.timeout_seconds,
            )
        except Exception as e:
            error = CacheUnavailableError(
                "IndicatorCache",
                f"Snapshot lookup failed for {symbol} {interval}, computing directly",
                {"error": repr(e)},
            )
            logger.warning(str(error))
            return None

    async def _safe_store(
        self,
        symbol: str,
        interval: str,
        snapshot: IndicatorSnapshot,
        stored_at: int,
    ) -> None:
        try:
            await asyncio.wait_for(
                self._store.upsert_snapshot(symbol, interval, snapshot, stored_at),
                timeout=self.timeout_seconds,
            )
        except Exception as e:
            error = CacheUnavailableError(
                "IndicatorCache",
                f"Snapshot store failed for {symbol} {interval}",
                {"error": repr(e)},
            )
            logger.warning(str(error))
