"""
Indicator Service Implementation

Fetches candles, reuses a recent snapshot when one is stored, otherwise
computes a fresh IndicatorSnapshot with the engine.
"""

import logging
from typing import Optional

from cryptopulse.core.config import settings
from cryptopulse.schemas.market import Timeframe
from cryptopulse.schemas.indicators import (
    IndicatorHistory,
    IndicatorResponse,
    IndicatorSnapshot,
)
from cryptopulse.services.base import BaseService, InsufficientDataError
from cryptopulse.services.cache.indicator_cache import IndicatorCache
from cryptopulse.services.cache.redis_client import get_market_cache
from cryptopulse.services.cache.sql_store import SqlSnapshotStore
from cryptopulse.services.cache.store import SnapshotStore
from cryptopulse.services.data_ingestion.service import (
    MarketDataService,
    get_market_data_service,
)
from cryptopulse.services.indicators.engine import calculate_all
from cryptopulse.services.indicators.history import build_indicator_history

logger = logging.getLogger(__name__)


def get_snapshot_store(backend: Optional[str] = None) -> SnapshotStore:
    """Snapshot store for the configured cache backend."""
    backend = (backend or settings.cache_backend).lower()
    if backend == "sqlite":
        return SqlSnapshotStore()
    return get_market_cache()


class IndicatorService(BaseService):
    """
    Indicator Service.

    get_indicators: fetch -> cache -> compute
    get_history:    fetch -> full-series reconstruction
    """

    def __init__(
        self,
        market_data: Optional[MarketDataService] = None,
        cache: Optional[IndicatorCache] = None,
        candle_limit: int = None,
        max_history_length: int = None,
    ):
        self._market_data = market_data or get_market_data_service()
        self._cache = cache or IndicatorCache(get_snapshot_store())
        self._candle_limit = candle_limit or settings.candle_fetch_limit
        self._max_history_length = max_history_length or settings.max_history_length

    @property
    def name(self) -> str:
        return "IndicatorService"

    async def get_indicators(
        self,
        symbol: str,
        interval: Timeframe = Timeframe.H1,
    ) -> IndicatorResponse:
        """
        Latest indicator snapshot for a symbol.

        Raises:
            InsufficientDataError: the provider returned too few candles
            DataSourceError: the candle fetch failed
            MalformedInputError: the provider returned unusable candles
        """
        symbol = symbol.upper()

        async def compute() -> IndicatorSnapshot:
            candles = await self._market_data.get_candles(symbol, interval, self._candle_limit)
            snapshot = calculate_all(symbol, candles)
            if snapshot is None:
                raise InsufficientDataError(
                    self.name,
                    details={"symbol": symbol, "interval": interval.value, "candles": len(candles)},
                )
            logger.info(f"Computed indicators for {symbol} {interval.value} from {len(candles)} candles")
            return snapshot

        snapshot, cached = await self._cache.get_or_compute(symbol, interval.value, compute)
        return IndicatorResponse(snapshot=snapshot, cached=cached)

    async def get_history(
        self,
        symbol: str,
        interval: Timeframe = Timeframe.H1,
    ) -> IndicatorHistory:
        """Indicator series for charting, newest ``max_history_length`` points."""
        historical = await self._market_data.get_historical(symbol, interval, self._candle_limit)
        return build_indicator_history(historical.data, self._max_history_length)

    async def health_check(self) -> bool:
        """Indicator service is always healthy (pure computation)."""
        return True


# Singleton instance
_service_instance: Optional[IndicatorService] = None


def get_indicator_service() -> IndicatorService:
    """Get or create indicator service instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = IndicatorService()
    return _service_instance
