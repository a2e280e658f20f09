"""
Market Data Service

Front door to the configured candle source. Every provider call is bounded
by ``fetch_timeout_seconds``; historical candles go through the short-lived
candle cache, whose reads and writes are bounded by ``cache_timeout_seconds``
and never fail the request.
"""

import asyncio
import logging
from typing import Optional

from cryptopulse.core.config import settings
from cryptopulse.schemas.market import Candle, CryptoPrice, HistoricalData, Timeframe
from cryptopulse.services.base import BaseService, DataSourceError
from cryptopulse.services.cache.redis_client import MarketCache, get_market_cache
from cryptopulse.services.data_ingestion.interface import CandleSource
from cryptopulse.services.data_ingestion.loader import get_candle_source

logger = logging.getLogger(__name__)


class MarketDataService(BaseService):
    """Candles and prices for a single provider."""

    def __init__(
        self,
        source: Optional[CandleSource] = None,
        cache: Optional[MarketCache] = None,
        fetch_timeout: float = None,
        cache_timeout: float = None,
        historical_ttl: int = None,
    ):
        self._source = source or get_candle_source()
        self._cache = cache if cache is not None else get_market_cache()
        self._fetch_timeout = fetch_timeout or settings.fetch_timeout_seconds
        self._cache_timeout = cache_timeout or settings.cache_timeout_seconds
        self._historical_ttl = historical_ttl or settings.historical_cache_seconds

    @property
    def name(self) -> str:
        return "MarketDataService"

    @property
    def source(self) -> CandleSource:
        return self._source

    async def get_candles(
        self,
        symbol: str,
        interval: Timeframe = Timeframe.H1,
        limit: int = 100,
    ) -> list[Candle]:
        """Fetch candles straight from the provider, bounded by the fetch timeout."""
        try:
            return await asyncio.wait_for(
                self._source.fetch_candles(symbol, interval, limit),
                timeout=self._fetch_timeout,
            )
        except asyncio.TimeoutError as e:
            raise DataSourceError(
                self._source.name,
                f"Failed to fetch data for {symbol}: timed out after {self._fetch_timeout}s",
            ) from e

    async def get_historical(
        self,
        symbol: str,
        interval: Timeframe = Timeframe.H1,
        limit: int = 100,
    ) -> HistoricalData:
        """Candle history, served from the candle cache when present."""
        symbol = symbol.upper()
        candles = await self._cached_candles(symbol, interval, limit)

        if candles is None:
            candles = await self.get_candles(symbol, interval, limit)
            await self._store_candles(symbol, interval, limit, candles)

        return HistoricalData(symbol=symbol, interval=interval, data=candles)

    async def get_price(self, symbol: str) -> CryptoPrice:
        try:
            return await asyncio.wait_for(
                self._source.fetch_price(symbol),
                timeout=self._fetch_timeout,
            )
        except asyncio.TimeoutError as e:
            raise DataSourceError(
                self._source.name,
                f"Failed to fetch price for {symbol}: timed out after {self._fetch_timeout}s",
            ) from e

    async def _cached_candles(
        self, symbol: str, interval: Timeframe, limit: int
    ) -> Optional[list[Candle]]:
        try:
            return await asyncio.wait_for(
                self._cache.get_cached_candles(symbol, interval.value, limit),
                timeout=self._cache_timeout,
            )
        except Exception as e:
            logger.warning(f"Candle cache read failed for {symbol} {interval.value}: {e}")
            return None

    async def _store_candles(
        self, symbol: str, interval: Timeframe, limit: int, candles: list[Candle]
    ) -> None:
        try:
            await asyncio.wait_for(
                self._cache.cache_candles(
                    symbol, interval.value, limit, candles, ttl=self._historical_ttl
                ),
                timeout=self._cache_timeout,
            )
        except Exception as e:
            logger.warning(f"Candle cache write failed for {symbol} {interval.value}: {e}")

    async def health_check(self) -> bool:
        return await self._source.health_check()

    async def close(self) -> None:
        await self._source.close()


# Singleton instance
_service_instance: Optional[MarketDataService] = None


def get_market_data_service() -> MarketDataService:
    """Get or create market data service instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = MarketDataService()
    return _service_instance
