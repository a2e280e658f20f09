"""
Binance Data Adapter

Spot klines and 24h tickers from the public Binance REST API.
"""

import logging
from datetime import datetime, timezone

from cryptopulse.core.config import settings
from cryptopulse.schemas.market import Candle, CryptoPrice, Timeframe
from cryptopulse.services.base import DataSourceError
from cryptopulse.services.data_ingestion.http_source import HttpCandleSource

logger = logging.getLogger(__name__)

# Binance caps klines at 1000 per request
MAX_KLINES = 1000


def parse_kline(row: list) -> Candle:
    """Binance kline: [openTime, open, high, low, close, volume, closeTime, ...]"""
    return Candle(
        timestamp=int(row[0]),
        open=float(row[1]),
        high=float(row[2]),
        low=float(row[3]),
        close=float(row[4]),
        volume=float(row[5]),
    )


class BinanceSource(HttpCandleSource):
    """Candle source backed by Binance spot market data."""

    def __init__(self, base_url: str = None, **kwargs):
        super().__init__(base_url or settings.binance_base_url, **kwargs)

    @property
    def name(self) -> str:
        return "Binance"

    async def fetch_candles(
        self,
        symbol: str,
        interval: Timeframe = Timeframe.H1,
        limit: int = 100,
    ) -> list[Candle]:
        symbol = symbol.upper()
        data = await self._get_json(
            "/klines",
            params={
                "symbol": symbol,
                "interval": interval.value,
                "limit": min(limit, MAX_KLINES),
            },
        )

        if not isinstance(data, list):
            raise DataSourceError(self.name, f"Unexpected klines payload for {symbol}")

        try:
            candles = [parse_kline(row) for row in data]
        except (IndexError, KeyError, TypeError, ValueError) as e:
            raise DataSourceError(self.name, f"Malformed kline for {symbol}: {e}") from e
        logger.debug(f"Binance: {len(candles)} {interval.value} candles for {symbol}")
        return candles

    async def fetch_price(self, symbol: str) -> CryptoPrice:
        symbol = symbol.upper()
        data = await self._get_json("/ticker/24hr", params={"symbol": symbol})

        try:
            return CryptoPrice(
                symbol=symbol,
                price=float(data["lastPrice"]),
                change_24h=float(data["priceChange"]),
                change_percent_24h=float(data["priceChangePercent"]),
                high_24h=float(data["highPrice"]),
                low_24h=float(data["lowPrice"]),
                volume_24h=float(data["volume"]),
                last_updated=datetime.fromtimestamp(
                    int(data.get("closeTime", 0)) / 1000, tz=timezone.utc
                ),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise DataSourceError(self.name, f"Malformed ticker for {symbol}: {e}") from e
