"""
CryptoCompare Data Adapter

Historical OHLCV from the histominute/histohour/histoday endpoints.
Intervals CryptoCompare lacks natively are built with ``aggregate``.
"""

import logging
from datetime import datetime, timezone

from cryptopulse.core.config import settings
from cryptopulse.schemas.market import Candle, CryptoPrice, Timeframe
from cryptopulse.services.base import DataSourceError
from cryptopulse.services.data_ingestion.http_source import HttpCandleSource

logger = logging.getLogger(__name__)


# Endpoint and aggregate per timeframe
ENDPOINT_MAP = {
    Timeframe.M1: ("/v2/histominute", 1),
    Timeframe.M5: ("/v2/histominute", 5),
    Timeframe.M15: ("/v2/histominute", 15),
    Timeframe.H1: ("/v2/histohour", 1),
    Timeframe.H4: ("/v2/histohour", 4),
    Timeframe.D1: ("/v2/histoday", 1),
    Timeframe.W1: ("/v2/histoday", 7),
}


def split_symbol(symbol: str) -> tuple[str, str]:
    """BTCUSDT -> (BTC, USDT); otherwise first three letters are the base."""
    symbol = symbol.upper()
    if symbol.endswith("USDT"):
        return symbol[: -len("USDT")], "USDT"
    return symbol[:3], symbol[3:]


def parse_histo_row(row: dict) -> Candle:
    """CryptoCompare volume is quote volume, falling back to base volume."""
    return Candle(
        timestamp=int(row["time"]) * 1000,
        open=float(row["open"]),
        high=float(row["high"]),
        low=float(row["low"]),
        close=float(row["close"]),
        volume=float(row.get("volumeto") or row.get("volumefrom") or 0),
    )


class CryptoCompareSource(HttpCandleSource):
    """Candle source backed by CryptoCompare."""

    def __init__(self, base_url: str = None, api_key: str = None, **kwargs):
        api_key = api_key or settings.cryptocompare_api_key
        headers = {"Authorization": f"Apikey {api_key}"} if api_key else {}
        super().__init__(base_url or settings.cryptocompare_base_url, headers=headers, **kwargs)

    @property
    def name(self) -> str:
        return "CryptoCompare"

    async def fetch_candles(
        self,
        symbol: str,
        interval: Timeframe = Timeframe.H1,
        limit: int = 100,
    ) -> list[Candle]:
        fsym, tsym = split_symbol(symbol)
        endpoint, aggregate = ENDPOINT_MAP[interval]

        params = {"fsym": fsym, "tsym": tsym, "limit": limit}
        if aggregate > 1:
            params["aggregate"] = aggregate

        data = await self._get_json(endpoint, params=params)

        if data.get("Response") == "Error":
            raise DataSourceError(
                self.name,
                data.get("Message") or "Unknown error from CryptoCompare API",
            )

        rows = (data.get("Data") or {}).get("Data")
        if not isinstance(rows, list):
            raise DataSourceError(self.name, "Invalid response format from CryptoCompare API")

        try:
            candles = [parse_histo_row(row) for row in rows]
        except (KeyError, TypeError, ValueError) as e:
            raise DataSourceError(self.name, f"Malformed candle for {symbol}: {e}") from e
        candles.sort(key=lambda c: c.timestamp)
        return candles[-limit:]

    async def fetch_price(self, symbol: str) -> CryptoPrice:
        fsym, tsym = split_symbol(symbol)
        data = await self._get_json("/pricemultifull", params={"fsyms": fsym, "tsyms": tsym})

        raw = (data.get("RAW") or {}).get(fsym, {}).get(tsym)
        if not raw:
            raise DataSourceError(self.name, f"No price data for {symbol}")

        try:
            return CryptoPrice(
                symbol=symbol.upper(),
                price=float(raw["PRICE"]),
                change_24h=float(raw["CHANGE24HOUR"]),
                change_percent_24h=float(raw["CHANGEPCT24HOUR"]),
                high_24h=float(raw["HIGH24HOUR"]),
                low_24h=float(raw["LOW24HOUR"]),
                volume_24h=float(raw["VOLUME24HOURTO"]),
                market_cap=raw.get("MKTCAP"),
                last_updated=datetime.fromtimestamp(int(raw["LASTUPDATE"]), tz=timezone.utc),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise DataSourceError(self.name, f"Malformed price for {symbol}: {e}") from e
