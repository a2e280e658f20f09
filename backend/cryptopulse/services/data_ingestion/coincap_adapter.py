"""
CoinCap Data Adapter

Candles from CoinCap's /candles endpoint (Binance market, USDT quote) and
prices from /assets. CoinCap keys assets by id, not ticker.
"""

import logging
from datetime import datetime, timezone

from cryptopulse.core.config import settings
from cryptopulse.schemas.market import Candle, CryptoPrice, Timeframe
from cryptopulse.services.base import DataSourceError
from cryptopulse.services.data_ingestion.http_source import HttpCandleSource

logger = logging.getLogger(__name__)


# Trading pair -> CoinCap asset id
SYMBOL_TO_ID = {
    "BTCUSDT": "bitcoin",
    "ETHUSDT": "ethereum",
    "BNBUSDT": "binance-coin",
    "SOLUSDT": "solana",
    "ADAUSDT": "cardano",
    "XRPUSDT": "xrp",
    "DOGEUSDT": "dogecoin",
    "DOTUSDT": "polkadot",
    "LTCUSDT": "litecoin",
    "AVAXUSDT": "avalanche",
    "LINKUSDT": "chainlink",
    "SUIUSDT": "sui",
}

INTERVAL_MAP = {
    Timeframe.M1: "m1",
    Timeframe.M5: "m5",
    Timeframe.M15: "m15",
    Timeframe.H1: "h1",
    Timeframe.H4: "h4",
    Timeframe.D1: "d1",
    Timeframe.W1: "w1",
}


def get_asset_id(symbol: str) -> str:
    symbol = symbol.upper()
    return SYMBOL_TO_ID.get(symbol) or symbol.replace("USDT", "").lower()


class CoinCapSource(HttpCandleSource):
    """Candle source backed by CoinCap."""

    def __init__(self, base_url: str = None, api_key: str = None, **kwargs):
        api_key = api_key or settings.coincap_api_key
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        super().__init__(base_url or settings.coincap_base_url, headers=headers, **kwargs)

    @property
    def name(self) -> str:
        return "CoinCap"

    async def fetch_candles(
        self,
        symbol: str,
        interval: Timeframe = Timeframe.H1,
        limit: int = 100,
    ) -> list[Candle]:
        data = await self._get_json(
            "/candles",
            params={
                "exchange": "binance",
                "interval": INTERVAL_MAP[interval],
                "baseId": get_asset_id(symbol),
                "quoteId": "tether",
            },
        )

        rows = data.get("data")
        if not isinstance(rows, list):
            raise DataSourceError(self.name, f"Invalid candles payload for {symbol}")

        try:
            candles = [
                Candle(
                    timestamp=int(row["period"]),
                    open=float(row["open"]),
                    high=float(row["high"]),
                    low=float(row["low"]),
                    close=float(row["close"]),
                    volume=float(row["volume"]),
                )
                for row in rows
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise DataSourceError(self.name, f"Malformed candle for {symbol}: {e}") from e

        # No limit parameter on /candles
        candles.sort(key=lambda c: c.timestamp)
        return candles[-limit:]

    async def fetch_price(self, symbol: str) -> CryptoPrice:
        data = await self._get_json(f"/assets/{get_asset_id(symbol)}")
        asset = data.get("data")
        if not asset:
            raise DataSourceError(self.name, f"No asset data for {symbol}")

        try:
            price = float(asset["priceUsd"])
            change_pct = float(asset["changePercent24Hr"])
            timestamp = data.get("timestamp")
            return CryptoPrice(
                symbol=symbol.upper(),
                price=price,
                change_24h=price * change_pct / 100,  # Approximate absolute change
                change_percent_24h=change_pct,
                # /assets has no 24h high/low
                high_24h=0.0,
                low_24h=0.0,
                volume_24h=float(asset.get("volumeUsd24Hr") or 0),
                market_cap=float(asset["marketCapUsd"]) if asset.get("marketCapUsd") else None,
                last_updated=(
                    datetime.fromtimestamp(int(timestamp) / 1000, tz=timezone.utc)
                    if timestamp
                    else datetime.now(timezone.utc)
                ),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise DataSourceError(self.name, f"Malformed asset for {symbol}: {e}") from e
