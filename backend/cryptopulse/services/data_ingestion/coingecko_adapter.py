"""
CoinGecko Data Adapter

Market listings, per-coin market data and trending coins. CoinGecko has
no exchange candles, so this client is used for prices and the trading
pair directory only.
"""

import logging
from datetime import datetime, timezone

from cryptopulse.core.config import settings
from cryptopulse.schemas.market import CryptoPrice
from cryptopulse.services.base import DataSourceError
from cryptopulse.services.data_ingestion.http_source import HttpCandleSource

logger = logging.getLogger(__name__)


# Trading pair -> CoinGecko coin id
SYMBOL_TO_ID = {
    "BTCUSDT": "bitcoin",
    "ETHUSDT": "ethereum",
    "BNBUSDT": "binancecoin",
    "SOLUSDT": "solana",
    "ADAUSDT": "cardano",
}


def get_coingecko_id(symbol: str) -> str:
    symbol = symbol.upper()
    return SYMBOL_TO_ID.get(symbol) or symbol.replace("USDT", "").lower()


class CoinGeckoClient(HttpCandleSource):
    """CoinGecko REST client."""

    def __init__(self, base_url: str = None, api_key: str = None, **kwargs):
        api_key = api_key or settings.coingecko_api_key
        headers = {"x-cg-demo-api-key": api_key} if api_key else {}
        super().__init__(base_url or settings.coingecko_base_url, headers=headers, **kwargs)

    @property
    def name(self) -> str:
        return "CoinGecko"

    async def fetch_candles(self, symbol, interval=None, limit=100):
        raise DataSourceError(self.name, "CoinGecko does not provide exchange candles")

    async def fetch_markets(self, ids: list[str] = None, limit: int = 250) -> list[dict]:
        """Coins ordered by market cap, as returned by /coins/markets."""
        params = {
            "vs_currency": "usd",
            "order": "market_cap_desc",
            "per_page": len(ids) if ids else limit,
            "page": 1,
            "sparkline": "false",
        }
        if ids:
            params["ids"] = ",".join(ids)

        data = await self._get_json("/coins/markets", params=params)
        if not isinstance(data, list):
            raise DataSourceError(self.name, "Unexpected /coins/markets payload")
        return data

    async def fetch_top_coins(self, limit: int = 250) -> list[dict]:
        return await self.fetch_markets(limit=limit)

    async def fetch_market_data(self, symbols: list[str]) -> list[dict]:
        """Market cap, rank, volume and 24h change for trading pairs."""
        coins = await self.fetch_markets(ids=[get_coingecko_id(s) for s in symbols])
        return [
            {
                "symbol": coin["symbol"].upper(),
                "marketCap": coin.get("market_cap"),
                "marketCapRank": coin.get("market_cap_rank"),
                "volume": coin.get("total_volume"),
                "priceChange24h": coin.get("price_change_percentage_24h"),
            }
            for coin in coins
        ]

    async def fetch_price(self, symbol: str) -> CryptoPrice:
        coins = await self.fetch_markets(ids=[get_coingecko_id(symbol)])
        if not coins:
            raise DataSourceError(self.name, f"No market data for {symbol}")

        coin = coins[0]
        try:
            last_updated = coin.get("last_updated")
            return CryptoPrice(
                symbol=symbol.upper(),
                price=float(coin["current_price"]),
                change_24h=float(coin.get("price_change_24h") or 0),
                change_percent_24h=float(coin.get("price_change_percentage_24h") or 0),
                high_24h=float(coin.get("high_24h") or 0),
                low_24h=float(coin.get("low_24h") or 0),
                volume_24h=float(coin.get("total_volume") or 0),
                market_cap=coin.get("market_cap"),
                last_updated=last_updated or datetime.now(timezone.utc),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise DataSourceError(self.name, f"Malformed market data for {symbol}: {e}") from e

    async def fetch_trending(self) -> list[dict]:
        data = await self._get_json("/search/trending")
        try:
            return [
                {"symbol": entry["item"]["symbol"], "name": entry["item"]["name"]}
                for entry in data["coins"]
            ]
        except (KeyError, TypeError) as e:
            raise DataSourceError(self.name, f"Malformed trending payload: {e}") from e

    async def health_check(self) -> bool:
        try:
            return len(await self.fetch_top_coins(limit=1)) > 0
        except DataSourceError as e:
            logger.warning(f"{self.name} health check failed: {e}")
            return False
