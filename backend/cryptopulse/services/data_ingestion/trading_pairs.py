"""
Trading Pair Directory

Top coins by market cap from CoinGecko, exposed as USDT pairs. The list is
held in an injected TTLCache; when CoinGecko is unreachable a static list
of majors is served instead.
"""

import logging
from typing import Optional

from cryptopulse.core.config import settings
from cryptopulse.schemas.market import TradingPairInfo
from cryptopulse.services.base import DataSourceError
from cryptopulse.services.cache.ttl_cache import TTLCache
from cryptopulse.services.data_ingestion.coingecko_adapter import CoinGeckoClient

logger = logging.getLogger(__name__)

PAIRS_CACHE_KEY = "coingecko:top"
MAX_RESULTS = 100

FALLBACK_PAIRS = [
    TradingPairInfo(symbol=f"{base}USDT", base_asset=base, quote_asset="USDT", name=name)
    for base, name in [
        ("BTC", "Bitcoin"),
        ("ETH", "Ethereum"),
        ("BNB", "BNB"),
        ("SOL", "Solana"),
        ("ADA", "Cardano"),
        ("XRP", "XRP"),
        ("DOGE", "Dogecoin"),
        ("DOT", "Polkadot"),
        ("MATIC", "Polygon"),
        ("LTC", "Litecoin"),
        ("AVAX", "Avalanche"),
        ("LINK", "Chainlink"),
    ]
]


class TradingPairService:
    """Searchable list of tradable pairs."""

    def __init__(
        self,
        client: Optional[CoinGeckoClient] = None,
        cache: Optional[TTLCache] = None,
    ):
        self._client = client or CoinGeckoClient()
        self._cache = cache or TTLCache(settings.trading_pairs_cache_seconds)

    async def _load_pairs(self) -> tuple[list[TradingPairInfo], bool]:
        """Returns (pairs, from_cache)."""
        cached = self._cache.get(PAIRS_CACHE_KEY)
        if cached is not None:
            return cached, True

        logger.info("Fetching coins from CoinGecko...")
        coins = await self._client.fetch_top_coins()
        pairs = [
            TradingPairInfo(
                symbol=f"{coin['symbol'].upper()}USDT",
                base_asset=coin["symbol"].upper(),
                quote_asset="USDT",
                name=coin.get("name"),
                coingecko_id=coin.get("id"),
            )
            for coin in coins
        ]
        self._cache.set(PAIRS_CACHE_KEY, pairs)
        logger.info(f"Cached {len(pairs)} trading pairs")
        return pairs, False

    async def list_pairs(self, query: str = "") -> dict:
        """
        Pairs matching ``query`` on base asset, name or symbol.

        Falls back to the static majors list if CoinGecko fails.
        """
        try:
            pairs, cached = await self._load_pairs()
        except DataSourceError as e:
            logger.warning(f"Trading pair fetch failed, serving fallback list: {e}")
            return {
                "pairs": FALLBACK_PAIRS,
                "cached": False,
                "total": len(FALLBACK_PAIRS),
                "error": e.message,
            }

        query = query.lower().strip()
        if query:
            pairs = [
                p for p in pairs
                if query in p.base_asset.lower()
                or query in (p.name or "").lower()
                or query in p.symbol.lower()
            ]

        return {
            "pairs": pairs[:MAX_RESULTS],
            "cached": cached,
            "total": len(pairs),
        }

    async def trending(self) -> list[dict]:
        return await self._client.fetch_trending()

    async def market_data(self, symbols: list[str]) -> list[dict]:
        return await self._client.fetch_market_data(symbols)

    def invalidate(self) -> None:
        self._cache.invalidate(PAIRS_CACHE_KEY)

    async def close(self) -> None:
        await self._client.close()


# Singleton instance
_service_instance: Optional[TradingPairService] = None


def get_trading_pair_service() -> TradingPairService:
    """Get or create trading pair service instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = TradingPairService()
    return _service_instance
