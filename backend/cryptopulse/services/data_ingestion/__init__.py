"""
Market Data Ingestion

CONTRACT:
    Input:  symbol, interval, limit
    Output: list[Candle] (ascending), CryptoPrice

RESPONSIBILITIES:
    - Fetch OHLCV candles from Binance, CryptoCompare or CoinCap
    - Normalize provider payloads to Candle / CryptoPrice
    - Retry transient transport failures inside the adapters
    - Cache candle history briefly
    - List tradable pairs from CoinGecko

NO INDICATOR MATH - Pure data fetching and transformation.
"""

from cryptopulse.services.data_ingestion.interface import CandleSource
from cryptopulse.services.data_ingestion.loader import get_candle_source
from cryptopulse.services.data_ingestion.service import (
    MarketDataService,
    get_market_data_service,
)
from cryptopulse.services.data_ingestion.coingecko_adapter import CoinGeckoClient
from cryptopulse.services.data_ingestion.trading_pairs import (
    TradingPairService,
    get_trading_pair_service,
)

__all__ = [
    "CandleSource",
    "get_candle_source",
    "MarketDataService",
    "get_market_data_service",
    "CoinGeckoClient",
    "TradingPairService",
    "get_trading_pair_service",
]
