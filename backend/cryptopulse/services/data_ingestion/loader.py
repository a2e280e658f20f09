"""
Provider selection.

Maps the configured provider name to a CandleSource implementation.
"""

import logging
from typing import Optional

from cryptopulse.core.config import settings
from cryptopulse.services.base import ValidationError
from cryptopulse.services.data_ingestion.binance_adapter import BinanceSource
from cryptopulse.services.data_ingestion.coincap_adapter import CoinCapSource
from cryptopulse.services.data_ingestion.cryptocompare_adapter import CryptoCompareSource
from cryptopulse.services.data_ingestion.interface import CandleSource

logger = logging.getLogger(__name__)

PROVIDERS = {
    "binance": BinanceSource,
    "cryptocompare": CryptoCompareSource,
    "coincap": CoinCapSource,
}


def get_candle_source(provider: Optional[str] = None) -> CandleSource:
    """Build the candle source for ``provider`` (defaults to settings)."""
    provider = (provider or settings.market_data_provider).lower()
    source_cls = PROVIDERS.get(provider)
    if source_cls is None:
        raise ValidationError(
            "MarketData",
            f"Unknown market data provider '{provider}'",
            {"available": sorted(PROVIDERS)},
        )
    logger.info(f"Using {source_cls.__name__} for market data")
    return source_cls()
