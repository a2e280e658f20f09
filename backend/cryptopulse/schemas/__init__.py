"""
CryptoPulse Schema Contracts

This module defines all JSON contracts between system components.
These are the authoritative interfaces - all modules must conform to these schemas.
"""

from cryptopulse.schemas.market import (
    Timeframe,
    Candle,
    HistoricalData,
    CryptoPrice,
    TradingPairInfo,
)
from cryptopulse.schemas.indicators import (
    RSISignal,
    RSIResult,
    MACDResult,
    EMASet,
    BollingerBandsResult,
    VolumeProfileBin,
    EMACrossover,
    IndicatorSnapshot,
    CacheEntry,
    IndicatorResponse,
    IndicatorHistory,
)

__all__ = [
    # Market
    "Timeframe",
    "Candle",
    "HistoricalData",
    "CryptoPrice",
    "TradingPairInfo",
    # Indicators
    "RSISignal",
    "RSIResult",
    "MACDResult",
    "EMASet",
    "BollingerBandsResult",
    "VolumeProfileBin",
    "EMACrossover",
    "IndicatorSnapshot",
    "CacheEntry",
    "IndicatorResponse",
    "IndicatorHistory",
]
