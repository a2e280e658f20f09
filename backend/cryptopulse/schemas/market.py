"""
CONTRACT 1: Market Data

Input: symbol / interval / limit
Output: list[Candle], CryptoPrice, HistoricalData

Raw market data as returned by the candle sources, normalized to one shape
regardless of provider.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


# =============================================================================
# ENUMS
# =============================================================================


class Timeframe(str, Enum):
    M1 = "1m"
    M5 = "5m"
    M15 = "15m"
    H1 = "1h"
    H4 = "4h"
    D1 = "1d"
    W1 = "1w"


# =============================================================================
# CANDLES
# =============================================================================


class Candle(BaseModel):
    """
    Single OHLCV candlestick.

    Immutable once read. high/low consistency is assumed, not enforced.
    """

    timestamp: int = Field(..., description="Candle open time, epoch milliseconds")
    open: float
    high: float
    low: float
    close: float
    volume: float = Field(default=0.0, ge=0)

    class Config:
        frozen = True


class HistoricalData(BaseModel):
    """OHLCV history for a symbol/interval, oldest first."""

    symbol: str
    interval: Timeframe
    data: list[Candle]


# =============================================================================
# PRICES / PAIRS
# =============================================================================


class CryptoPrice(BaseModel):
    """24h ticker summary for a trading pair."""

    symbol: str
    price: float
    change_24h: float = Field(..., alias="change24h")
    change_percent_24h: float = Field(..., alias="changePercent24h")
    high_24h: float = Field(..., alias="high24h")
    low_24h: float = Field(..., alias="low24h")
    volume_24h: float = Field(..., alias="volume24h")
    market_cap: Optional[float] = Field(default=None, alias="marketCap")
    last_updated: datetime = Field(..., alias="lastUpdated")

    class Config:
        populate_by_name = True


class TradingPairInfo(BaseModel):
    """A tradable pair as listed in the pair picker."""

    symbol: str
    base_asset: str = Field(..., alias="baseAsset")
    quote_asset: str = Field(..., alias="quoteAsset")
    status: str = "TRADING"
    name: Optional[str] = None
    coingecko_id: Optional[str] = Field(default=None, alias="coinGeckoId")

    class Config:
        populate_by_name = True
