"""
CONTRACT 2: Indicator Engine

Input: list[Candle]
Output: IndicatorSnapshot, IndicatorHistory

All numbers are unrounded floats. Rounding is a presentation concern.
Field aliases keep the camelCase names the dashboard consumes.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


# =============================================================================
# ENUMS
# =============================================================================


class RSISignal(str, Enum):
    OVERBOUGHT = "overbought"
    OVERSOLD = "oversold"
    NEUTRAL = "neutral"


RSI_OVERBOUGHT = 70.0
RSI_OVERSOLD = 30.0


def classify_rsi(value: float) -> RSISignal:
    """Map an RSI value to its zone. >70 overbought, <30 oversold."""
    if value > RSI_OVERBOUGHT:
        return RSISignal.OVERBOUGHT
    if value < RSI_OVERSOLD:
        return RSISignal.OVERSOLD
    return RSISignal.NEUTRAL


# =============================================================================
# OUTPUT: single-point indicator values
# =============================================================================


class RSIResult(BaseModel):
    """Latest RSI value."""

    value: float = Field(..., ge=0, le=100)
    timestamp: int
    signal: RSISignal


class MACDResult(BaseModel):
    """Latest MACD values. histogram == macd - signal."""

    macd: float
    signal: float
    histogram: float
    timestamp: int


class EMASet(BaseModel):
    """
    EMA family. A component is 0 when its history is unavailable
    (ema200 below 200 candles).
    """

    ema9: float
    ema21: float
    ema50: float
    ema200: float


class BollingerBandsResult(BaseModel):
    """Latest Bollinger Bands."""

    upper: float
    middle: float
    lower: float
    timestamp: int
    bandwidth: float = Field(..., ge=0, description="(upper - lower) / middle, in percent")
    percent_b: float = Field(..., alias="percentB", description="Price position within bands")

    class Config:
        populate_by_name = True


class VolumeProfileBin(BaseModel):
    """Single occupied price bucket of the volume profile."""

    price_level: float = Field(..., alias="priceLevel", description="Lower edge of the bucket")
    volume: float = Field(..., ge=0)
    percentage: float = Field(..., ge=0, le=100)

    class Config:
        populate_by_name = True


class EMACrossover(BaseModel):
    """EMA9/EMA21 crossover on the latest candle."""

    bullish: bool = False
    bearish: bool = False


# =============================================================================
# OUTPUT: IndicatorSnapshot (Complete Response)
# =============================================================================


class IndicatorSnapshot(BaseModel):
    """
    Complete indicator set for a symbol.
    Returned by: Aggregate calculator / IndicatorService
    Consumed by: Dashboard cards, indicator cache

    Only built when every sub-result is available.
    """

    symbol: str
    timestamp: int = Field(..., description="Computation time, epoch milliseconds")
    rsi: RSIResult
    macd: MACDResult
    ema: EMASet
    bollinger_bands: BollingerBandsResult = Field(..., alias="bollingerBands")
    volume_profile: list[VolumeProfileBin] = Field(..., alias="volumeProfile")
    ema_crossover: EMACrossover = Field(default_factory=EMACrossover, alias="emaCrossover")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "symbol": "BTCUSDT",
                "timestamp": 1718000000000,
                "rsi": {"value": 61.2, "timestamp": 1717999200000, "signal": "neutral"},
                "macd": {
                    "macd": 120.5,
                    "signal": 98.1,
                    "histogram": 22.4,
                    "timestamp": 1717999200000,
                },
                "ema": {"ema9": 67010.2, "ema21": 66800.7, "ema50": 66120.3, "ema200": 64011.9},
                "bollingerBands": {
                    "upper": 67900.0,
                    "middle": 66900.0,
                    "lower": 65900.0,
                    "timestamp": 1717999200000,
                    "bandwidth": 2.99,
                    "percentB": 0.62,
                },
                "volumeProfile": [
                    {"priceLevel": 66800.0, "volume": 1520.4, "percentage": 14.2},
                ],
                "emaCrossover": {"bullish": False, "bearish": False},
            }
        }


class CacheEntry(BaseModel):
    """A stored snapshot and when it was written."""

    symbol: str
    interval: str
    snapshot: IndicatorSnapshot
    stored_at: int = Field(..., alias="storedAt", description="Epoch milliseconds")

    class Config:
        populate_by_name = True


class IndicatorResponse(BaseModel):
    """Snapshot plus whether it came from the cache."""

    snapshot: IndicatorSnapshot
    cached: bool


# =============================================================================
# OUTPUT: History series for charting
# =============================================================================


class RSIHistoryPoint(BaseModel):
    time: int
    value: float
    signal: RSISignal


class MACDHistoryPoint(BaseModel):
    time: int
    macd: float
    signal: float
    histogram: float


class BollingerBandsHistoryPoint(BaseModel):
    time: int
    upper: float
    middle: float
    lower: float
    price: float


class EMAHistoryPoint(BaseModel):
    time: int
    ema9: float
    ema21: float
    ema50: float
    ema200: float


class IndicatorHistory(BaseModel):
    """Per-indicator series, each aligned to candle timestamps."""

    rsi_history: list[RSIHistoryPoint] = Field(default_factory=list, alias="rsiHistory")
    macd_history: list[MACDHistoryPoint] = Field(default_factory=list, alias="macdHistory")
    bb_history: list[BollingerBandsHistoryPoint] = Field(default_factory=list, alias="bbHistory")
    ema_history: list[EMAHistoryPoint] = Field(default_factory=list, alias="emaHistory")

    class Config:
        populate_by_name = True


class UnavailableReason(str, Enum):
    INSUFFICIENT_DATA = "insufficient_data"


class IndicatorUnavailable(BaseModel):
    """Error body when no snapshot can be produced."""

    symbol: str
    reason: UnavailableReason = UnavailableReason.INSUFFICIENT_DATA
    detail: Optional[str] = None
