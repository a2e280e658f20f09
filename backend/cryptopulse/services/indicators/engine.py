"""
Indicator Engine

Single-point indicator values from a candle sequence, plus the aggregate
calculator. Each indicator has a minimum history length; below it the
result is ``None`` (unavailable), which is a normal outcome and never an
exception. Only malformed input raises.
"""

import math
import time
from typing import Optional, Sequence

import numpy as np

from cryptopulse.schemas.market import Candle
from cryptopulse.schemas.indicators import (
    RSIResult,
    MACDResult,
    EMASet,
    BollingerBandsResult,
    VolumeProfileBin,
    EMACrossover,
    IndicatorSnapshot,
    classify_rsi,
)
from cryptopulse.services.base import MalformedInputError
from cryptopulse.services.indicators.calculations import (
    ema,
    rsi,
    macd,
    bollinger_bands,
    volume_profile,
    get_last_valid,
)

ENGINE_NAME = "IndicatorEngine"

RSI_PERIOD = 14
MACD_FAST = 12
MACD_SLOW = 26
MACD_SIGNAL = 9
BB_PERIOD = 20
BB_STD_DEV = 2.0
EMA_PERIODS = (9, 21, 50, 200)
EMA_MIN_CANDLES = 50
EMA_LONG_MIN_CANDLES = 200
VOLUME_PROFILE_BINS = 20


def validate_candles(candles: Sequence[Candle]) -> None:
    """
    Reject sequences the engine would silently get wrong.

    Raises MalformedInputError on decreasing timestamps or non-finite values.
    Empty input is valid (every indicator is simply unavailable).
    """
    previous_ts = None
    for index, candle in enumerate(candles):
        values = (candle.open, candle.high, candle.low, candle.close, candle.volume)
        if not all(math.isfinite(v) for v in values):
            raise MalformedInputError(
                ENGINE_NAME,
                f"Non-finite OHLCV value at index {index}",
                {"index": index, "timestamp": candle.timestamp},
            )
        if previous_ts is not None and candle.timestamp < previous_ts:
            raise MalformedInputError(
                ENGINE_NAME,
                f"Candles out of order at index {index}",
                {"index": index, "timestamp": candle.timestamp, "previous": previous_ts},
            )
        previous_ts = candle.timestamp


def _closes(candles: Sequence[Candle]) -> np.ndarray:
    return np.array([c.close for c in candles], dtype=float)


# Unvalidated helpers; the public compute_* functions validate first.


def _rsi(candles: Sequence[Candle], closes: np.ndarray, period: int) -> Optional[RSIResult]:
    if len(candles) < period:
        return None

    value = get_last_valid(rsi(closes, period))
    if value is None:
        return None

    return RSIResult(
        value=value,
        timestamp=candles[-1].timestamp,
        signal=classify_rsi(value),
    )


def _macd(
    candles: Sequence[Candle],
    closes: np.ndarray,
    fast: int,
    slow: int,
    signal_period: int,
) -> Optional[MACDResult]:
    if len(candles) < slow + signal_period:
        return None

    macd_line, signal_line, _ = macd(closes, fast, slow, signal_period)
    macd_val = get_last_valid(macd_line)
    signal_val = get_last_valid(signal_line)
    if macd_val is None or signal_val is None:
        return None

    return MACDResult(
        macd=macd_val,
        signal=signal_val,
        histogram=macd_val - signal_val,
        timestamp=candles[-1].timestamp,
    )


def _ema_set(closes: np.ndarray) -> Optional[EMASet]:
    if len(closes) < EMA_MIN_CANDLES:
        return None

    ema200 = 0.0
    if len(closes) >= EMA_LONG_MIN_CANDLES:
        ema200 = get_last_valid(ema(closes, 200)) or 0.0

    return EMASet(
        ema9=get_last_valid(ema(closes, 9)) or 0.0,
        ema21=get_last_valid(ema(closes, 21)) or 0.0,
        ema50=get_last_valid(ema(closes, 50)) or 0.0,
        ema200=ema200,
    )


def _bollinger(
    candles: Sequence[Candle],
    closes: np.ndarray,
    period: int,
    std_dev: float,
) -> Optional[BollingerBandsResult]:
    if len(candles) < period:
        return None

    upper, middle, lower, bandwidth, percent_b = bollinger_bands(closes, period, std_dev)

    return BollingerBandsResult(
        upper=float(upper[-1]),
        middle=float(middle[-1]),
        lower=float(lower[-1]),
        timestamp=candles[-1].timestamp,
        bandwidth=float(bandwidth[-1]),
        percent_b=float(percent_b[-1]),
    )


def _volume_profile(candles: Sequence[Candle], bins: int) -> list[VolumeProfileBin]:
    if not candles:
        return []

    highs = np.array([c.high for c in candles], dtype=float)
    lows = np.array([c.low for c in candles], dtype=float)
    volumes = np.array([c.volume for c in candles], dtype=float)

    levels, bucket_volumes = volume_profile(highs, lows, volumes, bins)
    total_volume = float(np.sum(bucket_volumes))

    profile = [
        VolumeProfileBin(
            price_level=float(level),
            volume=float(volume),
            percentage=(float(volume) / total_volume * 100) if total_volume > 0 else 0.0,
        )
        for level, volume in zip(levels, bucket_volumes)
    ]

    # Levels come in ascending price order, so a stable sort keeps ties by price
    profile.sort(key=lambda b: b.volume, reverse=True)
    return profile


def _crossover(closes: np.ndarray) -> EMACrossover:
    if len(closes) < EMA_MIN_CANDLES:
        return EMACrossover()

    ema9 = ema(closes, 9)
    ema21 = ema(closes, 21)

    current9, current21 = ema9[-1], ema21[-1]
    prev9, prev21 = ema9[-2], ema21[-2]

    return EMACrossover(
        bullish=bool(prev9 <= prev21 and current9 > current21),
        bearish=bool(prev9 >= prev21 and current9 < current21),
    )


def compute_rsi(candles: Sequence[Candle], period: int = RSI_PERIOD) -> Optional[RSIResult]:
    """Wilder RSI of closing prices, timestamped at the last candle."""
    validate_candles(candles)
    return _rsi(candles, _closes(candles), period)


def compute_macd(
    candles: Sequence[Candle],
    fast: int = MACD_FAST,
    slow: int = MACD_SLOW,
    signal_period: int = MACD_SIGNAL,
) -> Optional[MACDResult]:
    """MACD line, signal line and histogram at the last candle."""
    validate_candles(candles)
    return _macd(candles, _closes(candles), fast, slow, signal_period)


def compute_ema_set(candles: Sequence[Candle]) -> Optional[EMASet]:
    """
    EMA 9/21/50/200. Needs 50 candles; ema200 stays 0 below 200 candles
    so short histories still show the shorter averages.
    """
    validate_candles(candles)
    return _ema_set(_closes(candles))


def compute_bollinger_bands(
    candles: Sequence[Candle],
    period: int = BB_PERIOD,
    std_dev: float = BB_STD_DEV,
) -> Optional[BollingerBandsResult]:
    """Bollinger Bands around the SMA of closes, with bandwidth and %B."""
    validate_candles(candles)
    return _bollinger(candles, _closes(candles), period, std_dev)


def compute_volume_profile(
    candles: Sequence[Candle], bins: int = VOLUME_PROFILE_BINS
) -> list[VolumeProfileBin]:
    """Volume per midpoint-price bucket, largest bucket first."""
    validate_candles(candles)
    return _volume_profile(candles, bins)


def detect_ema_crossover(candles: Sequence[Candle]) -> EMACrossover:
    """EMA9 crossing EMA21 between the last two candles."""
    validate_candles(candles)
    return _crossover(_closes(candles))


def calculate_all(symbol: str, candles: Sequence[Candle]) -> Optional[IndicatorSnapshot]:
    """
    Calculate all indicators at once.

    Returns None when RSI, MACD, the EMA set or Bollinger Bands is
    unavailable. The volume profile never blocks.
    """
    validate_candles(candles)
    closes = _closes(candles)

    rsi_result = _rsi(candles, closes, RSI_PERIOD)
    macd_result = _macd(candles, closes, MACD_FAST, MACD_SLOW, MACD_SIGNAL)
    ema_result = _ema_set(closes)
    bb_result = _bollinger(candles, closes, BB_PERIOD, BB_STD_DEV)

    if rsi_result is None or macd_result is None or ema_result is None or bb_result is None:
        return None

    return IndicatorSnapshot(
        symbol=symbol,
        timestamp=int(time.time() * 1000),
        rsi=rsi_result,
        macd=macd_result,
        ema=ema_result,
        bollinger_bands=bb_result,
        volume_profile=_volume_profile(candles, VOLUME_PROFILE_BINS),
        ema_crossover=_crossover(closes),
    )
