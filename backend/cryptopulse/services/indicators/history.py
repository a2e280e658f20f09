"""
Indicator History Reconstruction

Runs each indicator once over the whole closing-price series and maps the
output back onto candle timestamps for charting.

Each compacted output series is shorter than the input by its own lookback;
point ``i`` belongs to ``candles[i + offset]`` with
``offset = len(candles) - len(series)``.
"""

from typing import Sequence

import numpy as np

from cryptopulse.schemas.market import Candle
from cryptopulse.schemas.indicators import (
    IndicatorHistory,
    RSIHistoryPoint,
    MACDHistoryPoint,
    BollingerBandsHistoryPoint,
    EMAHistoryPoint,
    classify_rsi,
)
from cryptopulse.services.indicators.calculations import (
    ema,
    rsi,
    macd,
    bollinger_bands,
    valid_tail,
)
from cryptopulse.services.indicators.engine import (
    RSI_PERIOD,
    MACD_FAST,
    MACD_SLOW,
    MACD_SIGNAL,
    BB_PERIOD,
    BB_STD_DEV,
    validate_candles,
)

MAX_HISTORY_LENGTH = 100


def _offset(candles: Sequence[Candle], series: np.ndarray) -> int:
    return len(candles) - len(series)


def _aligned(full: np.ndarray, start: int) -> np.ndarray:
    """Slice a full-length series from ``start``, 0 where still undefined."""
    return np.nan_to_num(full[start:], nan=0.0)


def build_indicator_history(
    candles: Sequence[Candle], max_points: int = MAX_HISTORY_LENGTH
) -> IndicatorHistory:
    """Reconstruct RSI, MACD, Bollinger and EMA series for the given window."""
    validate_candles(candles)
    if not candles:
        return IndicatorHistory()

    closes = np.array([c.close for c in candles], dtype=float)

    # RSI
    rsi_values = valid_tail(rsi(closes, RSI_PERIOD))
    rsi_offset = _offset(candles, rsi_values)
    rsi_history = [
        RSIHistoryPoint(
            time=candles[i + rsi_offset].timestamp,
            value=float(value),
            signal=classify_rsi(float(value)),
        )
        for i, value in enumerate(rsi_values)
    ]

    # MACD, from where the signal line exists
    macd_line, signal_line, histogram = macd(closes, MACD_FAST, MACD_SLOW, MACD_SIGNAL)
    signal_values = valid_tail(signal_line)
    macd_offset = _offset(candles, signal_values)
    macd_history = [
        MACDHistoryPoint(
            time=candles[i + macd_offset].timestamp,
            macd=float(macd_line[i + macd_offset]),
            signal=float(signal),
            histogram=float(histogram[i + macd_offset]),
        )
        for i, signal in enumerate(signal_values)
    ]

    # Bollinger Bands
    upper, middle, lower, _, _ = bollinger_bands(closes, BB_PERIOD, BB_STD_DEV)
    middle_values = valid_tail(middle)
    bb_offset = _offset(candles, middle_values)
    bb_history = [
        BollingerBandsHistoryPoint(
            time=candles[i + bb_offset].timestamp,
            upper=float(upper[i + bb_offset]),
            middle=float(value),
            lower=float(lower[i + bb_offset]),
            price=float(closes[i + bb_offset]),
        )
        for i, value in enumerate(middle_values)
    ]

    # EMA family, aligned on EMA50; ema200 stays 0 until it exists
    ema50_values = valid_tail(ema(closes, 50))
    ema_offset = _offset(candles, ema50_values)
    ema9_values = _aligned(ema(closes, 9), ema_offset)
    ema21_values = _aligned(ema(closes, 21), ema_offset)
    ema200_values = _aligned(ema(closes, 200), ema_offset)
    ema_history = [
        EMAHistoryPoint(
            time=candles[i + ema_offset].timestamp,
            ema9=float(ema9_values[i]),
            ema21=float(ema21_values[i]),
            ema50=float(value),
            ema200=float(ema200_values[i]),
        )
        for i, value in enumerate(ema50_values)
    ]

    return IndicatorHistory(
        rsi_history=rsi_history[-max_points:],
        macd_history=macd_history[-max_points:],
        bb_history=bb_history[-max_points:],
        ema_history=ema_history[-max_points:],
    )
