"""
Technical Indicator Calculations

Pure NumPy implementations of technical indicators.
NO I/O - All math is deterministic.

Array functions return a series the same length as the input, NaN where
the indicator's lookback is not yet satisfied. ``valid_tail`` compacts a
series to the part that is defined, which is the shape the history
reconstruction aligns back onto candles.
"""

import numpy as np
from typing import Optional


# =============================================================================
# MOVING AVERAGES
# =============================================================================


def _first_valid_index(data: np.ndarray) -> Optional[int]:
    valid = np.flatnonzero(~np.isnan(data))
    return int(valid[0]) if len(valid) > 0 else None


def sma(data: np.ndarray, period: int) -> np.ndarray:
    """Simple Moving Average."""
    if len(data) < period:
        return np.full(len(data), np.nan)

    result = np.full(len(data), np.nan)
    for i in range(period - 1, len(data)):
        result[i] = np.mean(data[i - period + 1 : i + 1])
    return result


def ema(data: np.ndarray, period: int) -> np.ndarray:
    """
    Exponential Moving Average.

    Seeded with the SMA of the first ``period`` values. A leading NaN
    prefix (e.g. a MACD line) is skipped and the seed starts after it.
    """
    result = np.full(len(data), np.nan)
    start = _first_valid_index(data)
    if start is None or len(data) - start < period:
        return result

    multiplier = 2 / (period + 1)

    # Start with SMA
    seed = start + period - 1
    result[seed] = np.mean(data[start : seed + 1])

    # Calculate EMA
    for i in range(seed + 1, len(data)):
        result[i] = (data[i] - result[i - 1]) * multiplier + result[i - 1]

    return result


# =============================================================================
# MOMENTUM INDICATORS
# =============================================================================


def _rsi_from_averages(avg_gain: float, avg_loss: float) -> float:
    # Flat window: no gains and no losses
    if avg_gain == 0 and avg_loss == 0:
        return 50.0
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100 - (100 / (1 + rs))


def rsi(closes: np.ndarray, period: int = 14) -> np.ndarray:
    """
    Relative Strength Index (Wilder).

    The first value sits at index ``period``. When only ``period`` closes
    exist, the seed averages use the ``period - 1`` available changes and
    the single value lands on the last close.
    """
    result = np.full(len(closes), np.nan)
    if len(closes) < 2 or len(closes) < period:
        return result

    # Calculate price changes
    deltas = np.diff(closes)

    # Separate gains and losses
    gains = np.where(deltas > 0, deltas, 0.0)
    losses = np.where(deltas < 0, -deltas, 0.0)

    # First average
    seed = min(period, len(deltas))
    avg_gain = float(np.mean(gains[:seed]))
    avg_loss = float(np.mean(losses[:seed]))
    result[seed] = _rsi_from_averages(avg_gain, avg_loss)

    # Subsequent RSI values using smoothed averages
    for i in range(seed, len(deltas)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        result[i + 1] = _rsi_from_averages(avg_gain, avg_loss)

    return result


def macd(
    closes: np.ndarray,
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    MACD (Moving Average Convergence Divergence).

    Returns: (macd_line, signal_line, histogram)
    """
    fast_ema = ema(closes, fast_period)
    slow_ema = ema(closes, slow_period)

    macd_line = fast_ema - slow_ema

    # Signal line is EMA of MACD line
    signal_line = ema(macd_line, signal_period)

    # Histogram
    histogram = macd_line - signal_line

    return macd_line, signal_line, histogram


# =============================================================================
# VOLATILITY INDICATORS
# =============================================================================


def bollinger_bands(
    closes: np.ndarray, period: int = 20, std_dev: float = 2.0
) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Bollinger Bands.

    Returns: (upper, middle, lower, bandwidth, percent_b)
    bandwidth is in percent of the middle band. Collapsed bands give
    percent_b 0.5; a zero middle band gives bandwidth 0.
    """
    middle = sma(closes, period)

    # Population standard deviation
    std = np.full(len(closes), np.nan)
    for i in range(period - 1, len(closes)):
        std[i] = np.std(closes[i - period + 1 : i + 1])

    upper = middle + (std_dev * std)
    lower = middle - (std_dev * std)
    width = upper - lower

    with np.errstate(divide="ignore", invalid="ignore"):
        bandwidth = np.where(middle != 0, width / middle * 100, 0.0)
        percent_b = np.where(width != 0, (closes - lower) / width, 0.5)

    # Keep the lookback prefix undefined
    bandwidth[np.isnan(middle)] = np.nan
    percent_b[np.isnan(middle)] = np.nan

    return upper, middle, lower, bandwidth, percent_b


# =============================================================================
# VOLUME INDICATORS
# =============================================================================


def volume_profile(
    highs: np.ndarray,
    lows: np.ndarray,
    volumes: np.ndarray,
    bins: int = 20,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Volume by price level over candle midpoints.

    Returns: (price_levels, volumes) for occupied buckets only, in
    ascending price order. The price level is the bucket's lower edge.
    The top of the range falls into the last bucket; a zero-width range
    collapses into a single bucket at the minimum.
    """
    if len(highs) == 0:
        return np.array([]), np.array([])

    mids = (highs + lows) / 2
    min_price = float(np.min(mids))
    max_price = float(np.max(mids))
    step = (max_price - min_price) / bins

    if step > 0:
        levels = np.floor((mids - min_price) / step).astype(int)
        levels = np.clip(levels, 0, bins - 1)
    else:
        levels = np.zeros(len(mids), dtype=int)

    totals = np.bincount(levels, weights=volumes, minlength=bins)
    occupied = np.unique(levels)

    return min_price + occupied * step, totals[occupied]


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def get_last_valid(arr: np.ndarray) -> Optional[float]:
    """Get last non-NaN value from array."""
    valid = arr[~np.isnan(arr)]
    return float(valid[-1]) if len(valid) > 0 else None


def valid_tail(arr: np.ndarray) -> np.ndarray:
    """Drop the NaN lookback prefix, keeping one value per candle after it."""
    start = _first_valid_index(arr)
    if start is None:
        return arr[:0]
    return arr[start:]
