"""
Unit tests for the NumPy indicator calculations.

Small synthetic series with hand-computed expected values.
"""

import numpy as np
import pytest

from cryptopulse.services.indicators.calculations import (
    sma,
    ema,
    rsi,
    macd,
    bollinger_bands,
    volume_profile,
    get_last_valid,
    valid_tail,
)


def test_sma_calculation():
    """First period-1 values are undefined, then plain averages."""
    result = sma(np.array([1.0, 2.0, 3.0, 4.0, 5.0]), 3)

    assert np.isnan(result[:2]).all()
    assert result[2:].tolist() == [2.0, 3.0, 4.0]


def test_sma_shorter_than_period():
    assert np.isnan(sma(np.array([1.0, 2.0]), 3)).all()


def test_ema_seeded_with_sma():
    data = np.arange(1.0, 11.0)
    result = ema(data, 3)

    assert np.isnan(result[:2]).all()
    assert result[2] == 2.0
    # multiplier 2/(3+1) = 0.5
    assert result[3] == pytest.approx((4.0 - 2.0) * 0.5 + 2.0)
    assert result[-1] == pytest.approx(9.0)


def test_ema_skips_leading_nan():
    data = np.array([np.nan, np.nan, 1.0, 2.0, 3.0, 4.0])
    result = ema(data, 2)

    assert np.isnan(result[:3]).all()
    assert result[3] == 1.5
    assert result[4] == pytest.approx((3.0 - 1.5) * (2 / 3) + 1.5)


def test_ema_not_enough_data():
    assert np.isnan(ema(np.array([1.0, 2.0]), 5)).all()


def test_rsi_wilder_smoothing():
    """Hand-computed Wilder RSI, period 2."""
    result = rsi(np.array([1.0, 2.0, 1.0, 2.0, 1.0]), 2)

    assert np.isnan(result[:2]).all()
    assert result[2] == pytest.approx(50.0)
    assert result[3] == pytest.approx(75.0)
    assert result[4] == pytest.approx(37.5)


def test_rsi_flat_series_is_neutral():
    result = valid_tail(rsi(np.full(30, 100.0), 14))
    assert len(result) == 16
    assert (result == 50.0).all()


def test_rsi_monotonic_series():
    rising = valid_tail(rsi(np.arange(1.0, 31.0), 14))
    falling = valid_tail(rsi(np.arange(30.0, 0.0, -1.0), 14))

    assert (rising == 100.0).all()
    assert (falling == 0.0).all()


def test_rsi_first_value_position():
    # Below the period: nothing
    assert np.isnan(rsi(np.arange(1.0, 14.0), 14)).all()

    # Exactly the period: a single value on the last close
    exact = rsi(np.arange(1.0, 15.0), 14)
    assert np.isnan(exact[:13]).all()
    assert not np.isnan(exact[13])

    # More than the period: first value at index ``period``
    longer = rsi(np.arange(1.0, 16.0), 14)
    assert np.isnan(longer[13])
    assert not np.isnan(longer[14])


def test_rsi_range():
    rng = np.random.default_rng(7)
    closes = 100 + np.cumsum(rng.normal(0, 1, 300))
    values = valid_tail(rsi(closes, 14))

    assert (values >= 0).all()
    assert (values <= 100).all()


def test_macd_histogram_and_signal_start():
    rng = np.random.default_rng(1)
    closes = 100 + np.cumsum(rng.normal(0, 1, 60))
    line, signal, hist = macd(closes, 12, 26, 9)

    # Line from the slow EMA seed, signal 8 candles later
    assert np.isnan(line[:25]).all() and not np.isnan(line[25])
    assert np.isnan(signal[:33]).all() and not np.isnan(signal[33])

    valid = ~np.isnan(hist)
    assert np.array_equal(hist[valid], (line - signal)[valid])


def test_bollinger_population_std():
    upper, middle, lower, bandwidth, percent_b = bollinger_bands(
        np.array([1.0, 2.0, 3.0]), period=3, std_dev=2.0
    )
    std = np.sqrt(2 / 3)

    assert middle[2] == pytest.approx(2.0)
    assert upper[2] == pytest.approx(2.0 + 2 * std)
    assert lower[2] == pytest.approx(2.0 - 2 * std)
    assert bandwidth[2] == pytest.approx(4 * std / 2.0 * 100)
    assert percent_b[2] == pytest.approx((3.0 - lower[2]) / (upper[2] - lower[2]))
    assert np.isnan(bandwidth[:2]).all()


def test_bollinger_flat_series():
    upper, middle, lower, bandwidth, percent_b = bollinger_bands(np.full(25, 50.0), 20, 2.0)

    assert upper[-1] == middle[-1] == lower[-1] == 50.0
    assert bandwidth[-1] == 0.0
    assert percent_b[-1] == 0.5


def test_volume_profile_binning():
    """Midpoints 10/20/30 in two buckets; the top of the range lands in the last."""
    highs = np.array([11.0, 21.0, 31.0])
    lows = np.array([9.0, 19.0, 29.0])
    volumes = np.array([1.0, 2.0, 3.0])

    levels, totals = volume_profile(highs, lows, volumes, bins=2)

    assert levels.tolist() == [10.0, 20.0]
    assert totals.tolist() == [1.0, 5.0]


def test_volume_profile_zero_range():
    levels, totals = volume_profile(
        np.full(5, 101.0), np.full(5, 99.0), np.full(5, 2.0), bins=20
    )

    assert levels.tolist() == [100.0]
    assert totals.tolist() == [10.0]


def test_volume_profile_empty():
    levels, totals = volume_profile(np.array([]), np.array([]), np.array([]))
    assert len(levels) == 0 and len(totals) == 0


def test_last_valid_and_tail():
    arr = np.array([np.nan, np.nan, 1.0, 2.0])

    assert get_last_valid(arr) == 2.0
    assert get_last_valid(np.full(3, np.nan)) is None
    assert valid_tail(arr).tolist() == [1.0, 2.0]
    assert len(valid_tail(np.full(3, np.nan))) == 0
