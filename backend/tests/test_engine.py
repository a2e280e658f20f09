"""
Unit tests for the indicator engine and the aggregate calculator.
"""

import math

import pytest

from cryptopulse.schemas.market import Candle
from cryptopulse.schemas.indicators import RSISignal, classify_rsi
from cryptopulse.services.base import MalformedInputError
from cryptopulse.services.indicators import engine
from cryptopulse.services.indicators.engine import (
    calculate_all,
    compute_rsi,
    compute_macd,
    compute_ema_set,
    compute_bollinger_bands,
    compute_volume_profile,
    detect_ema_crossover,
    validate_candles,
)
from tests.helpers import (
    flat_candles,
    make_candles,
    random_walk_candles,
    rising_candles,
)


# ============ RSI ============


def test_rsi_unavailable_below_period():
    assert compute_rsi(rising_candles(13)) is None
    assert compute_rsi(rising_candles(14)) is not None


def test_rsi_flat_and_rising():
    assert compute_rsi(flat_candles(30)).value == 50.0
    assert compute_rsi(flat_candles(30)).signal == RSISignal.NEUTRAL

    rising = compute_rsi(rising_candles(30))
    assert rising.value == 100.0
    assert rising.signal == RSISignal.OVERBOUGHT


def test_rsi_timestamp_is_last_candle():
    candles = random_walk_candles(40)
    assert compute_rsi(candles).timestamp == candles[-1].timestamp


@pytest.mark.parametrize(
    "value,expected",
    [
        (0.0, RSISignal.OVERSOLD),
        (29.99, RSISignal.OVERSOLD),
        (30.0, RSISignal.NEUTRAL),
        (50.0, RSISignal.NEUTRAL),
        (70.0, RSISignal.NEUTRAL),
        (70.01, RSISignal.OVERBOUGHT),
        (100.0, RSISignal.OVERBOUGHT),
    ],
)
def test_rsi_signal_boundaries(value, expected):
    assert classify_rsi(value) == expected


# ============ MACD ============


def test_macd_needs_slow_plus_signal():
    assert compute_macd(random_walk_candles(34)) is None
    assert compute_macd(random_walk_candles(35)) is not None


def test_macd_histogram_exact():
    result = compute_macd(random_walk_candles(200))
    assert result.histogram == result.macd - result.signal


# ============ EMA ============


def test_ema_set_thresholds():
    assert compute_ema_set(rising_candles(49)) is None

    short = compute_ema_set(rising_candles(120))
    assert short.ema200 == 0.0
    assert short.ema9 > short.ema21 > short.ema50 > 0

    full = compute_ema_set(rising_candles(200))
    assert full.ema200 > 0


def test_ema_crossover():
    bullish = detect_ema_crossover(make_candles([100.0] * 60 + [110.0]))
    assert bullish.bullish and not bullish.bearish

    bearish = detect_ema_crossover(make_candles([100.0] * 60 + [90.0]))
    assert bearish.bearish and not bearish.bullish

    flat = detect_ema_crossover(flat_candles(60))
    assert not flat.bullish and not flat.bearish


# ============ Bollinger Bands ============


def test_bollinger_unavailable_below_period():
    assert compute_bollinger_bands(rising_candles(19)) is None
    assert compute_bollinger_bands(rising_candles(20)) is not None


def test_bollinger_bands_ordering():
    result = compute_bollinger_bands(random_walk_candles(100))

    assert result.upper >= result.middle >= result.lower
    assert result.bandwidth >= 0


def test_bollinger_flat_collapses():
    result = compute_bollinger_bands(flat_candles(30))

    assert result.upper == result.middle == result.lower
    assert result.bandwidth == 0.0
    assert result.percent_b == 0.5


# ============ Volume Profile ============


def test_volume_profile_totals():
    candles = random_walk_candles(200)
    profile = compute_volume_profile(candles)

    assert 0 < len(profile) <= 20
    assert sum(b.volume for b in profile) == pytest.approx(sum(c.volume for c in candles))
    assert sum(b.percentage for b in profile) == pytest.approx(100.0)
    volumes = [b.volume for b in profile]
    assert volumes == sorted(volumes, reverse=True)


def test_volume_profile_flat_single_bin():
    profile = compute_volume_profile(flat_candles(50))

    assert len(profile) == 1
    assert profile[0].price_level == 100.0
    assert profile[0].percentage == 100.0


def test_volume_profile_zero_volume():
    profile = compute_volume_profile(make_candles([1.0, 2.0, 3.0], volume=0.0))
    assert all(b.percentage == 0.0 for b in profile)


def test_volume_profile_ties_keep_price_order():
    # Equal volume in every bucket
    profile = compute_volume_profile(make_candles([10.0, 20.0, 30.0]), bins=3)
    levels = [b.price_level for b in profile]
    assert levels == sorted(levels)


def test_volume_profile_empty():
    assert compute_volume_profile([]) == []


# ============ Validation ============


def test_unsorted_candles_rejected():
    candles = rising_candles(30)
    candles[10], candles[11] = candles[11], candles[10]

    with pytest.raises(MalformedInputError):
        calculate_all("BTCUSDT", candles)


def test_non_finite_values_rejected():
    candles = rising_candles(30)
    candles[5] = Candle(
        timestamp=candles[5].timestamp,
        open=1.0,
        high=1.0,
        low=1.0,
        close=math.nan,
        volume=1.0,
    )

    with pytest.raises(MalformedInputError):
        validate_candles(candles)


def test_equal_timestamps_allowed():
    candles = flat_candles(3)
    validate_candles([candles[0], candles[0], candles[1]])


# ============ Aggregate ============


def test_calculate_all_empty_is_unavailable():
    assert calculate_all("BTCUSDT", []) is None


def test_calculate_all_requires_every_indicator():
    # RSI and Bollinger available, MACD not
    assert calculate_all("BTCUSDT", random_walk_candles(30)) is None
    # MACD available, EMA set not
    assert calculate_all("BTCUSDT", random_walk_candles(49)) is None
    assert calculate_all("BTCUSDT", random_walk_candles(50)) is not None


def test_calculate_all_flat_market():
    snapshot = calculate_all("BTCUSDT", flat_candles(250))

    assert snapshot.symbol == "BTCUSDT"
    assert snapshot.rsi.value == 50.0
    assert snapshot.rsi.signal == RSISignal.NEUTRAL
    assert snapshot.macd.macd == 0.0
    assert snapshot.macd.signal == 0.0
    assert snapshot.macd.histogram == 0.0
    assert snapshot.ema.ema9 == snapshot.ema.ema200 == 100.0
    assert snapshot.bollinger_bands.bandwidth == 0.0
    assert snapshot.bollinger_bands.percent_b == 0.5
    assert len(snapshot.volume_profile) == 1
    assert snapshot.volume_profile[0].percentage == 100.0


def test_calculate_all_199_candles():
    snapshot = calculate_all("ETHUSDT", rising_candles(199))

    assert snapshot is not None
    assert snapshot.ema.ema200 == 0.0
    assert snapshot.rsi.timestamp == snapshot.macd.timestamp == snapshot.bollinger_bands.timestamp


def test_calculate_all_validates_once(monkeypatch):
    calls = []
    original = engine.validate_candles

    def counting(candles):
        calls.append(len(candles))
        original(candles)

    monkeypatch.setattr(engine, "validate_candles", counting)

    assert calculate_all("BTCUSDT", random_walk_candles(200)) is not None
    assert calls == [200]


def test_snapshot_carries_ema_crossover():
    candles = make_candles([100.0] * 60 + [110.0])
    snapshot = calculate_all("BTCUSDT", candles)

    assert snapshot.ema_crossover == detect_ema_crossover(candles)
    assert snapshot.ema_crossover.bullish is True
    assert calculate_all("BTCUSDT", flat_candles(60)).ema_crossover.bullish is False


def test_snapshot_serializes_camel_case():
    payload = calculate_all("BTCUSDT", random_walk_candles(200)).model_dump(by_alias=True)

    assert "bollingerBands" in payload
    assert "volumeProfile" in payload
    assert set(payload["emaCrossover"]) == {"bullish", "bearish"}
    assert "percentB" in payload["bollingerBands"]
    assert "priceLevel" in payload["volumeProfile"][0]
