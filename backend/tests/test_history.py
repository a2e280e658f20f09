"""
Tests for indicator history reconstruction.

Every point must carry the timestamp of the candle it was computed at.
"""

from cryptopulse.services.indicators.history import build_indicator_history
from tests.helpers import flat_candles, random_walk_candles


def test_history_alignment_full_series():
    candles = random_walk_candles(200)
    history = build_indicator_history(candles, max_points=1000)

    # RSI from index 14, MACD signal from 33, Bollinger from 19, EMA50 from 49
    assert len(history.rsi_history) == 186
    assert history.rsi_history[0].time == candles[14].timestamp
    assert history.macd_history[0].time == candles[33].timestamp
    assert history.bb_history[0].time == candles[19].timestamp
    assert history.bb_history[0].price == candles[19].close
    assert history.ema_history[0].time == candles[49].timestamp

    for series in (history.rsi_history, history.macd_history, history.bb_history, history.ema_history):
        assert series[-1].time == candles[-1].timestamp


def test_history_truncated_to_newest_points():
    candles = random_walk_candles(200)
    history = build_indicator_history(candles, max_points=100)

    assert len(history.rsi_history) == 100
    assert len(history.macd_history) == 100
    assert len(history.bb_history) == 100
    assert len(history.ema_history) == 100
    assert history.rsi_history[0].time == candles[100].timestamp
    assert history.bb_history[-1].price == candles[-1].close


def test_history_ema200_sentinel():
    candles = random_walk_candles(200)
    ema_history = build_indicator_history(candles, max_points=1000).ema_history

    assert ema_history[-2].ema200 == 0.0
    assert ema_history[-1].ema200 > 0
    assert all(p.ema9 > 0 and p.ema21 > 0 for p in ema_history)


def test_history_macd_histogram():
    history = build_indicator_history(random_walk_candles(120))
    for point in history.macd_history:
        assert point.histogram == point.macd - point.signal


def test_history_short_window():
    history = build_indicator_history(flat_candles(30))

    assert len(history.rsi_history) == 16
    assert all(p.value == 50.0 for p in history.rsi_history)
    assert history.macd_history == []
    assert history.ema_history == []
    assert len(history.bb_history) == 11


def test_history_empty():
    history = build_indicator_history([])
    payload = history.model_dump(by_alias=True)

    assert payload == {"rsiHistory": [], "macdHistory": [], "bbHistory": [], "emaHistory": []}
