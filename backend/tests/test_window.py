"""
Tests for the rolling candle window and the merge rule.
"""

from cryptopulse.schemas.market import Candle
from cryptopulse.services.indicators.window import CandleWindow, merge_candles
from tests.helpers import HOUR_MS, START_TS, make_candles, rising_candles


def test_merge_appends_newer_candles():
    window = rising_candles(5)
    new = make_candles([200.0, 201.0], start=START_TS + 5 * HOUR_MS)

    merged = merge_candles(window, new)

    assert len(merged) == 7
    assert merged[-1].close == 201.0


def test_merge_replaces_open_candle():
    window = rising_candles(5)
    updated_last = Candle(
        timestamp=window[-1].timestamp,
        open=104.0,
        high=120.0,
        low=100.0,
        close=118.0,
        volume=999.0,
    )

    merged = merge_candles(window, [updated_last])

    assert len(merged) == 5
    assert merged[-1] == updated_last
    assert merged[:-1] == window[:-1]


def test_merge_drops_older_candles():
    window = rising_candles(10)
    overlap = window[3:] + make_candles([500.0], start=START_TS + 10 * HOUR_MS)

    merged = merge_candles(window, overlap)

    assert len(merged) == 11
    assert merged[:10] == window
    assert [c.timestamp for c in merged] == sorted(c.timestamp for c in merged)


def test_merge_idempotent():
    window = rising_candles(20)
    batch = make_candles([300.0, 301.0, 302.0], start=START_TS + 19 * HOUR_MS)

    once = merge_candles(window, batch)
    twice = merge_candles(once, batch)

    assert once == twice


def test_merge_bounded():
    window = rising_candles(200)
    batch = make_candles([1.0] * 10, start=START_TS + 200 * HOUR_MS)

    merged = merge_candles(window, batch, max_candles=200)

    assert len(merged) == 200
    assert merged[0] == window[10]
    assert merged[-1] == batch[-1]


def test_merge_empty_batch():
    window = rising_candles(3)
    assert merge_candles(window, []) == window


def test_window_snapshot_threshold():
    window = CandleWindow("btcusdt", initial=rising_candles(199))

    assert window.symbol == "BTCUSDT"
    assert len(window) == 199
    assert window.snapshot is None

    changed = window.merge(make_candles([400.0], start=START_TS + 199 * HOUR_MS))

    assert changed
    assert len(window) == 200
    assert window.snapshot is not None
    assert window.snapshot.ema.ema200 > 0


def test_window_unchanged_merge_keeps_snapshot():
    candles = rising_candles(200)
    window = CandleWindow("BTCUSDT", initial=candles)
    snapshot = window.snapshot

    assert window.merge(candles[-3:]) is False
    assert window.snapshot.rsi == snapshot.rsi
    assert window.last_timestamp == candles[-1].timestamp


def test_window_reset_clears_snapshot():
    window = CandleWindow("BTCUSDT", initial=rising_candles(200))
    assert window.snapshot is not None

    window.reset(rising_candles(50))

    assert len(window) == 50
    assert window.snapshot is None


def test_window_history():
    window = CandleWindow("BTCUSDT", initial=rising_candles(150), max_history_length=20)
    history = window.history()

    assert len(history.rsi_history) == 20
    assert history.rsi_history[-1].time == window.last_timestamp
