"""
Rolling candle window with incremental indicator updates.

One window per (symbol, interval) subscription. New candle batches are
merged in timestamp order; the still-open last candle is replaced in place.
"""

import logging
from typing import Iterable, Optional

from cryptopulse.schemas.market import Candle, Timeframe
from cryptopulse.schemas.indicators import IndicatorSnapshot, IndicatorHistory
from cryptopulse.services.indicators.engine import calculate_all
from cryptopulse.services.indicators.history import (
    build_indicator_history,
    MAX_HISTORY_LENGTH,
)

logger = logging.getLogger(__name__)

MAX_CANDLES = 200


def merge_candles(
    window: list[Candle],
    new_candles: Iterable[Candle],
    max_candles: int = MAX_CANDLES,
) -> list[Candle]:
    """
    Merge a newly fetched batch into an ascending window.

    Candles older than the window's last timestamp are dropped. A candle
    with exactly that timestamp replaces the last one; newer ones are
    appended. The result keeps only the newest ``max_candles``.
    """
    last_ts = window[-1].timestamp if window else 0
    fresh = [c for c in new_candles if c.timestamp >= last_ts]

    if not fresh:
        return list(window)

    updated = list(window)
    if updated and fresh[0].timestamp == last_ts:
        updated[-1] = fresh[0]
        fresh = fresh[1:]

    updated.extend(fresh)

    if len(updated) > max_candles:
        updated = updated[len(updated) - max_candles :]

    return updated


class CandleWindow:
    """
    Bounded candle buffer that keeps a latest snapshot current.

    The snapshot is only recomputed once the window holds
    ``recompute_threshold`` candles; below that the previous snapshot is
    kept (or None if never computed).
    """

    def __init__(
        self,
        symbol: str,
        interval: Timeframe = Timeframe.H1,
        initial: Optional[Iterable[Candle]] = None,
        max_candles: int = MAX_CANDLES,
        recompute_threshold: int = MAX_CANDLES,
        max_history_length: int = MAX_HISTORY_LENGTH,
    ):
        self.symbol = symbol.upper()
        self.interval = interval
        self.max_candles = max_candles
        self.recompute_threshold = recompute_threshold
        self.max_history_length = max_history_length
        self._candles: list[Candle] = []
        self._snapshot: Optional[IndicatorSnapshot] = None
        if initial:
            self.reset(initial)

    @property
    def candles(self) -> list[Candle]:
        return list(self._candles)

    @property
    def snapshot(self) -> Optional[IndicatorSnapshot]:
        return self._snapshot

    @property
    def last_timestamp(self) -> int:
        return self._candles[-1].timestamp if self._candles else 0

    def __len__(self) -> int:
        return len(self._candles)

    def reset(self, initial: Iterable[Candle]) -> None:
        """Replace the window (e.g. on symbol change) and drop the old snapshot."""
        self._candles = merge_candles([], initial, self.max_candles)
        self._snapshot = None
        self._recompute()

    def merge(self, new_candles: Iterable[Candle]) -> bool:
        """
        Merge a batch and refresh the snapshot.

        Returns True if the window changed.
        """
        updated = merge_candles(self._candles, new_candles, self.max_candles)
        changed = updated != self._candles
        self._candles = updated
        self._recompute()
        return changed

    def history(self) -> IndicatorHistory:
        """Indicator series over the current window."""
        return build_indicator_history(self._candles, self.max_history_length)

    def _recompute(self) -> None:
        if len(self._candles) < self.recompute_threshold:
            return

        snapshot = calculate_all(self.symbol, self._candles)
        if snapshot is not None:
            self._snapshot = snapshot
        else:
            logger.debug(f"Snapshot unavailable for {self.symbol} ({len(self._candles)} candles)")
