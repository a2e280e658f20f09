"""
Indicator Engine Service

CONTRACT:
    Input:  list[Candle] (ascending by timestamp)
    Output: IndicatorSnapshot | None

RESPONSIBILITIES:
    - Calculate RSI, MACD, EMA set, Bollinger Bands and volume profile
    - Reconstruct indicator series for charting
    - Keep rolling candle windows current as new candles arrive
    - Reuse recent snapshots through the indicator cache

PURE PYTHON - Uses NumPy for calculations.
All math is deterministic and reproducible.
"""

from cryptopulse.services.indicators.engine import calculate_all
from cryptopulse.services.indicators.history import build_indicator_history
from cryptopulse.services.indicators.window import CandleWindow, merge_candles
from cryptopulse.services.indicators.service import IndicatorService, get_indicator_service

__all__ = [
    "calculate_all",
    "build_indicator_history",
    "CandleWindow",
    "merge_candles",
    "IndicatorService",
    "get_indicator_service",
]
