"""
Candle streaming.

Polls the market data provider and keeps per-subscription candle
windows (and their indicator snapshots) current.
"""

from cryptopulse.services.stream.poller import (
    KlinePoller,
    get_kline_poller,
    start_kline_poller,
    stop_kline_poller,
)

__all__ = [
    "KlinePoller",
    "get_kline_poller",
    "start_kline_poller",
    "stop_kline_poller",
]
