"""
Kline poller for near-real-time indicator updates.

Keeps one CandleWindow per (symbol, interval) subscription current by
polling the market data service:
- First tick loads ``candle_fetch_limit`` candles into an empty window
- Later ticks fetch the latest ``poll_limit`` candles and merge them
- Listeners are notified with the window whenever it changed

A failed fetch is logged and the stale window is kept; the loop carries on.
Subscriptions are dropped after ``poll_max_failures`` consecutive failures,
or when nobody has listened to or read them for ``poll_idle_seconds``.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from cryptopulse.core.config import settings
from cryptopulse.schemas.market import Timeframe
from cryptopulse.services.base import ValidationError
from cryptopulse.services.data_ingestion.service import (
    MarketDataService,
    get_market_data_service,
)
from cryptopulse.services.indicators.window import CandleWindow

logger = logging.getLogger(__name__)

SubscriptionKey = Tuple[str, Timeframe]
WindowListener = Callable[[CandleWindow], None]


@dataclass
class Subscription:
    window: CandleWindow
    listeners: List[WindowListener] = field(default_factory=list)
    task: Optional[asyncio.Task] = None
    failures: int = 0  # consecutive
    last_read: float = field(default_factory=time.monotonic)

    def is_idle(self, idle_seconds: float, now: float) -> bool:
        return not self.listeners and now - self.last_read > idle_seconds


class KlinePoller:
    """
    Periodic candle polling per subscription.

    Usage:
        poller = KlinePoller()
        await poller.start()
        await poller.subscribe("BTCUSDT", Timeframe.H1, on_update)
        # on_update(window) runs after every merge that changed the window
        await poller.stop()
    """

    def __init__(
        self,
        market_data: Optional[MarketDataService] = None,
        poll_interval: float = None,
        poll_limit: int = None,
        initial_limit: int = None,
        max_candles: int = None,
        max_failures: int = None,
        idle_seconds: float = None,
        max_subscriptions: int = None,
    ):
        self._market_data = market_data or get_market_data_service()
        self.poll_interval = poll_interval or settings.poll_interval_seconds
        self.poll_limit = poll_limit or settings.poll_limit
        self.initial_limit = initial_limit or settings.candle_fetch_limit
        self.max_candles = max_candles or settings.max_candles
        self.max_failures = max_failures or settings.poll_max_failures
        self.idle_seconds = idle_seconds or settings.poll_idle_seconds
        self.max_subscriptions = max_subscriptions or settings.max_live_subscriptions
        self._subscriptions: Dict[SubscriptionKey, Subscription] = {}
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def subscriptions(self) -> List[SubscriptionKey]:
        return list(self._subscriptions)

    def get_window(self, symbol: str, interval: Timeframe = Timeframe.H1) -> Optional[CandleWindow]:
        sub = self._subscriptions.get((symbol.upper(), interval))
        if sub is None:
            return None
        sub.last_read = time.monotonic()
        return sub.window

    async def start(self) -> None:
        """Start polling every current subscription."""
        if self._running:
            logger.warning("Kline poller already running")
            return

        self._running = True
        for key, sub in self._subscriptions.items():
            sub.task = asyncio.create_task(self._poll_loop(key))
        logger.info(f"Kline poller started ({len(self._subscriptions)} subscriptions)")

    async def stop(self) -> None:
        """Cancel all polling tasks."""
        self._running = False
        for sub in self._subscriptions.values():
            await self._cancel(sub)
        logger.info("Kline poller stopped")

    async def subscribe(
        self,
        symbol: str,
        interval: Timeframe = Timeframe.H1,
        listener: Optional[WindowListener] = None,
    ) -> CandleWindow:
        """
        Track a symbol/interval, returning its window.

        Subscribing again to the same key only adds the listener.
        """
        key = (symbol.upper(), interval)
        sub = self._subscriptions.get(key)

        if sub is None:
            if len(self._subscriptions) >= self.max_subscriptions:
                await self.evict_idle()
            if len(self._subscriptions) >= self.max_subscriptions:
                raise ValidationError(
                    "KlinePoller",
                    f"Live subscription limit reached ({self.max_subscriptions})",
                    {"symbol": key[0], "interval": interval.value},
                )
            sub = Subscription(
                window=CandleWindow(key[0], interval, max_candles=self.max_candles)
            )
            self._subscriptions[key] = sub
            if self._running:
                sub.task = asyncio.create_task(self._poll_loop(key))
            logger.info(f"Subscribed to {key[0]} {interval.value}")

        if listener is not None and listener not in sub.listeners:
            sub.listeners.append(listener)

        sub.last_read = time.monotonic()
        return sub.window

    async def unsubscribe(
        self,
        symbol: str,
        interval: Timeframe = Timeframe.H1,
        listener: Optional[WindowListener] = None,
    ) -> None:
        """
        Remove a listener, or the whole subscription when no listener is
        given or none remain.
        """
        key = (symbol.upper(), interval)
        sub = self._subscriptions.get(key)
        if sub is None:
            return

        if listener is not None and listener in sub.listeners:
            sub.listeners.remove(listener)
            if sub.listeners:
                return

        del self._subscriptions[key]
        await self._cancel(sub)
        logger.info(f"Unsubscribed from {key[0]} {interval.value}")

    async def evict_idle(self, now: Optional[float] = None) -> List[SubscriptionKey]:
        """Drop subscriptions with no listeners that were not read recently."""
        now = now if now is not None else time.monotonic()
        idle = [
            key for key, sub in self._subscriptions.items()
            if sub.is_idle(self.idle_seconds, now)
        ]
        for key in idle:
            sub = self._subscriptions.pop(key)
            await self._cancel(sub)
            logger.info(f"Evicted idle subscription {key[0]} {key[1].value}")
        return idle

    async def poll_once(self, symbol: str, interval: Timeframe = Timeframe.H1) -> bool:
        """
        Run a single polling tick for a subscription.

        Returns True if the window changed. Fetch errors propagate.
        """
        sub = self._subscriptions.get((symbol.upper(), interval))
        if sub is None:
            return False

        window = sub.window
        if len(window) == 0:
            candles = await self._market_data.get_candles(window.symbol, interval, self.initial_limit)
            window.reset(candles)
            changed = len(window) > 0
        else:
            candles = await self._market_data.get_candles(window.symbol, interval, self.poll_limit)
            changed = window.merge(candles)

        if changed:
            await self._notify(sub)
        return changed

    async def _poll_loop(self, key: SubscriptionKey) -> None:
        symbol, interval = key
        while self._running and key in self._subscriptions:
            sub = self._subscriptions[key]
            try:
                await self.poll_once(symbol, interval)
                sub.failures = 0
            except asyncio.CancelledError:
                raise
            except Exception as e:
                sub.failures += 1
                logger.warning(f"Polling {symbol} {interval.value} failed, keeping stale window: {e}")
                if sub.failures >= self.max_failures:
                    self._drop(key, f"{sub.failures} consecutive failures")
                    return

            if sub.is_idle(self.idle_seconds, time.monotonic()):
                self._drop(key, "idle")
                return

            await asyncio.sleep(self.poll_interval)

    def _drop(self, key: SubscriptionKey, reason: str) -> None:
        """Remove a subscription from inside its own polling task."""
        sub = self._subscriptions.pop(key, None)
        if sub is not None:
            sub.task = None
            logger.warning(f"Dropped subscription {key[0]} {key[1].value} ({reason})")

    async def _notify(self, sub: Subscription) -> None:
        for listener in list(sub.listeners):
            try:
                if asyncio.iscoroutinefunction(listener):
                    await listener(sub.window)
                else:
                    listener(sub.window)
            except Exception as e:
                logger.warning(f"Window listener error for {sub.window.symbol}: {e}")

    @staticmethod
    async def _cancel(sub: Subscription) -> None:
        if sub.task and not sub.task.done():
            sub.task.cancel()
            try:
                await sub.task
            except asyncio.CancelledError:
                pass
        sub.task = None


# Singleton instance
_kline_poller: Optional[KlinePoller] = None


def get_kline_poller() -> KlinePoller:
    """Get the kline poller singleton."""
    global _kline_poller
    if _kline_poller is None:
        _kline_poller = KlinePoller()
    return _kline_poller


async def start_kline_poller() -> KlinePoller:
    """Start the kline poller."""
    poller = get_kline_poller()
    await poller.start()
    return poller


async def stop_kline_poller() -> None:
    """Stop the kline poller."""
    global _kline_poller
    if _kline_poller:
        await _kline_poller.stop()
        _kline_poller = None
