"""
Technical Indicators API Endpoints

Indicator snapshots and chart series for crypto pairs.
"""

import logging

from fastapi import APIRouter, HTTPException

from cryptopulse.api.v1.errors import to_http_exception
from cryptopulse.schemas.market import Timeframe
from cryptopulse.schemas.indicators import (
    IndicatorHistory,
    IndicatorResponse,
    IndicatorSnapshot,
)
from cryptopulse.services.base import ServiceError, ValidationError
from cryptopulse.services.indicators import get_indicator_service
from cryptopulse.services.stream import get_kline_poller

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/{symbol}", response_model=IndicatorResponse)
async def get_indicators(symbol: str, interval: Timeframe = Timeframe.H1):
    """
    Get RSI, MACD, EMA set, Bollinger Bands and volume profile.

    ``cached`` is true when a snapshot younger than the cache TTL was reused.
    """
    service = get_indicator_service()
    try:
        return await service.get_indicators(symbol, interval)
    except ServiceError as e:
        logger.warning(f"Indicators for {symbol} {interval.value} failed: {e}")
        raise to_http_exception(e, symbol)


@router.get("/{symbol}/history", response_model=IndicatorHistory)
async def get_indicator_history(symbol: str, interval: Timeframe = Timeframe.H1):
    """
    Get indicator series for charting.

    Each point carries the timestamp of the candle it was computed at.
    """
    service = get_indicator_service()
    try:
        return await service.get_history(symbol, interval)
    except ServiceError as e:
        logger.warning(f"Indicator history for {symbol} {interval.value} failed: {e}")
        raise to_http_exception(e, symbol)


@router.get("/{symbol}/live", response_model=IndicatorSnapshot)
async def get_live_indicators(symbol: str, interval: Timeframe = Timeframe.H1):
    """
    Latest snapshot from the polled candle window.

    Subscribes the symbol on first request; returns 404 until the window
    holds enough candles for a snapshot and 429 when the poller is full.
    Unread subscriptions are evicted by the poller.
    """
    poller = get_kline_poller()
    if not poller.is_running:
        raise HTTPException(status_code=503, detail="Live polling is disabled")

    window = poller.get_window(symbol, interval)
    if window is None:
        try:
            window = await poller.subscribe(symbol, interval)
        except ValidationError as e:
            raise HTTPException(status_code=429, detail=e.message)

    if window.snapshot is None:
        raise HTTPException(
            status_code=404,
            detail=f"No live snapshot yet for {symbol.upper()} ({len(window)} candles)",
        )
    return window.snapshot
