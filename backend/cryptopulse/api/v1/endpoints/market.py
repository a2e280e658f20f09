"""
Market Data API Endpoints

Endpoints for fetching candles, prices and tradable pairs.
"""

import logging

from fastapi import APIRouter, Query

from cryptopulse.api.v1.errors import to_http_exception
from cryptopulse.schemas.market import CryptoPrice, HistoricalData, Timeframe
from cryptopulse.services.base import ServiceError
from cryptopulse.services.data_ingestion import (
    get_market_data_service,
    get_trading_pair_service,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/candles/{symbol}", response_model=HistoricalData)
async def get_candles(
    symbol: str,
    interval: Timeframe = Timeframe.H1,
    limit: int = Query(default=100, ge=1, le=1000),
):
    """
    Get OHLCV candles for a symbol, oldest first.
    """
    service = get_market_data_service()
    try:
        return await service.get_historical(symbol, interval, limit)
    except ServiceError as e:
        logger.warning(f"Candles for {symbol} failed: {e}")
        raise to_http_exception(e, symbol)


@router.get("/price/{symbol}", response_model=CryptoPrice)
async def get_price(symbol: str):
    """
    Get the 24h ticker for a symbol.
    """
    service = get_market_data_service()
    try:
        return await service.get_price(symbol)
    except ServiceError as e:
        logger.warning(f"Price for {symbol} failed: {e}")
        raise to_http_exception(e, symbol)


@router.get("/pairs")
async def list_trading_pairs(q: str = Query(default="", description="Search query")):
    """
    Search tradable USDT pairs.

    Served from a one-hour cache; falls back to a static list of majors
    when the listing provider is unreachable.
    """
    service = get_trading_pair_service()
    return await service.list_pairs(q)


@router.get("/trending")
async def get_trending():
    """
    Get CoinGecko's trending coins.
    """
    service = get_trading_pair_service()
    try:
        return {"coins": await service.trending()}
    except ServiceError as e:
        logger.warning(f"Trending coins failed: {e}")
        raise to_http_exception(e)


@router.get("/market-data")
async def get_market_data(symbols: str = Query(..., description="Comma-separated symbols")):
    """
    Get market cap, rank, volume and 24h change for several pairs.
    """
    symbol_list = [s.strip().upper() for s in symbols.split(",") if s.strip()]
    service = get_trading_pair_service()
    try:
        return {"data": await service.market_data(symbol_list)}
    except ServiceError as e:
        logger.warning(f"Market data for {symbol_list} failed: {e}")
        raise to_http_exception(e)
