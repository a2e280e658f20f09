"""
CryptoPulse Backend - FastAPI Application

Main entry point for the backend API.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cryptopulse.core.config import settings
from cryptopulse.core.logging import configure_logging
from cryptopulse.api.v1 import router as api_v1_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    configure_logging()
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Market data provider: {settings.market_data_provider}")

    # SQLite snapshot store
    from cryptopulse.db.database import init_db, close_db
    if settings.cache_backend == "sqlite":
        await init_db()
        from cryptopulse.services.cache.sql_store import SqlSnapshotStore
        removed = await SqlSnapshotStore().purge_expired()
        logger.info(f"Database initialized ({removed} expired snapshots purged)")

    # Redis cache
    from cryptopulse.services.cache.redis_client import init_redis, close_redis
    redis_client = await init_redis()
    if redis_client:
        logger.info("Redis cache connected")
    else:
        logger.info("Redis unavailable - using in-memory cache")

    # Kline poller (near-real-time windows)
    from cryptopulse.services.stream import start_kline_poller, stop_kline_poller
    if settings.enable_polling:
        poller = await start_kline_poller()
        logger.info(f"Kline poller started (every {poller.poll_interval}s)")
    else:
        poller = None
        logger.info("Kline poller disabled (enable_polling=false)")

    yield

    # Shutdown
    logger.info("Shutting down...")
    if poller:
        await stop_kline_poller()

    from cryptopulse.services.data_ingestion import (
        get_market_data_service,
        get_trading_pair_service,
    )
    await get_market_data_service().close()
    await get_trading_pair_service().close()

    await close_redis()
    if settings.cache_backend == "sqlite":
        await close_db()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    CryptoPulse Technical Indicator API

    ## Architecture
    - **Data Ingestion**: Fetches candles from Binance, CryptoCompare or CoinCap
    - **Indicator Engine**: RSI, MACD, EMA, Bollinger Bands, volume profile (pure Python/NumPy)
    - **Indicator Cache**: Reuses snapshots younger than the cache TTL
    - **Kline Poller**: Keeps rolling candle windows current
    """,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
cors_origins = [settings.frontend_url]
if settings.allowed_origins:
    cors_origins.extend([o for o in settings.allowed_origins if o not in cors_origins])

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "CryptoPulse Backend API",
        "docs": "/docs",
        "health": "/health",
    }
