"""
Application Configuration

All settings loaded from environment variables.
"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Application
    app_name: str = "CryptoPulse Backend"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # SQLite (snapshot store when cache_backend == "sqlite")
    sqlite_path: Optional[str] = None  # Defaults to ./data/cryptopulse.db

    # Redis
    redis_url: str = "redis://localhost:6379"

    # Cache
    cache_backend: str = "redis"  # Options: redis, sqlite
    indicator_cache_ttl_seconds: int = 60
    historical_cache_seconds: int = 300
    snapshot_retention_seconds: int = 86400  # Store-side GC of old snapshots
    cache_timeout_seconds: float = 2.0
    trading_pairs_cache_seconds: int = 3600

    # CORS (Frontend URL)
    frontend_url: str = "http://localhost:3000"
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Market data providers
    market_data_provider: str = "binance"  # Options: binance, cryptocompare, coincap
    binance_base_url: str = "https://api.binance.com/api/v3"
    cryptocompare_base_url: str = "https://min-api.cryptocompare.com/data"
    cryptocompare_api_key: Optional[str] = None
    coincap_base_url: str = "https://api.coincap.io/v2"
    coincap_api_key: Optional[str] = None
    coingecko_base_url: str = "https://api.coingecko.com/api/v3"
    coingecko_api_key: Optional[str] = None
    fetch_timeout_seconds: float = 10.0
    fetch_max_retries: int = 2  # 3 attempts in total
    request_timeout_seconds: float = 2.5  # per attempt, retries fit inside fetch_timeout_seconds

    # Indicators
    candle_fetch_limit: int = 200
    max_candles: int = 200
    max_history_length: int = 100

    # Polling
    enable_polling: bool = False
    poll_interval_seconds: float = 60.0
    poll_limit: int = 10
    poll_max_failures: int = 5
    poll_idle_seconds: float = 900.0
    max_live_subscriptions: int = 50

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
