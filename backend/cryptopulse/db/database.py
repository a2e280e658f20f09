"""
Database connection and session management.

Uses SQLite with aiosqlite for async support.
"""

import os
import logging

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from cryptopulse.db.models import Base
from cryptopulse.core.config import settings

logger = logging.getLogger(__name__)

# Database path - create data directory if needed
DATA_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), "data")

# SQLite database URL
SQLITE_PATH = settings.sqlite_path or os.path.join(DATA_DIR, "cryptopulse.db")
DATABASE_URL = f"sqlite+aiosqlite:///{SQLITE_PATH}"

# Create async engine
# Note: SQLite requires check_same_thread=False for async
engine = create_async_engine(
    DATABASE_URL,
    echo=False,  # Set to True for SQL debugging
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,  # Recommended for SQLite
)

# Session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def init_db() -> None:
    """
    Initialize the database - create all tables.
    Called on application startup.
    """
    try:
        os.makedirs(os.path.dirname(SQLITE_PATH) or ".", exist_ok=True)
        async with engine.begin() as conn:
            # Create all tables
            await conn.run_sync(Base.metadata.create_all)
        logger.info(f"Database initialized at: {SQLITE_PATH}")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


async def close_db() -> None:
    """
    Close database connections.
    Called on application shutdown.
    """
    await engine.dispose()
    logger.info("Database connections closed")
