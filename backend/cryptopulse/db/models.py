"""
SQLAlchemy models for CryptoPulse database.

Uses SQLite for local persistence of:
- Indicator snapshots (reuse cache, one row per symbol/interval)
"""

from datetime import datetime

from sqlalchemy import (
    Column,
    String,
    Integer,
    BigInteger,
    DateTime,
    Index,
    JSON,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class IndicatorSnapshotRecord(Base):
    """
    Latest computed indicator snapshot per symbol/interval.
    Rows older than the retention window are purged.
    """
    __tablename__ = "indicator_snapshots"

    id = Column(Integer, primary_key=True, autoincrement=True)
    symbol = Column(String(20), nullable=False)
    interval = Column(String(5), nullable=False)  # 1m, 5m, 15m, 1h, 4h, 1d, 1w

    # Full IndicatorSnapshot as camelCase JSON
    payload = Column(JSON, nullable=False)

    # Epoch milliseconds, compared against the TTL
    stored_at = Column(BigInteger, nullable=False, index=True)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_snapshots_symbol_interval", "symbol", "interval", unique=True),
    )
