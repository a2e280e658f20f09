"""
SQL snapshot store.

Keeps the latest snapshot per (symbol, interval) in SQLite through the
async SQLAlchemy session factory.
"""

import logging
import time
from datetime import datetime
from typing import Optional

from sqlalchemy import select, delete
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cryptopulse.core.config import settings
from cryptopulse.db.models import IndicatorSnapshotRecord
from cryptopulse.schemas.indicators import CacheEntry, IndicatorSnapshot
from cryptopulse.services.cache.store import SnapshotStore

logger = logging.getLogger(__name__)


class SqlSnapshotStore(SnapshotStore):
    """Snapshot store backed by the ``indicator_snapshots`` table."""

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        retention_seconds: int = None,
    ):
        if session_factory is None:
            from cryptopulse.db.database import AsyncSessionLocal
            session_factory = AsyncSessionLocal
        self._session_factory = session_factory
        self._retention_seconds = retention_seconds or settings.snapshot_retention_seconds

    async def load_latest_snapshot(self, symbol: str, interval: str) -> Optional[CacheEntry]:
        """Get the stored snapshot for a symbol/interval."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(IndicatorSnapshotRecord)
                .where(IndicatorSnapshotRecord.symbol == symbol.upper())
                .where(IndicatorSnapshotRecord.interval == interval)
                .order_by(IndicatorSnapshotRecord.stored_at.desc())
                .limit(1)
            )
            record = result.scalar_one_or_none()

        if record is None:
            return None

        return CacheEntry(
            symbol=record.symbol,
            interval=record.interval,
            snapshot=IndicatorSnapshot.model_validate(record.payload),
            stored_at=record.stored_at,
        )

    async def upsert_snapshot(
        self,
        symbol: str,
        interval: str,
        snapshot: IndicatorSnapshot,
        stored_at: int,
    ) -> None:
        """Insert or replace the row for a symbol/interval in one statement."""
        payload = snapshot.model_dump(mode="json", by_alias=True)

        stmt = sqlite_insert(IndicatorSnapshotRecord).values(
            symbol=symbol.upper(),
            interval=interval,
            payload=payload,
            stored_at=stored_at,
            updated_at=datetime.utcnow(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["symbol", "interval"],
            set_={
                "payload": stmt.excluded.payload,
                "stored_at": stmt.excluded.stored_at,
                "updated_at": stmt.excluded.updated_at,
            },
        )

        async with self._session_factory() as session:
            await session.execute(stmt)
            await session.commit()

    async def purge_expired(self, now_ms: Optional[int] = None) -> int:
        """Delete snapshots older than the retention window. Returns rows removed."""
        now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
        cutoff = now_ms - self._retention_seconds * 1000

        async with self._session_factory() as session:
            result = await session.execute(
                delete(IndicatorSnapshotRecord).where(
                    IndicatorSnapshotRecord.stored_at < cutoff
                )
            )
            await session.commit()

        removed = result.rowcount or 0
        if removed:
            logger.info(f"Purged {removed} expired indicator snapshots")
        return removed
