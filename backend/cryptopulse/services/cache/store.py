"""
Snapshot store contract.

Persistence for computed indicator snapshots, keyed by (symbol, interval).
Writes are idempotent upserts; there is no locking, last write wins.
"""

from abc import ABC, abstractmethod
from typing import Optional

from cryptopulse.schemas.indicators import CacheEntry, IndicatorSnapshot


class SnapshotStore(ABC):
    """Where IndicatorCache reads and writes snapshots."""

    @abstractmethod
    async def load_latest_snapshot(self, symbol: str, interval: str) -> Optional[CacheEntry]:
        """Most recent stored entry for the key, or None."""
        pass

    @abstractmethod
    async def upsert_snapshot(
        self,
        symbol: str,
        interval: str,
        snapshot: IndicatorSnapshot,
        stored_at: int,
    ) -> None:
        """Insert or replace the entry for the key."""
        pass
