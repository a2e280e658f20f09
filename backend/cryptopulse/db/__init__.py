"""
Database module for CryptoPulse.

Provides the SQLite snapshot table. Engine and sessions live in
``cryptopulse.db.database`` and are only created when that module is imported.
"""

from cryptopulse.db.models import Base, IndicatorSnapshotRecord

__all__ = [
    "Base",
    "IndicatorSnapshotRecord",
]
