"""
In-process TTL cache.

An explicit object handed to whoever needs it (e.g. the trading pair list),
instead of module-level globals. Entries expire ``ttl_seconds`` after they
were set and can be invalidated on demand.
"""

import time
from typing import Any, Callable, Dict, Generic, Optional, Tuple, TypeVar

ValueT = TypeVar("ValueT")


class TTLCache(Generic[ValueT]):
    """Key/value cache with a fixed time-to-live."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Any, Tuple[float, ValueT]] = {}

    def get(self, key: Any) -> Optional[ValueT]:
        """Value for key, or None when missing or expired."""
        item = self._entries.get(key)
        if item is None:
            return None
        stored_at, value = item
        if self._clock() - stored_at >= self.ttl_seconds:
            del self._entries[key]
            return None
        return value

    def set(self, key: Any, value: ValueT) -> None:
        self._entries[key] = (self._clock(), value)

    def age(self, key: Any) -> Optional[float]:
        """Seconds since key was set, None if absent."""
        item = self._entries.get(key)
        return self._clock() - item[0] if item else None

    def invalidate(self, key: Any = None) -> None:
        """Drop one key, or everything when key is None."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def __contains__(self, key: Any) -> bool:
        return self.get(key) is not None
