"""In-memory session store with TTL-based expiry."""

import fnmatch
import time
from typing import Dict, Optional, Tuple


class MemoryStore:
    """
    In-process store implementing the SessionStore protocol.

    Suitable for development, testing and single-process applications.
    Records are lost on restart and not shared across processes.
    """

    def __init__(self, prefix: str = "sess:"):
        self.prefix = prefix
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}

    def _live(self, key: str) -> Optional[str]:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and time.monotonic() >= expires_at:
            del self._data[key]
            return None
        return value

    def _sweep(self, now: float) -> None:
        expired = [
            key for key, (_, expires_at) in self._data.items()
            if expires_at is not None and now >= expires_at
        ]
        for key in expired:
            del self._data[key]

    async def set(self, key: str, value: str, ttl_millis: Optional[int] = None) -> None:
        """Store value, expiring after ttl_millis when given. Expired keys are evicted."""
        now = time.monotonic()
        self._sweep(now)
        expires_at = None
        if ttl_millis:
            expires_at = now + ttl_millis / 1000
        self._data[key] = (value, expires_at)

    async def get(self, key: str) -> Optional[str]:
        """Return the stored value or None if missing or expired."""
        return self._live(key)

    async def delete(self, pattern: str) -> None:
        """Remove all keys matching the glob pattern."""
        for key in [k for k in self._data if fnmatch.fnmatchcase(k, pattern)]:
            del self._data[key]

    def keys(self) -> list:
        """Live keys, for inspection."""
        return [k for k in list(self._data) if self._live(k) is not None]
