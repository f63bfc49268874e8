"""
Shared pytest fixtures for session tests.

This module provides common fixtures including:
- Redis mocks for storage tests
- A recording in-memory store for manager and middleware tests
- Minimal request/response doubles and a controllable clock
"""

import asyncio
import fnmatch
import json
import os
import sys
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sealedsession.modules.storage import MemoryStore  # noqa: E402

SECRET = "test-secret"
COOKIE_NAME = "session:"


# =============================================================================
# Request / Response doubles
# =============================================================================

@dataclass
class FakeRequest:
    """Request exposing only the cookies mapping the manager reads."""
    cookies: Dict[str, str] = field(default_factory=dict)


class FakeResponse:
    """Records set_cookie/delete_cookie calls."""

    def __init__(self):
        self.cookies: Dict[str, tuple] = {}
        self.deleted: List[tuple] = []

    def set_cookie(self, key, value, **kwargs):
        self.cookies[key] = (value, kwargs)

    def delete_cookie(self, key, **kwargs):
        self.deleted.append((key, kwargs))


class FakeClock:
    """Controllable UTC clock."""

    def __init__(self, now: Optional[datetime] = None):
        self.now = now or datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now


# =============================================================================
# Stores
# =============================================================================

class RecordingStore(MemoryStore):
    """
    MemoryStore that records every operation.

    `writes` holds ("set", key, value, ttl) and ("delete", pattern) tuples,
    `reads` holds the keys passed to get().
    """

    def __init__(self, prefix: str = "sess:", delays: Optional[List[float]] = None):
        super().__init__(prefix)
        self.writes: List[tuple] = []
        self.reads: List[str] = []
        self.fail_with: Optional[Exception] = None
        self._delays = list(delays or [])

    async def set(self, key, value, ttl_millis=None):
        if self._delays:
            await asyncio.sleep(self._delays.pop(0))
        if self.fail_with is not None:
            raise self.fail_with
        self.writes.append(("set", key, value, ttl_millis))
        await super().set(key, value, ttl_millis)

    async def get(self, key):
        self.reads.append(key)
        if self.fail_with is not None:
            raise self.fail_with
        return await super().get(key)

    async def delete(self, pattern):
        if self.fail_with is not None:
            raise self.fail_with
        self.writes.append(("delete", pattern))
        await super().delete(pattern)

    def peek(self, key) -> Optional[dict]:
        """Decoded record without going through the event loop."""
        value = self._live(key)
        return json.loads(value) if value is not None else None


@pytest.fixture
def store():
    return RecordingStore("sess:")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mock_redis():
    """Create a mock async Redis client."""
    redis = AsyncMock()

    redis.set = AsyncMock(return_value=True)
    redis.get = AsyncMock(return_value=None)
    redis.delete = AsyncMock(return_value=1)
    redis.ping = AsyncMock(return_value=True)
    redis.aclose = AsyncMock()

    async def scan_iter(match=None):
        for key in redis._scan_keys:
            yield key

    redis._scan_keys = []
    redis.scan_iter = MagicMock(side_effect=scan_iter)

    return redis


@pytest.fixture
def mock_redis_with_data():
    """
    Redis mock with in-memory data storage for more realistic tests.

    This allows testing code that reads back what it writes.
    """
    storage: Dict[str, Any] = {}
    ttls: Dict[str, Optional[int]] = {}

    redis = AsyncMock()

    async def mock_set(key, value, px=None, **kwargs):
        storage[key] = value
        ttls[key] = px
        return True

    async def mock_get(key):
        return storage.get(key)

    async def mock_delete(*keys):
        count = 0
        for key in keys:
            if key in storage:
                del storage[key]
                ttls.pop(key, None)
                count += 1
        return count

    async def mock_scan_iter(match=None):
        for key in list(storage):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    redis.set = mock_set
    redis.get = mock_get
    redis.delete = mock_delete
    redis.scan_iter = mock_scan_iter
    redis.ping = AsyncMock(return_value=True)
    redis.aclose = AsyncMock()
    redis._storage = storage  # Expose for test assertions
    redis._ttls = ttls

    return redis


# =============================================================================
# Cookie helpers
# =============================================================================

def set_cookie_value(header: str) -> str:
    """Raw cookie value from a Set-Cookie header (quotes preserved)."""
    return header.split(";", 1)[0].split("=", 1)[1]


def unquote(value: str) -> str:
    return value.strip('"')

