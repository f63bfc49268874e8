"""
Storage Module - Black Box Interface

Purpose: Namespaced key-value persistence with optional per-key TTL
Interface: set(), get(), delete()
Hidden: Redis specifics, connection supervision, pattern resolution

Can be replaced with any backend that stores strings with a TTL and
supports glob-pattern deletes.
"""

from .interfaces import SessionStore, glob_escape
from .memory import MemoryStore
from .redis_store import REDIS_CONNECT_TIMEOUT, RedisClientConfig, RedisStore
from .watchdog import ReconnectWatchdog

__all__ = [
    "SessionStore",
    "MemoryStore",
    "RedisStore",
    "RedisClientConfig",
    "ReconnectWatchdog",
    "REDIS_CONNECT_TIMEOUT",
    "glob_escape",
]
