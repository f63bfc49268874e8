"""
Redis-backed session store.

Connection parameters come from a single RedisClientConfig validated at
construction. Connection health is supervised by a per-instance
ReconnectWatchdog: connection errors arm it and the next successful
operation clears it.
"""

import asyncio
import logging
import signal
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import redis.asyncio as redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from ...errors import StoreUnavailable
from .watchdog import ReconnectWatchdog

logger = logging.getLogger(__name__)

# Seconds the backend has to come back before the process is terminated
REDIS_CONNECT_TIMEOUT = 10.0

_URL_SCHEMES = ("redis://", "rediss://", "unix://")
_SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


@dataclass
class RedisClientConfig:
    """
    Redis connection parameters.

    Supported shapes:
        - nothing (localhost:6379)
        - path: unix socket path or redis:// / rediss:// / unix:// URL
        - port, optionally with host
        - any of the above with options (password, db, username, ...)
    """
    path: Optional[str] = None
    port: Optional[int] = None
    host: Optional[str] = None
    options: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """
        Check that the supplied combination is coherent.

        Raises:
            ValueError: If the combination cannot describe one connection
        """
        if self.path is not None:
            if not self.path:
                raise ValueError("Redis path must not be empty")
            if self.port is not None or self.host is not None:
                raise ValueError("Redis path cannot be combined with port or host")
        if self.host is not None and self.port is None:
            raise ValueError("Redis host requires a port")
        if self.port is not None and not 0 < self.port < 65536:
            raise ValueError(f"Invalid Redis port: {self.port}")

    def create_client(self) -> redis.Redis:
        """Create the async Redis client described by this config."""
        kwargs = {**self.options, "decode_responses": True}
        if self.path is not None:
            if self.path.startswith(_URL_SCHEMES):
                return redis.from_url(self.path, **kwargs)
            return redis.Redis(unix_socket_path=self.path, **kwargs)
        if self.port is not None:
            return redis.Redis(host=self.host or "localhost", port=self.port, **kwargs)
        return redis.Redis(**kwargs)


class RedisStore:
    """Namespaced Redis store with TTL support."""

    def __init__(
        self,
        prefix: str,
        client: Optional[RedisClientConfig] = None,
        *,
        redis_client=None,
        reconnect_timeout: float = REDIS_CONNECT_TIMEOUT,
        on_reconnect_timeout: Optional[Callable[[], None]] = None,
    ):
        """
        Initialize Redis store.

        Args:
            prefix: Namespace prepended to generated session identifiers
            client: Connection parameters (defaults to localhost:6379)
            redis_client: Pre-built async Redis client, overrides client
            reconnect_timeout: Seconds allowed for reconnecting after an error
            on_reconnect_timeout: Called when reconnecting times out
                (default: terminate the process)
        """
        self.prefix = prefix
        self.config = client or RedisClientConfig()
        self.redis = redis_client if redis_client is not None else self.config.create_client()
        self.watchdog = ReconnectWatchdog(
            reconnect_timeout, on_timeout=on_reconnect_timeout, name="Redis"
        )
        self._connected: Optional[bool] = None
        self._monitor_task: Optional[asyncio.Task] = None

    def _mark_connected(self) -> None:
        if self._connected is not True:
            logger.info("Redis connection status: connected")
        self._connected = True
        self.watchdog.clear()

    def _mark_failed(self, exc: Exception) -> None:
        if self._connected is not False:
            logger.warning(f"Redis connection status: error {exc}")
        self._connected = False
        self.watchdog.start()

    @asynccontextmanager
    async def _operation(self, name: str):
        try:
            yield
        except (RedisConnectionError, RedisTimeoutError) as e:
            self._mark_failed(e)
            raise StoreUnavailable(f"Redis {name} failed: {e}") from e
        except RedisError as e:
            logger.error(f"Redis {name} rejected: {e}")
            raise StoreUnavailable(f"Redis {name} rejected: {e}") from e
        else:
            self._mark_connected()

    async def set(self, key: str, value: str, ttl_millis: Optional[int] = None) -> None:
        """
        Write value under key.

        Args:
            key: Session identifier
            value: Serialized session state
            ttl_millis: Expiry in milliseconds (SET ... PX); none if omitted
        """
        async with self._operation("set"):
            if ttl_millis:
                await self.redis.set(key, value, px=ttl_millis)
            else:
                await self.redis.set(key, value)

    async def get(self, key: str) -> Optional[str]:
        """Return the stored value or None if missing or expired."""
        async with self._operation("get"):
            return await self.redis.get(key)

    async def delete(self, pattern: str) -> None:
        """
        Delete all keys matching a glob pattern.

        Keys are resolved incrementally with SCAN.
        """
        async with self._operation("delete"):
            keys = [key async for key in self.redis.scan_iter(match=pattern)]
            if keys:
                await self.redis.delete(*keys)

    async def ping(self) -> bool:
        """Check the connection; raises StoreUnavailable on failure."""
        async with self._operation("ping"):
            return bool(await self.redis.ping())

    async def _monitor(self, interval: float) -> None:
        while True:
            try:
                await self.ping()
            except StoreUnavailable:
                pass  # watchdog is armed by ping
            await asyncio.sleep(interval)

    def start_monitor(self, interval: float = 5.0) -> asyncio.Task:
        """Ping the backend periodically so outages are noticed without traffic."""
        if self._monitor_task is None or self._monitor_task.done():
            self._monitor_task = asyncio.get_running_loop().create_task(self._monitor(interval))
        return self._monitor_task

    async def close(self) -> None:
        """Stop supervision and close the connection."""
        if self._monitor_task is not None:
            self._monitor_task.cancel()
            try:
                await self._monitor_task
            except asyncio.CancelledError:
                pass
            self._monitor_task = None
        self.watchdog.clear()
        await self.redis.aclose()
        self._connected = None
        logger.info("Redis connection status: disconnected")

    def install_signal_handlers(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """
        Close the connection on SIGINT or SIGTERM, then let the signal end
        the process as it would without these handlers.

        For applications driving their own event loop. Under uvicorn the
        application lifespan closes the store instead.
        """
        loop = loop or asyncio.get_running_loop()
        for sig in _SHUTDOWN_SIGNALS:
            loop.add_signal_handler(
                sig, lambda sig=sig: loop.create_task(self._close_and_reraise(loop, sig))
            )

    async def _close_and_reraise(self, loop: asyncio.AbstractEventLoop, sig: signal.Signals) -> None:
        try:
            await self.close()
        finally:
            for handled in _SHUTDOWN_SIGNALS:
                loop.remove_signal_handler(handled)
            logger.info(f"Re-raising {sig.name} after closing the Redis store")
            signal.raise_signal(sig)
