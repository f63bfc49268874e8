"""Configuration provider following Black Box Design principles."""
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

from ..modules.storage import RedisClientConfig


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


def _parse_skip_paths(value: Optional[str]) -> Dict[str, list]:
    """
    Parse "/path:GET|HEAD,/static:*" into {path: [methods]}.

    A path without methods is skipped for GET only. GET /health is always included.
    """
    skip_paths: Dict[str, list] = {"/health": ["GET"]}
    for entry in (value or "").split(","):
        entry = entry.strip()
        if not entry:
            continue
        path, _, methods = entry.partition(":")
        skip_paths[path.strip()] = [m.strip().upper() for m in (methods or "GET").split("|") if m.strip()]
    return skip_paths


@dataclass
class RedisConfig:
    """Redis store configuration."""
    path: Optional[str]
    host: Optional[str]
    port: Optional[int]
    db: int
    password: Optional[str]
    prefix: str
    connect_timeout: float
    monitor_interval: float

    def to_client_config(self) -> RedisClientConfig:
        """Build the store's client configuration."""
        options: Dict[str, Any] = {"db": self.db}
        if self.password:
            options["password"] = self.password
        return RedisClientConfig(path=self.path, port=self.port, host=self.host, options=options)


@dataclass
class SessionConfig:
    """Session cookie and persistence configuration."""
    secret: str
    cookie_name: str
    resave: bool
    save_uninitialized: bool
    reuse_stale_id: bool
    cookie_secure: bool
    cookie_domain: Optional[str]
    cookie_max_age: Optional[int]

    def cookie_defaults(self) -> Dict[str, Any]:
        """Cookie attribute overrides applied to fresh sessions."""
        cookie: Dict[str, Any] = {"secure": self.cookie_secure}
        if self.cookie_domain:
            cookie["domain"] = self.cookie_domain
        if self.cookie_max_age is not None:
            cookie["max_age"] = self.cookie_max_age
        return cookie


@dataclass
class APIConfig:
    """API configuration."""
    port: int
    host: str
    debug: bool
    log_level: str = "INFO"
    skip_paths: Dict[str, list] = field(default_factory=lambda: {"/health": ["GET"]})


class ConfigProvider(Protocol):
    """Protocol for configuration providers."""

    def get_redis_config(self) -> RedisConfig:
        """Get Redis configuration."""
        ...

    def get_session_config(self) -> SessionConfig:
        """Get session configuration."""
        ...

    def get_api_config(self) -> APIConfig:
        """Get API configuration."""
        ...


class EnvConfigProvider:
    """Environment-based configuration provider."""

    def get_redis_config(self) -> RedisConfig:
        """Get Redis configuration from environment variables."""
        path = os.getenv("REDIS_PATH")
        port_env = os.getenv("REDIS_PORT")
        port = None
        if port_env:
            # Kubernetes service links inject tcp://host:port
            if port_env.startswith("tcp://"):
                port = int(port_env.split(":")[-1])
            else:
                port = int(port_env)
        host = os.getenv("REDIS_HOST")
        if not path and port is None and host:
            port = 6379

        return RedisConfig(
            path=path,
            host=host,
            port=port,
            db=int(os.getenv("REDIS_DB", "0")),
            password=os.getenv("REDIS_PASSWORD"),
            prefix=os.getenv("SESSION_PREFIX", "sess:"),
            connect_timeout=float(os.getenv("REDIS_CONNECT_TIMEOUT", "10")),
            monitor_interval=float(os.getenv("REDIS_MONITOR_INTERVAL", "5")),
        )

    def get_session_config(self) -> SessionConfig:
        """Get session configuration from environment variables."""
        # No default secret for security
        secret = os.getenv("SESSION_SECRET")
        if not secret:
            raise ValueError(
                "SESSION_SECRET environment variable is required. "
                "It encrypts the session identifier stored in the client cookie."
            )

        max_age = os.getenv("SESSION_COOKIE_MAX_AGE")
        return SessionConfig(
            secret=secret,
            cookie_name=os.getenv("SESSION_COOKIE_NAME", "session:"),
            resave=_env_bool("SESSION_RESAVE"),
            save_uninitialized=_env_bool("SESSION_SAVE_UNINITIALIZED"),
            reuse_stale_id=_env_bool("SESSION_REUSE_STALE_ID", "true"),
            cookie_secure=_env_bool("SESSION_COOKIE_SECURE"),
            cookie_domain=os.getenv("SESSION_COOKIE_DOMAIN") or None,
            cookie_max_age=int(max_age) if max_age else None,
        )

    def get_api_config(self) -> APIConfig:
        """Get API configuration from environment variables."""
        return APIConfig(
            port=int(os.getenv("API_PORT", "8080")),
            host=os.getenv("API_HOST", "0.0.0.0"),
            debug=_env_bool("API_DEBUG"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            skip_paths=_parse_skip_paths(os.getenv("SESSION_SKIP_PATHS")),
        )
