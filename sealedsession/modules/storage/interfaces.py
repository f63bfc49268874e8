"""Storage interfaces following Black Box Design principles."""
import re
from typing import Optional, Protocol, runtime_checkable

# Bracket classes are literal in both Redis MATCH and fnmatch patterns
_GLOB_LITERALS = {"*": "[*]", "?": "[?]", "[": "[[]", "\\": "[\\\\]"}
_GLOB_SPECIAL = re.compile(r"[*?\[\\]")


def glob_escape(key: str) -> str:
    """Pattern matching exactly `key`, for deleting a single record."""
    return _GLOB_SPECIAL.sub(lambda m: _GLOB_LITERALS[m.group(0)], key)


@runtime_checkable
class SessionStore(Protocol):
    """Protocol for session stores - allows swappable backends."""

    prefix: str

    async def set(self, key: str, value: str, ttl_millis: Optional[int] = None) -> None:
        """
        Write value under key.

        Args:
            key: Store key (a session identifier)
            value: Serialized value
            ttl_millis: Expire the key after this many milliseconds; no expiry if omitted

        Raises:
            StoreUnavailable: If the backend cannot accept the write
        """
        ...

    async def get(self, key: str) -> Optional[str]:
        """
        Read the value stored under key.

        Returns:
            The value, or None if the key does not exist or has expired

        Raises:
            StoreUnavailable: On backend error
        """
        ...

    async def delete(self, pattern: str) -> None:
        """
        Remove every key matching a glob pattern.

        A pattern matching no keys is a no-op.
        """
        ...
