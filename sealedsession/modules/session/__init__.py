"""
Session Module - Black Box Interface

Purpose: Per-request session identity and write-through persistence
Interface: SessionManager.load(), commit(), destroy(); Session; CookieAttributes
Hidden: Identifier allocation, TTL derivation, write scheduling

Any store implementing the storage SessionStore protocol can back it.
"""

from .cookie import DEFAULT_COOKIE, CookieAttributes
from .manager import DEFAULT_COOKIE_NAME, SessionManager, gen_id_default
from .session import Session

__all__ = [
    "CookieAttributes",
    "DEFAULT_COOKIE",
    "DEFAULT_COOKIE_NAME",
    "Session",
    "SessionManager",
    "gen_id_default",
]
