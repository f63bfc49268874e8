"""
Session manager: identity resolution and write-through persistence.

Per request a session is either resolved (identifier decrypted from the
cookie and a record found in the store) or unresolved (fresh defaults).
Every mutation of the session then re-serializes the full state,
recomputes the TTL from the cookie attributes, re-encrypts the
identifier and schedules the store write. The identifier itself is
allocated lazily, on the first mutation, so read-only visitors never
cost a store write.
"""

import asyncio
import json
import logging
import secrets
from datetime import UTC, datetime
from functools import partial
from typing import Any, Callable, Dict, List, Mapping, Optional

from ...errors import DecryptionFailure, SerializationFailure
from ..crypto import Cipher, SecretCipher
from ..storage import SessionStore, glob_escape
from .cookie import DEFAULT_COOKIE, CookieAttributes
from .session import Session

logger = logging.getLogger(__name__)

DEFAULT_COOKIE_NAME = "session:"


def gen_id_default(request: Any) -> str:
    """Random 20-character hex token."""
    return secrets.token_hex(10)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SessionManager:
    def __init__(
        self,
        store: SessionStore,
        secret: Optional[str] = None,
        *,
        name: str = DEFAULT_COOKIE_NAME,
        resave: bool = False,
        save_uninitialized: bool = False,
        cookie: Optional[Mapping[str, Any]] = None,
        gen_id: Optional[Callable[[Any], str]] = None,
        reuse_stale_id: bool = True,
        cipher: Optional[Cipher] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize session manager.

        Args:
            store: Backend implementing the SessionStore protocol
            secret: Key used to encrypt the identifier in the cookie
            name: Cookie name
            resave: Re-persist loaded sessions even when unmodified (refreshes TTL)
            save_uninitialized: Persist new sessions even when unmodified
            cookie: Overrides applied to the default cookie attributes
            gen_id: Identifier generator called with the request
            reuse_stale_id: Keep a decrypted identifier whose record is gone
                and reuse it on the next write, instead of allocating a new one
            cipher: Replaces the default Fernet cipher derived from secret
            clock: Returns the current UTC time (for TTL computation)
        """
        if cipher is None:
            if not secret:
                raise ValueError("A secret is required to encrypt session cookies")
            cipher = SecretCipher(secret)
        self.store = store
        self.cipher = cipher
        self.name = name
        self.resave = resave
        self.save_uninitialized = save_uninitialized
        self.gen_id = gen_id or gen_id_default
        self.reuse_stale_id = reuse_stale_id
        self.clock = clock or _utcnow
        # Validates the overrides once, up front
        self._cookie_defaults = dict(CookieAttributes({**DEFAULT_COOKIE, **(cookie or {})}).items())

    def default_cookie(self) -> Dict[str, Any]:
        """Cookie attributes of a fresh session."""
        return dict(self._cookie_defaults)

    # -- loading -----------------------------------------------------------

    def _decrypt(self, value: str) -> Optional[str]:
        try:
            return self.cipher.decrypt(value)
        except DecryptionFailure:
            logger.debug("Ignoring undecryptable session cookie")
            return None

    def _restore(self, session_id: str, record: str) -> Optional[Session]:
        try:
            data = json.loads(record)
            if not isinstance(data, dict):
                raise ValueError("record is not a JSON object")
            return Session(data, session_id=session_id, is_new=False)
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Discarding unreadable session record {session_id}: {e}")
            return None

    async def load(self, request: Any) -> Session:
        """
        Resolve the session for a request.

        Args:
            request: Request exposing a `cookies` mapping

        Returns:
            Session bound to this manager; mutations persist automatically

        Raises:
            StoreUnavailable: If the store cannot be read
        """
        raw = request.cookies.get(self.name)
        session_id = self._decrypt(raw) if raw else None

        session = None
        if session_id is not None:
            record = await self.store.get(session_id)
            if record is not None:
                session = self._restore(session_id, record)

        if session is None:
            if session_id is not None and not self.reuse_stale_id:
                session_id = None
            session = Session({"cookie": self.default_cookie()}, session_id=session_id)

        session.bind(partial(self._persist, request), asyncio.get_running_loop())
        return session

    # -- persistence -------------------------------------------------------

    def _persist(self, request: Any, session: Session) -> None:
        try:
            payload = json.dumps(session.to_dict())
        except (TypeError, ValueError) as e:
            raise SerializationFailure(f"Session {session.session_id} is not serializable: {e}") from e

        if session.session_id is None:
            session._assign_id(f"{self.store.prefix}{self.gen_id(request)}")
        session_id = session.session_id

        ttl = session.cookie.ttl_millis(self.clock())
        session._set_outgoing(
            self.cipher.encrypt(session_id), CookieAttributes(dict(session.cookie.items()))
        )

        if ttl is not None and ttl <= 0:
            # Already expired: nothing to keep
            self._schedule(session, self.store.delete, glob_escape(session_id))
        else:
            self._schedule(session, self.store.set, session_id, payload, ttl)

    def _schedule(self, session: Session, operation: Callable, *args: Any) -> None:
        async def write():
            async with session._write_lock:
                await operation(*args)

        loop = session._loop
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            session._pending.append(loop.create_task(write()))
        else:
            # Handler running in a worker thread
            session._pending.append(asyncio.run_coroutine_threadsafe(write(), loop))

    async def settle(self, session: Session) -> List[BaseException]:
        """
        Wait for all scheduled store writes of a session.

        Failures are logged and returned, never raised.
        """
        errors: List[BaseException] = []
        while session._pending:
            pending = list(session._pending)
            session._pending.clear()
            futures = [
                f if isinstance(f, asyncio.Future) else asyncio.wrap_future(f) for f in pending
            ]
            for result in await asyncio.gather(*futures, return_exceptions=True):
                if isinstance(result, BaseException):
                    logger.error(f"Session write failed for {session.session_id}: {result}")
                    errors.append(result)
        return errors

    async def commit(self, session: Session, response: Any) -> None:
        """
        Finish a request: apply resave/saveUninitialized, wait for writes
        and attach the session cookie to the response.
        """
        if not session.modified and not session.destroyed:
            if (session.is_new and self.save_uninitialized) or (
                not session.is_new and self.resave
            ):
                session.save()

        await self.settle(session)

        if session._outgoing is not None:
            value, cookie = session._outgoing
            response.set_cookie(self.name, value, **cookie.response_kwargs())
        elif session.destroyed:
            response.delete_cookie(
                self.name, path=session.cookie.path or "/", domain=session.cookie.domain
            )

    async def destroy(self, session: Session) -> None:
        """
        Delete the session record and start over with a fresh, unsaved session.

        Raises:
            StoreUnavailable: If the record cannot be deleted
        """
        await self.settle(session)
        if session.session_id is not None:
            await self.store.delete(glob_escape(session.session_id))
            logger.info(f"Session {session.session_id} destroyed")
        session._reset(self.default_cookie())
