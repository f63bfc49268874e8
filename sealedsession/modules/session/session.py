"""
Request-scoped session view.

Assigning or deleting a field (attribute or item syntax) and changing any
cookie attribute immediately notifies the manager, which persists the
whole session. Reads never persist. Values nested inside a field are not
observed: reassign the field or call save() after mutating them in place.
"""

import asyncio
from functools import partial
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .cookie import DEFAULT_COOKIE, CookieAttributes


class Session:
    """Mutable session state with write-through change notification."""

    def __init__(
        self,
        data: Optional[Mapping[str, Any]] = None,
        *,
        session_id: Optional[str] = None,
        is_new: bool = True,
    ):
        data = dict(data or {})
        cookie = data.pop("cookie", None)
        object.__setattr__(self, "_data", data)
        object.__setattr__(self, "_cookie", CookieAttributes(cookie if cookie is not None else DEFAULT_COOKIE))
        object.__setattr__(self, "_session_id", session_id)
        object.__setattr__(self, "_is_new", is_new)
        object.__setattr__(self, "_modified", False)
        object.__setattr__(self, "_destroyed", False)
        object.__setattr__(self, "_on_change", None)
        # Set by the manager on every persistence: (encrypted id, cookie attributes)
        object.__setattr__(self, "_outgoing", None)
        object.__setattr__(self, "_pending", [])
        object.__setattr__(self, "_loop", None)
        object.__setattr__(self, "_write_lock", None)
        self._cookie.bind(self._changed)

    # -- identity ----------------------------------------------------------

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    @property
    def is_new(self) -> bool:
        """True unless the session was loaded from a stored record."""
        return self._is_new

    @property
    def modified(self) -> bool:
        return self._modified

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def cookie(self) -> CookieAttributes:
        return self._cookie

    # -- change tracking ---------------------------------------------------

    def bind(self, on_change: Callable[["Session"], None], loop: asyncio.AbstractEventLoop) -> None:
        """Attach the persistence callback and the loop store writes run on."""
        object.__setattr__(self, "_on_change", on_change)
        object.__setattr__(self, "_loop", loop)
        # Serializes this session's store writes in mutation order
        object.__setattr__(self, "_write_lock", asyncio.Lock())

    def _changed(self) -> None:
        modified = self._modified
        object.__setattr__(self, "_modified", True)
        if self._on_change is not None:
            try:
                self._on_change(self)
            except Exception:
                object.__setattr__(self, "_modified", modified)
                raise

    def _write(self, apply: Callable[[], None]) -> None:
        """Apply a field change and persist it; undo the change if persisting fails."""
        data = dict(self._data)
        cookie = dict(self._cookie.items())
        apply()
        try:
            self._changed()
        except Exception:
            object.__setattr__(self, "_data", data)
            self._cookie.replace_values(cookie)
            raise

    def save(self) -> None:
        """Persist now, e.g. after mutating a nested value in place."""
        self._changed()

    def _assign_id(self, session_id: str) -> None:
        object.__setattr__(self, "_session_id", session_id)

    def _set_outgoing(self, value: str, cookie: CookieAttributes) -> None:
        object.__setattr__(self, "_outgoing", (value, cookie))

    def _reset(self, cookie: Mapping[str, Any]) -> None:
        """Drop all state and identity; the next mutation starts a new session."""
        self._data.clear()
        object.__setattr__(self, "_cookie", CookieAttributes(cookie))
        self._cookie.bind(self._changed)
        object.__setattr__(self, "_session_id", None)
        object.__setattr__(self, "_is_new", True)
        object.__setattr__(self, "_modified", False)
        object.__setattr__(self, "_destroyed", True)
        object.__setattr__(self, "_outgoing", None)

    # -- field access ------------------------------------------------------

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._data[name]
        except KeyError:
            raise AttributeError(f"Session has no field {name!r}") from None

    @classmethod
    def _check_field(cls, name: str) -> None:
        # Methods, properties and private names cannot be shadowed by data
        if name.startswith("_") or (name != "cookie" and hasattr(cls, name)):
            raise AttributeError(f"Cannot assign session attribute {name!r}")

    def __setattr__(self, name: str, value: Any) -> None:
        self._check_field(name)
        if name == "cookie":
            self._assign_cookie(value)
            return
        self._write(partial(self._data.__setitem__, name, value))

    def __delattr__(self, name: str) -> None:
        if name not in self._data:
            raise AttributeError(f"Session has no field {name!r}")
        self._write(partial(self._data.__delitem__, name))

    def __getitem__(self, key: str) -> Any:
        if key == "cookie":
            return self._cookie
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        setattr(self, key, value)

    def __delitem__(self, key: str) -> None:
        if key not in self._data:
            raise KeyError(key)
        delattr(self, key)

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def keys(self) -> List[str]:
        """Application field names (excluding the cookie)."""
        return list(self._data)

    def update(self, fields: Optional[Mapping[str, Any]] = None, **kwargs) -> None:
        """Assign several fields as a single mutation (one store write)."""
        changes = {**(fields or {}), **kwargs}
        cookie = changes.pop("cookie", None)
        for name in changes:
            self._check_field(name)
        staged = self._cookie.staged(self._cookie_items(cookie)) if cookie is not None else None

        def apply():
            if staged is not None:
                self._cookie.replace_values(staged)
            self._data.update(changes)

        self._write(apply)

    def _assign_cookie(self, value: Any) -> None:
        # Wholesale assignment merges into the current attributes
        self._cookie.update(self._cookie_items(value))

    @staticmethod
    def _cookie_items(value: Any) -> List[Tuple[str, Any]]:
        if isinstance(value, CookieAttributes):
            return value.items()
        if isinstance(value, Mapping):
            return list(value.items())
        raise TypeError(f"cookie must be a mapping or CookieAttributes, got {type(value).__name__}")

    # -- serialization -----------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {"cookie": self._cookie.to_dict(), **self._data}

    def __repr__(self) -> str:
        return f"Session(id={self._session_id!r}, data={self.to_dict()!r})"
