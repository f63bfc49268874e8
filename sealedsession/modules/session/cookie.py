"""
Session cookie attributes.

`expires` and `max_age` are mutually exclusive: assigning one clears the
other. Bulk updates apply keys in order, so when both appear the later
key wins. Every assignment notifies the owning session, which persists.
"""

import math
from datetime import UTC, datetime
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple, Union

# Canonical attribute name -> serialized (wire) name
FIELDS = {
    "path": "path",
    "domain": "domain",
    "http_only": "httpOnly",
    "secure": "secure",
    "same_site": "sameSite",
    "expires": "expires",
    "max_age": "maxAge",
}
ALIASES = {wire: name for name, wire in FIELDS.items()}

DEFAULT_COOKIE = {"path": "/", "http_only": True, "secure": False}


def canonical_name(key: str) -> str:
    """Map a snake_case or wire (camelCase) attribute name to its canonical form."""
    if key in FIELDS:
        return key
    if key in ALIASES:
        return ALIASES[key]
    raise AttributeError(f"Unknown cookie attribute: {key}")


def _coerce_expires(value: Union[datetime, str]) -> datetime:
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if not isinstance(value, datetime):
        raise TypeError(f"expires must be a datetime, got {type(value).__name__}")
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _coerce_max_age(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"max_age must be a number of milliseconds, got {type(value).__name__}")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"max_age must be finite, got {value}")
    return int(value)


class CookieAttributes:
    """Observable cookie attribute set for one session."""

    def __init__(self, attrs: Optional[Mapping[str, Any]] = None, **kwargs):
        object.__setattr__(self, "_values", {})
        object.__setattr__(self, "_on_change", None)
        self._apply_all(attrs or {})
        self._apply_all(kwargs)

    def bind(self, on_change: Optional[Callable[[], None]]) -> None:
        """Register the callback run after every mutation."""
        object.__setattr__(self, "_on_change", on_change)

    def _apply(self, key: str, value: Any) -> None:
        name = canonical_name(key)
        values = self._values
        if value is None:
            values.pop(name, None)
            return
        if name == "expires":
            value = _coerce_expires(value)
            values.pop("max_age", None)
        elif name == "max_age":
            value = _coerce_max_age(value)
            values.pop("expires", None)
        values[name] = value

    def _apply_all(self, attrs: Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]) -> None:
        items = attrs.items() if isinstance(attrs, Mapping) else attrs
        for key, value in items:
            self._apply(key, value)

    def _changed(self, previous: Dict[str, Any]) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change()
        except Exception:
            self.replace_values(previous)
            raise

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return self._values.get(canonical_name(name))

    def __setattr__(self, name: str, value: Any) -> None:
        previous = dict(self._values)
        self._apply(name, value)
        self._changed(previous)

    def __delattr__(self, name: str) -> None:
        previous = dict(self._values)
        self._apply(name, None)
        self._changed(previous)

    def staged(self, attrs: Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]) -> Dict[str, Any]:
        """Values that applying attrs in order would produce, without applying them."""
        scratch = CookieAttributes(self._values)
        scratch._apply_all(attrs)
        return scratch._values

    def replace_values(self, values: Mapping[str, Any]) -> None:
        object.__setattr__(self, "_values", dict(values))

    def update(
        self,
        attrs: Union[Mapping[str, Any], Iterable[Tuple[str, Any]], None] = None,
        **kwargs,
    ) -> None:
        """Apply several attributes in order as a single mutation; all or nothing."""
        items = attrs.items() if isinstance(attrs, Mapping) else (attrs or [])
        previous = dict(self._values)
        self.replace_values(self.staged([*items, *kwargs.items()]))
        self._changed(previous)

    def ttl_millis(self, now: datetime) -> Optional[int]:
        """
        Store TTL derived from the current attributes.

        Returns:
            abs(expires - now) in ms if expires is set, else max_age,
            else None (no expiry)
        """
        expires = self._values.get("expires")
        if expires is not None:
            return abs(round((expires - now).total_seconds() * 1000))
        return self._values.get("max_age")

    def to_dict(self) -> Dict[str, Any]:
        """Serialized form using wire attribute names."""
        data = {}
        for name, wire in FIELDS.items():
            if name not in self._values:
                continue
            value = self._values[name]
            data[wire] = value.isoformat() if name == "expires" else value
        return data

    def items(self):
        """Canonical (name, value) pairs of the attributes that are set."""
        return list(self._values.items())

    def response_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for Response.set_cookie() (max_age in whole seconds)."""
        values = self._values
        kwargs: Dict[str, Any] = {
            "path": values.get("path", "/"),
            "domain": values.get("domain"),
            "secure": bool(values.get("secure", False)),
            "httponly": bool(values.get("http_only", False)),
            "samesite": values.get("same_site", "lax"),
        }
        if "expires" in values:
            kwargs["expires"] = values["expires"]
        elif "max_age" in values:
            kwargs["max_age"] = max(0, math.ceil(values["max_age"] / 1000))
        return kwargs

    def __contains__(self, key: str) -> bool:
        return canonical_name(key) in self._values

    def __eq__(self, other: object) -> bool:
        if isinstance(other, CookieAttributes):
            return self._values == other._values
        return NotImplemented

    def __repr__(self) -> str:
        return f"CookieAttributes({self.to_dict()!r})"
