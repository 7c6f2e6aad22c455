"""
Pluggable key/value stores backing the credential cache.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol


class CacheStore(Protocol):
    """
    Async key/value store shared by credential cache instances.

    Implementations may be process-local or external (Redis, memcached, ...).
    Values are replaced whole on set(); callers never mutate a stored value.
    """

    async def get(self, key: str) -> Any | None:
        """Return the value for key, or None if absent or expired."""
        ...

    async def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store value under key, optionally expiring after ttl seconds."""
        ...

    async def delete(self, key: str) -> None:
        """Remove key if present."""
        ...

    async def clear(self, prefix: str = "") -> None:
        """Remove every key starting with prefix."""
        ...


@dataclass(frozen=True)
class _Entry:
    value: Any
    expires_at: float | None


class InMemoryStore:
    """
    Process-local store with per-entry expiry.

    Used when the host application does not attach an external cache.

    Example:
        store = InMemoryStore()
        await store.set("ns:issuer-jwks", key_set, ttl=300)
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        self._entries: dict[str, _Entry] = {}
        self._clock = clock or time.time

    async def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and self._clock() >= entry.expires_at:
            self._entries.pop(key, None)
            return None
        return entry.value

    async def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        expires_at = None if ttl is None else self._clock() + ttl
        self._entries[key] = _Entry(value=value, expires_at=expires_at)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def clear(self, prefix: str = "") -> None:
        for key in [k for k in self._entries if k.startswith(prefix)]:
            del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)


class NullStore:
    """Store that keeps nothing. Every credential lookup goes to the network."""

    async def get(self, key: str) -> Any | None:
        return None

    async def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        return None

    async def delete(self, key: str) -> None:
        return None

    async def clear(self, prefix: str = "") -> None:
        return None
