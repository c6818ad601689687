"""Lightweight in-memory TTL cache for expensive queries.

Designed for list and stats endpoints where identical requests from the
same tenant within a short window should return cached results instead of
re-running aggregate SQL queries and the sales rollups built on top of them.

The store is an ordinary object: the application creates one at startup and
hands it to request handlers through a dependency. Nothing here is
thread-safe; the service runs on a single event loop.
"""

import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

V = TypeVar("V")

# Default TTL in seconds
DEFAULT_TTL = 300.0

KEY_DELIMITER = ":"

_MISSING: Any = object()


@dataclass(slots=True)
class CacheEntry(Generic[V]):
    value: V
    created_at: float
    expires_at: float

    def is_live(self, now: float) -> bool:
        return now <= self.expires_at


@dataclass
class CacheStats:
    size: int
    keys: list[str] = field(default_factory=list)


class TTLCache(Generic[V]):
    """Mapping from string key to a value that expires after a TTL.

    Expired entries are removed lazily on read and actively by
    :meth:`cleanup`, which a :class:`~app.workers.cache_sweeper.CacheSweeper`
    runs on a timer.
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry[V]] = {}

    def get(self, key: str, default: Any = None) -> V | Any:
        """Return the cached value if present and not expired, else ``default``."""
        entry = self._entries.get(key)
        if entry is None:
            return default
        if not entry.is_live(self._clock()):
            del self._entries[key]
            return default
        return entry.value

    def set(self, key: str, value: V, ttl: float | None = None) -> None:
        """Store a value, replacing any existing entry for ``key``."""
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        now = self._clock()
        self._entries[key] = CacheEntry(value=value, created_at=now, expires_at=now + ttl)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def cleanup(self) -> int:
        """Remove every expired entry. Returns how many were dropped."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.expires_at < now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def stats(self) -> CacheStats:
        """Entry count and keys, including expired entries not yet swept."""
        return CacheStats(size=len(self._entries), keys=list(self._entries))

    async def get_or_set(
        self,
        key: str,
        producer: Callable[[], Awaitable[V]],
        ttl: float | None = None,
    ) -> V:
        """Return the cached value, or await ``producer`` and cache its result.

        Concurrent misses on the same key each run the producer; the last
        ``set`` wins. A producer exception propagates and nothing is stored.
        """
        cached = self.get(key, _MISSING)
        if cached is not _MISSING:
            return cached
        value = await producer()
        self.set(key, value, ttl)
        return value

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key, _MISSING) is not _MISSING

    def __len__(self) -> int:
        return len(self._entries)


def build_key(*parts: str | int | uuid.UUID) -> str:
    """Join key parts with ``:`` in order.

    Parts are not escaped, so a part that itself contains ``:`` can collide
    with a different split of the same characters.
    """
    return KEY_DELIMITER.join(str(part) for part in parts)
