"""
In-process query cache.

Entries are keyed by (entity, filters) and expire after a TTL. Concurrent
misses on the same key share a single load. Mutations call invalidate()
with the entity name so every cached query over it is dropped at once.

Free-text filters make the key space open-ended, so expired entries are
purged on every store, the entry count is capped and per-key locks only
live while a load is in flight.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional, Tuple

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, Hashable]


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


@dataclass
class KeyLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    # Callers holding or waiting on the lock
    users: int = 0


class QueryCache:
    def __init__(self, default_ttl: float = 15.0, max_entries: int = 1000):
        self.default_ttl = default_ttl
        self.max_entries = max_entries
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._locks: Dict[CacheKey, KeyLock] = {}
        # Bumped on invalidate so loads that started earlier are not stored
        self._generations: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, entity: str, filters: Hashable = None) -> Any:
        """Return a fresh cached value or None."""
        entry = self._entries.get((entity, filters))
        if entry is None:
            return None

        if time.monotonic() >= entry.expires_at:
            self._entries.pop((entity, filters), None)
            return None

        return entry.value

    def set(self, entity: str, filters: Hashable, value: Any, ttl: Optional[float] = None) -> None:
        now = time.monotonic()
        ttl = self.default_ttl if ttl is None else ttl

        self._purge_expired(now)
        key = (entity, filters)
        self._entries.pop(key, None)
        while len(self._entries) >= self.max_entries:
            # Dicts keep insertion order, so the first key is the oldest
            del self._entries[next(iter(self._entries))]

        self._entries[key] = CacheEntry(value=value, expires_at=now + ttl)

    def _purge_expired(self, now: float) -> None:
        expired = [key for key, entry in self._entries.items() if now >= entry.expires_at]
        for key in expired:
            del self._entries[key]

    async def get_or_load(
        self,
        entity: str,
        filters: Hashable,
        loader: Callable[[], Awaitable[Any]],
        ttl: Optional[float] = None,
    ) -> Any:
        """
        Return the cached value for (entity, filters), loading it on a miss.

        Only one loader runs per key at a time; callers arriving while a load
        is in flight wait for it and reuse its result.
        """
        cached = self.get(entity, filters)
        if cached is not None:
            return cached

        key = (entity, filters)
        key_lock = self._locks.setdefault(key, KeyLock())
        key_lock.users += 1

        try:
            async with key_lock.lock:
                cached = self.get(entity, filters)
                if cached is not None:
                    return cached

                generation = self._generations.get(entity, 0)
                value = await loader()

                if self._generations.get(entity, 0) == generation:
                    self.set(entity, filters, value, ttl)
                return value
        finally:
            key_lock.users -= 1
            if not key_lock.users:
                self._locks.pop(key, None)

    def invalidate(self, entity: str) -> int:
        """Drop every cached query for an entity. Returns number of entries removed."""
        self._generations[entity] = self._generations.get(entity, 0) + 1

        stale = [key for key in self._entries if key[0] == entity]
        for key in stale:
            del self._entries[key]

        logger.debug(f"Invalidated {len(stale)} cached '{entity}' queries")
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()
        self._generations.clear()
