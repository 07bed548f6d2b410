from __future__ import annotations

"""Normalized-key response cache with TTL expiry and LRU eviction."""

import re
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable

_PUNCTUATION_RE = re.compile(r"[?!.,]")
MAX_KEY_LENGTH = 100


class CacheError(ValueError):
    """Raised when a cache operation is invalid."""
    pass


@dataclass
class CacheEntry:
    response: str
    timestamp: float
    hits: int = 0


@dataclass(frozen=True)
class CacheLookup:
    """Outcome of a cache read."""
    key: str
    entry: CacheEntry | None
    age_seconds: float = 0.0

    @property
    def hit(self) -> bool:
        return self.entry is not None


def cache_key(query: str) -> str:
    """Order- and punctuation-insensitive key for a query."""
    normalized = _PUNCTUATION_RE.sub("", query.lower().strip())
    return "_".join(sorted(normalized.split(" ")))[:MAX_KEY_LENGTH]


class SemanticCache:
    """Query/response cache keyed by normalized query text."""
    def __init__(
        self,
        ttl_seconds: float = 3600.0,
        max_entries: int = 1024,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_entries <= 0:
            raise CacheError("max_entries must be positive")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, query: str) -> CacheLookup:
        """Return a live entry for the query, counting the hit."""
        key = self._require_key(query)
        entry = self._entries.get(key)
        if entry is None:
            return CacheLookup(key=key, entry=None)
        age = self._clock() - entry.timestamp
        if age >= self.ttl_seconds:
            del self._entries[key]
            return CacheLookup(key=key, entry=None)
        entry.hits += 1
        self._entries.move_to_end(key)
        return CacheLookup(key=key, entry=entry, age_seconds=age)

    def set(self, query: str, response: str | None) -> str:
        """Store a response and return its cache key."""
        key = self._require_key(query)
        if not response:
            raise CacheError("No response provided for caching.")
        self._entries[key] = CacheEntry(response=response, timestamp=self._clock())
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
        return key

    def clear(self) -> None:
        self._entries.clear()

    def _require_key(self, query: str) -> str:
        key = cache_key(query)
        if not key:
            raise CacheError("No query provided for caching.")
        return key
