"""Time-to-live cache for comparable search results."""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from bdscore.models.comparables import ComparableSearchResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    value: ComparableSearchResult
    expires_at: float


class SearchCache:
    """Key -> search result store. Entries are replaced on refresh, never mutated."""

    def __init__(self, ttl_seconds: float = 3600, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[ComparableSearchResult]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                self.misses += 1
                logger.debug(f"Cache entry expired: {key[:12]}")
                return None
            self.hits += 1
            return entry.value

    def put(self, key: str, value: ComparableSearchResult):
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + self.ttl_seconds)

    def invalidate(self, key: Optional[str] = None):
        """Drop one entry, or everything when no key is given."""
        with self._lock:
            if key is None:
                count = len(self._entries)
                self._entries.clear()
                logger.debug(f"Invalidated {count} cached search(es)")
            else:
                self._entries.pop(key, None)

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.expires_at <= now]
            for k in expired:
                del self._entries[k]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
