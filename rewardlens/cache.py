# rewardlens/cache.py
"""
Bounded TTL cache for AI-backed classifications.

- Keys: ``(normalized_name, sorted_unique_provider_tags)`` via `make_cache_key`.
- Reads: an entry older than the TTL is a miss and is removed.
- Writes: at capacity, the single oldest entry (by creation time) is evicted
  before inserting; overwriting an existing key never evicts.
- All operations hold one lock, so the capacity bound survives concurrent
  writers. Duplicate concurrent writes for a key simply overwrite.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Iterable, NamedTuple, Optional, Tuple

from prometheus_client import Counter

from .classifier import Classification
from .preproc import normalize_name

CacheKey = Tuple[str, Tuple[str, ...]]

CACHE_HITS = Counter("rewardlens_cache_hits_total", "AI classification cache hits")
CACHE_MISSES = Counter("rewardlens_cache_misses_total", "AI classification cache misses")


class CacheEntry(NamedTuple):
    classification: Classification
    created_at: float


def make_cache_key(name: str, provider_tags: Optional[Iterable[str]] = None) -> CacheKey:
    """
    Deterministic key from the effective signals of a request.

    >>> make_cache_key("Joe's Café", ["cafe", " Food", "cafe"])
    ('joes cafe', ('cafe', 'food'))
    """
    tags = sorted({t.strip().lower() for t in (provider_tags or ()) if t and t.strip()})
    return normalize_name(name), tuple(tags)


class TTLCache:
    """
    Thread-safe, size-bounded, time-expiring map of cache keys to classifications.

    Parameters
    ----------
    max_entries : int
        Capacity (> 0).
    ttl_seconds : float
        Age after which an entry reads as absent.
    clock : callable
        Returns the current time in seconds (injectable for tests).
    """

    def __init__(
        self,
        max_entries: int = 500,
        ttl_seconds: float = 24 * 60 * 60,
        clock: Callable[[], float] = time.time,
    ):
        if max_entries <= 0:
            raise ValueError("max_entries must be > 0")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        self.max_entries = int(max_entries)
        self.ttl_seconds = float(ttl_seconds)
        self._clock = clock
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        with self._lock:
            return key in self._entries

    def get(self, key: CacheKey) -> Optional[Classification]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._clock() - entry.created_at > self.ttl_seconds:
                del self._entries[key]
                entry = None
        if entry is None:
            CACHE_MISSES.inc()
            return None
        CACHE_HITS.inc()
        return entry.classification

    def put(self, key: CacheKey, classification: Classification) -> None:
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_entries:
                oldest = min(self._entries, key=lambda k: self._entries[k].created_at)
                del self._entries[oldest]
            self._entries[key] = CacheEntry(classification, self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
