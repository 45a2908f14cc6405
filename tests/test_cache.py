# tests/test_cache.py
from __future__ import annotations

import threading

import pytest

from rewardlens.cache import TTLCache, make_cache_key
from rewardlens.classifier import Classification
from rewardlens.taxonomy import Taxonomy as T

DAY = 24 * 60 * 60


def _c(taxonomy=T.DINING) -> Classification:
    return Classification(taxonomy, (5812,), 0.9, None, "ai")


def test_cache_key_is_order_and_case_insensitive():
    a = make_cache_key("Joe's Café", ["food", "Cafe"])
    b = make_cache_key("joes cafe", ["cafe", "food", "food"])
    assert a == b
    assert make_cache_key("X", None) == ("x", ())


def test_ttl_expiry(clock):
    cache = TTLCache(max_entries=10, ttl_seconds=DAY, clock=clock)
    key = make_cache_key("Joe's Café")
    cache.put(key, _c())

    clock.advance(23 * 3600 + 59 * 60)
    assert cache.get(key) == _c()

    clock.advance(2 * 60)  # 24h01m after insert
    assert cache.get(key) is None
    assert key not in cache


def test_eviction_removes_globally_oldest(clock):
    cache = TTLCache(max_entries=3, ttl_seconds=DAY, clock=clock)
    keys = [make_cache_key(n) for n in ("a", "b", "c", "d")]
    for k in keys[:3]:
        cache.put(k, _c())
        clock.advance(1)

    cache.put(keys[3], _c())
    assert len(cache) == 3
    assert keys[0] not in cache
    assert all(k in cache for k in keys[1:])


def test_overwrite_does_not_evict(clock):
    cache = TTLCache(max_entries=2, ttl_seconds=DAY, clock=clock)
    k1, k2 = make_cache_key("a"), make_cache_key("b")
    cache.put(k1, _c())
    cache.put(k2, _c())
    cache.put(k1, _c(T.COFFEE))
    assert len(cache) == 2
    assert cache.get(k1).taxonomy == T.COFFEE


def test_capacity_holds_under_concurrent_writers():
    cache = TTLCache(max_entries=50, ttl_seconds=DAY)

    def writer(offset: int):
        for i in range(200):
            cache.put(make_cache_key(f"merchant {offset} {i}"), _c())

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(cache) == 50


def test_invalid_bounds():
    with pytest.raises(ValueError):
        TTLCache(max_entries=0)
    with pytest.raises(ValueError):
        TTLCache(ttl_seconds=0)
