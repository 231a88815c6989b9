"""Tests for the simulation result cache."""

import threading
from datetime import datetime, timedelta, timezone

from retirement_projector.calculators.cache import InMemorySimulationCache, fingerprint


class _Clock:
    def __init__(self):
        self.now = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.now


def test_fingerprint_ignores_key_order():
    assert fingerprint({"a": 1, "b": [1, 2]}) == fingerprint({"b": [1, 2], "a": 1})
    assert fingerprint({"a": 1}, 5) != fingerprint({"a": 1}, 6)
    assert len(fingerprint("x")) == 64


def test_get_set_invalidate_clear():
    cache = InMemorySimulationCache()
    assert cache.get("k") is None
    cache.set("k", "result")
    entry = cache.get("k")
    assert entry.result == "result"
    assert entry.computed_at is not None
    cache.invalidate("k")
    assert cache.get("k") is None
    cache.invalidate("missing")
    cache.set("a", 1)
    cache.set("b", 2)
    assert cache.clear() == 2
    assert len(cache) == 0


def test_entries_expire_after_ttl():
    clock = _Clock()
    cache = InMemorySimulationCache(ttl=timedelta(hours=24), clock=clock)
    cache.set("k", "result")
    clock.now += timedelta(hours=23)
    assert cache.get("k") is not None
    clock.now += timedelta(hours=2)
    assert cache.get("k") is None
    assert len(cache) == 0


def test_expired_entries_swept_on_write():
    clock = _Clock()
    cache = InMemorySimulationCache(ttl=timedelta(hours=24), clock=clock)
    cache.set("old-a", 1)
    cache.set("old-b", 2)
    clock.now += timedelta(hours=12)
    cache.set("mid", 3)
    clock.now += timedelta(hours=13)
    cache.set("new", 4)
    assert len(cache) == 2
    assert cache.get("mid").result == 3
    assert cache.get("new").result == 4


def test_explicit_computed_at_is_kept():
    clock = _Clock()
    cache = InMemorySimulationCache(clock=clock)
    stamp = clock.now - timedelta(hours=1)
    cache.set("k", "result", computed_at=stamp)
    assert cache.get("k").computed_at == stamp


def test_last_write_wins():
    cache = InMemorySimulationCache()
    cache.set("k", "first")
    cache.set("k", "second")
    assert cache.get("k").result == "second"


def test_concurrent_writers():
    cache = InMemorySimulationCache()

    def writer(n):
        for i in range(200):
            cache.set(f"k{i % 10}", n)

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(cache) == 10
    assert all(cache.get(f"k{i}").result in range(4) for i in range(10))
