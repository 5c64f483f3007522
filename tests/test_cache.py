import time
from datetime import datetime, timezone

from nsdigup.models.report import Report
from nsdigup.utils.cache import MemoryCache, NoopCache, build_cache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _report(target="example.com"):
    return Report(target=target, timestamp=datetime(2025, 1, 1, tzinfo=timezone.utc))


def test_memory_cache_round_trip_and_expiry():
    clock = FakeClock()
    cache = MemoryCache(10, clock=clock, start_sweeper=False)
    cache.set("example.com", _report())
    clock.now += 5
    assert cache.get("example.com").target == "example.com"
    clock.now += 6
    assert cache.get("example.com") is None
    assert cache.size() == 0


def test_zero_ttl_never_expires():
    clock = FakeClock()
    cache = MemoryCache(0, clock=clock, start_sweeper=False)
    cache.set("example.com", _report())
    clock.now += 10_000_000
    assert cache.get("example.com") is not None
    assert cache.sweep() == 0


def test_sweep_evicts_only_expired_entries():
    clock = FakeClock()
    cache = MemoryCache(10, clock=clock, start_sweeper=False)
    for i in range(600):
        cache.set(f"old{i}.example.com", _report())
    clock.now += 8
    cache.set("fresh.example.com", _report())
    clock.now += 5
    assert cache.sweep() == 600
    assert cache.size() == 1
    assert cache.get("fresh.example.com") is not None


def test_delete_and_clear():
    cache = MemoryCache(60, start_sweeper=False)
    cache.set("a.example.com", _report())
    cache.set("b.example.com", _report())
    cache.delete("a.example.com")
    assert cache.get("a.example.com") is None
    cache.clear()
    assert cache.size() == 0


def test_sweeper_thread_runs_and_stops():
    cache = MemoryCache(0.05)
    cache.set("example.com", _report())
    deadline = time.monotonic() + 2
    while cache.size() and time.monotonic() < deadline:
        time.sleep(0.01)
    assert cache.size() == 0
    cache.close()
    assert not cache._sweeper.is_alive()


def test_noop_cache_stores_nothing():
    cache = NoopCache()
    cache.set("example.com", _report())
    assert cache.get("example.com") is None
    assert cache.size() == 0


def test_build_cache_by_mode():
    memory = build_cache("memory", 60)
    assert isinstance(memory, MemoryCache)
    memory.close()
    assert isinstance(build_cache("none", 60), NoopCache)
