"""Unit tests for the bounded TTL response cache."""

import asyncio

import pytest

from codescope.cache import CacheSweeper, ResponseCache, mark_cached
from codescope.core.types import CompositeResult, UsageReport

pytestmark = pytest.mark.unit


def result(cost: float = 0.0) -> CompositeResult:
    usage = UsageReport.for_provider("p", 1, cost) if cost else UsageReport()
    return CompositeResult(usage=usage, diagram=f"graph {cost}")


class TestResponseCache:
    def test_put_then_get_returns_same_result(self, clock):
        cache = ResponseCache(clock=clock)
        stored = result(0.1)
        cache.put("fp", stored)
        assert cache.get("fp") == (stored, True)

    def test_miss(self, clock):
        cache = ResponseCache(clock=clock)
        assert cache.get("missing") == (None, False)

    def test_entry_served_until_ttl_then_expires(self, clock):
        cache = ResponseCache(ttl_seconds=60, clock=clock)
        cache.put("fp", result())
        clock.advance(60)
        assert cache.get("fp")[1]

        clock.advance(0.001)
        assert cache.get("fp") == (None, False)
        assert "fp" not in cache

    def test_evicts_oldest_inserted_not_least_recently_read(self, clock):
        cache = ResponseCache(max_size=2, clock=clock)
        cache.put("a", result())
        cache.put("b", result())
        cache.get("a")  # reading does not refresh insertion order
        cache.put("c", result())
        assert "a" not in cache
        assert "b" in cache
        assert "c" in cache

    def test_size_never_exceeds_max(self, clock):
        cache = ResponseCache(max_size=3, clock=clock)
        for i in range(10):
            cache.put(f"k{i}", result())
            assert len(cache) <= 3
        assert len(cache) == 3

    def test_reput_moves_key_to_newest(self, clock):
        cache = ResponseCache(max_size=2, clock=clock)
        cache.put("a", result())
        cache.put("b", result())
        cache.put("a", result(0.5))
        cache.put("c", result())
        assert "b" not in cache
        assert cache.get("a")[0] == result(0.5)

    def test_reput_refreshes_insertion_time(self, clock):
        cache = ResponseCache(ttl_seconds=10, clock=clock)
        cache.put("a", result())
        clock.advance(8)
        cache.put("a", result())
        clock.advance(8)
        assert cache.get("a")[1]

    def test_eviction_emits_event(self, clock, telemetry, reporter):
        cache = ResponseCache(max_size=1, clock=clock, telemetry=telemetry)
        cache.put("a", result())
        cache.put("b", result())
        events = reporter.events_named("cache_evicted")
        assert len(events) == 1
        assert events[0]["fingerprint"] == "a"
        assert events[0]["reason"] == "capacity"

    def test_sweep_removes_only_expired(self, clock):
        cache = ResponseCache(ttl_seconds=10, clock=clock)
        cache.put("old", result())
        clock.advance(6)
        cache.put("new", result())
        clock.advance(5)
        assert cache.sweep() == 1
        assert "old" not in cache
        assert "new" in cache

    def test_clear(self, clock):
        cache = ResponseCache(clock=clock)
        cache.put("a", result())
        cache.clear()
        assert len(cache) == 0

    @pytest.mark.parametrize(
        ("max_size", "ttl"),
        [(0, 60), (1, 0)],
    )
    def test_rejects_invalid_bounds(self, max_size, ttl):
        with pytest.raises(ValueError):
            ResponseCache(max_size=max_size, ttl_seconds=ttl)


def test_mark_cached_copies_usage():
    original = result(0.2)
    cached = mark_cached(original)
    assert cached.from_cache
    assert not original.from_cache
    assert cached.usage == original.usage
    assert cached.usage is not original.usage


class TestCacheSweeper:
    @pytest.mark.asyncio
    async def test_start_and_stop(self, clock):
        cache = ResponseCache(ttl_seconds=1, clock=clock)
        sweeper = CacheSweeper(cache, interval_seconds=0.01)
        cache.put("a", result())
        clock.advance(2)

        sweeper.start()
        assert sweeper.running
        for _ in range(100):
            if "a" not in cache:
                break
            await asyncio.sleep(0.01)
        await sweeper.stop()

        assert not sweeper.running
        assert "a" not in cache

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self):
        sweeper = CacheSweeper(ResponseCache(), interval_seconds=60)
        sweeper.start()
        first = sweeper._task
        sweeper.start()
        assert sweeper._task is first
        await sweeper.stop()

    def test_rejects_non_positive_interval(self):
        with pytest.raises(ValueError):
            CacheSweeper(ResponseCache(), interval_seconds=0)
