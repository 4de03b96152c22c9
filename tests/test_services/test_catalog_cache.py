"""Tests for the TTL cache: expiry, invalidation and single-flight loads."""
import asyncio

import pytest

from catalog_proxy.services.catalog_cache import CatalogCache


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_get_returns_value_before_expiry():
    clock = FakeClock()
    cache = CatalogCache(clock=clock)
    cache.put("all_props", ["a"], ttl_seconds=90)

    clock.now += 89
    assert cache.get("all_props") == ["a"]


def test_get_after_expiry_is_a_miss():
    clock = FakeClock()
    cache = CatalogCache(clock=clock)
    cache.put("all_props", ["a"], ttl_seconds=90)

    clock.now += 90
    assert cache.get("all_props") is None
    assert len(cache) == 0


def test_entries_expire_independently():
    clock = FakeClock()
    cache = CatalogCache(clock=clock)
    cache.put("short", 1, ttl_seconds=10)
    cache.put("long", 2, ttl_seconds=100)

    clock.now += 50
    assert cache.get("short") is None
    assert cache.get("long") == 2
    assert len(cache) == 1


def test_invalidate_single_key():
    cache = CatalogCache()
    cache.put("a", 1, ttl_seconds=60)
    cache.put("b", 2, ttl_seconds=60)

    cache.invalidate("a")
    assert cache.get("a") is None
    assert cache.get("b") == 2


def test_invalidate_everything():
    cache = CatalogCache()
    cache.put("a", 1, ttl_seconds=60)
    cache.put("b", 2, ttl_seconds=60)

    cache.invalidate()
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_get_or_load_reports_hit_and_miss():
    cache = CatalogCache()

    async def loader():
        return "value"

    assert await cache.get_or_load("k", loader, 60) == ("value", False)
    assert await cache.get_or_load("k", loader, 60) == ("value", True)


@pytest.mark.asyncio
async def test_concurrent_misses_share_one_load():
    cache = CatalogCache()
    calls = 0

    async def loader():
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.01)
        return "value"

    results = await asyncio.gather(*(cache.get_or_load("k", loader, 60) for _ in range(5)))

    assert calls == 1
    assert [value for value, _ in results] == ["value"] * 5


@pytest.mark.asyncio
async def test_load_started_before_invalidation_is_not_cached():
    cache = CatalogCache()
    gate = asyncio.Event()

    async def loader():
        await gate.wait()
        return "stale"

    waiter = asyncio.create_task(cache.get_or_load("k", loader, 60))
    await asyncio.sleep(0)
    cache.invalidate()
    gate.set()

    value, hit = await waiter
    assert value == "stale"
    assert hit is False
    assert cache.get("k") is None


@pytest.mark.asyncio
async def test_failed_load_propagates_and_is_retried():
    cache = CatalogCache()
    attempts = 0

    async def loader():
        nonlocal attempts
        attempts += 1
        if attempts == 1:
            raise RuntimeError("boom")
        return "ok"

    with pytest.raises(RuntimeError):
        await cache.get_or_load("k", loader, 60)

    await asyncio.sleep(0)
    assert await cache.get_or_load("k", loader, 60) == ("ok", False)
    assert attempts == 2


@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_abort_shared_load():
    cache = CatalogCache()
    gate = asyncio.Event()

    async def loader():
        await gate.wait()
        return "value"

    first = asyncio.create_task(cache.get_or_load("k", loader, 60))
    second = asyncio.create_task(cache.get_or_load("k", loader, 60))
    await asyncio.sleep(0)

    first.cancel()
    gate.set()

    assert await second == ("value", False)
    with pytest.raises(asyncio.CancelledError):
        await first
    assert cache.get("k") == "value"


def test_put_sweeps_expired_entries():
    clock = FakeClock()
    cache = CatalogCache(clock=clock)
    for i in range(500):
        cache.put(f"lite:{i}", i, ttl_seconds=10)
    assert len(cache._entries) == 500

    clock.now += 11
    cache.put("all_props", "fresh", ttl_seconds=90)

    assert len(cache._entries) == 1
    assert cache.get("all_props") == "fresh"


def test_ttl_remaining():
    clock = FakeClock()
    cache = CatalogCache(clock=clock)
    cache.put("all_props", [], ttl_seconds=90)

    clock.now += 30
    assert cache.ttl_remaining("all_props") == 60
    clock.now += 60
    assert cache.ttl_remaining("all_props") is None
    assert cache.ttl_remaining("missing") is None


@pytest.mark.asyncio
async def test_callable_ttl_is_evaluated_after_load():
    clock = FakeClock()
    cache = CatalogCache(clock=clock)

    async def loader():
        return "value"

    await cache.get_or_load("k", loader, lambda: 5)
    clock.now += 6
    assert cache.get("k") is None
