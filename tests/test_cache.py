import asyncio
from datetime import timedelta

from core.cache import CacheManager

class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache = CacheManager("test", ttl=timedelta(seconds=30), clock=clock)

    cache.set("a", 1)
    clock.now += 29
    assert cache.get("a") == 1
    assert "a" in cache

    clock.now += 1
    assert "a" not in cache
    assert cache.get("a") is None
    assert cache.get_stats()['hits'] == 1
    assert cache.get_stats()['misses'] == 1

def test_ttl_callable_is_read_on_every_write():
    clock = FakeClock()
    ttl = {'value': timedelta(seconds=10)}
    cache = CacheManager("adaptive", ttl=lambda: ttl['value'], clock=clock)

    cache.set("short", "x")
    ttl['value'] = timedelta(minutes=5)
    cache.set("long", "y")
    clock.now += 60

    assert cache.get("short") is None
    assert cache.get("long") == "y"
    assert cache.get_stats()['ttl_seconds'] == 300

def test_clear_and_remove():
    cache = CacheManager("test")
    cache.set("a", 1)
    cache.set("b", 2)

    cache.remove("a")
    assert len(cache) == 1
    assert cache.values() == [2]
    assert cache.clear() == 1
    assert len(cache) == 0

async def test_concurrent_fetches_share_one_request():
    cache = CacheManager("test")
    calls = []

    async def fetcher():
        calls.append(1)
        await asyncio.sleep(0.01)
        return "value"

    results = await asyncio.gather(*(cache.get_or_fetch("key", fetcher) for _ in range(5)))

    assert results == ["value"] * 5
    assert calls == [1]
    assert await cache.get_or_fetch("key", fetcher) == "value"
    assert calls == [1]

async def test_fetch_error_returns_none_and_is_not_cached():
    cache = CacheManager("test")

    async def failing():
        raise ConnectionError("offline")

    async def working():
        return 7

    assert await cache.get_or_fetch("key", failing) is None
    assert "key" not in cache
    assert await cache.get_or_fetch("key", working) == 7
