import asyncio

from inventory_api.lib.cache import QueryCache


async def test_loads_once_then_serves_from_cache():
    cache = QueryCache(default_ttl=60)
    calls = []

    async def loader():
        calls.append(1)
        return ["a"]

    assert await cache.get_or_load("units", "k", loader) == ["a"]
    assert await cache.get_or_load("units", "k", loader) == ["a"]
    assert len(calls) == 1


async def test_expired_entries_reload():
    cache = QueryCache(default_ttl=0)
    calls = []

    async def loader():
        calls.append(1)
        return len(calls)

    await cache.get_or_load("units", "k", loader)
    await asyncio.sleep(0.01)
    assert await cache.get_or_load("units", "k", loader) == 2


async def test_concurrent_misses_share_one_load():
    cache = QueryCache(default_ttl=60)
    calls = []
    gate = asyncio.Event()

    async def loader():
        calls.append(1)
        await gate.wait()
        return "rows"

    tasks = [asyncio.create_task(cache.get_or_load("units", "k", loader)) for _ in range(5)]
    await asyncio.sleep(0)
    gate.set()

    assert await asyncio.gather(*tasks) == ["rows"] * 5
    assert len(calls) == 1


async def test_invalidate_drops_every_query_for_entity():
    cache = QueryCache(default_ttl=60)
    cache.set("units", "a", 1)
    cache.set("units", "b", 2)
    cache.set("users", "a", 3)

    assert cache.invalidate("units") == 2
    assert cache.get("units", "a") is None
    assert cache.get("users", "a") == 3


async def test_load_started_before_invalidate_is_not_stored():
    cache = QueryCache(default_ttl=60)
    gate = asyncio.Event()

    async def slow_loader():
        await gate.wait()
        return "old"

    task = asyncio.create_task(cache.get_or_load("units", "k", slow_loader))
    await asyncio.sleep(0)
    cache.invalidate("units")
    gate.set()

    assert await task == "old"
    assert cache.get("units", "k") is None


async def test_distinct_keys_do_not_accumulate():
    cache = QueryCache(default_ttl=0.01, max_entries=100)

    async def loader():
        return ["row"]

    for i in range(500):
        await cache.get_or_load("units", f"search-{i}", loader)

    assert len(cache) <= 100
    assert cache._locks == {}

    await asyncio.sleep(0.05)
    await cache.get_or_load("units", "last", loader)
    assert len(cache) == 1


async def test_oldest_entry_is_evicted_at_capacity():
    cache = QueryCache(default_ttl=60, max_entries=2)
    cache.set("units", "a", 1)
    cache.set("units", "b", 2)
    cache.set("units", "c", 3)

    assert cache.get("units", "a") is None
    assert cache.get("units", "b") == 2
    assert cache.get("units", "c") == 3
