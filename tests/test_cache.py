import pytest

from bridgewatch.cache import TTLCache


@pytest.mark.asyncio
async def test_get_returns_stored_value():
    cache = TTLCache(default_ttl=60)

    await cache.set("1:0xabc:usd", 42)

    assert await cache.get("1:0xabc:usd") == 42
    assert await cache.get("missing") is None


@pytest.mark.asyncio
async def test_expired_entries_are_dropped():
    cache = TTLCache(default_ttl=10)

    await cache.set("key", "value", ttl=-1)

    assert await cache.get("key") is None
    assert cache.size() == 0


@pytest.mark.asyncio
async def test_least_recently_used_entry_is_evicted():
    cache = TTLCache(default_ttl=60, max_size=2)

    await cache.set("a", 1)
    await cache.set("b", 2)
    await cache.get("a")
    await cache.set("c", 3)

    assert await cache.get("a") == 1
    assert await cache.get("b") is None
    assert await cache.get("c") == 3

    await cache.clear()
    assert cache.size() == 0
