from __future__ import annotations

import asyncio

import pytest

from siyaq.utils.cache import TTLCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.mark.asyncio
async def test_get_set(clock: FakeClock) -> None:
    cache = TTLCache(default_ttl=10, clock=clock)

    await cache.set("a", "value")

    assert await cache.get("a") == "value"
    assert await cache.get("missing") is None
    stats = cache.stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["hit_rate"] == "50.0%"


@pytest.mark.asyncio
async def test_entries_expire(clock: FakeClock) -> None:
    cache = TTLCache(default_ttl=10, clock=clock)
    await cache.set("a", 1)
    await cache.set("b", 2, ttl=100)

    clock.now += 11

    assert await cache.get("a") is None
    assert await cache.get("b") == 2
    assert len(cache) == 1


@pytest.mark.asyncio
async def test_lru_eviction(clock: FakeClock) -> None:
    cache = TTLCache(max_size=2, clock=clock)
    await cache.set("a", 1)
    await cache.set("b", 2)
    await cache.get("a")  # "b" is now least recently used

    await cache.set("c", 3)

    assert await cache.get("b") is None
    assert await cache.get("a") == 1
    assert await cache.get("c") == 3


@pytest.mark.asyncio
async def test_delete_and_clear(clock: FakeClock) -> None:
    cache = TTLCache(clock=clock)
    await cache.set("a", 1)
    await cache.set("b", 2)

    assert await cache.delete("a") is True
    assert await cache.delete("a") is False

    await cache.clear()
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_sweep_removes_only_expired(clock: FakeClock) -> None:
    cache = TTLCache(default_ttl=10, clock=clock)
    await cache.set("old", 1)
    clock.now += 5
    await cache.set("new", 2)
    clock.now += 6

    removed = await cache.sweep()

    assert removed == 1
    assert len(cache) == 1
    assert await cache.get("new") == 2


@pytest.mark.asyncio
async def test_background_sweep(clock: FakeClock) -> None:
    cache = TTLCache(default_ttl=1, sweep_interval=0.01, clock=clock)
    await cache.set("a", 1)
    clock.now += 2

    await cache.start()
    assert cache.running
    try:
        for _ in range(100):
            if len(cache) == 0:
                break
            await asyncio.sleep(0.01)
        assert len(cache) == 0
    finally:
        await cache.stop()

    assert not cache.running
    assert cache.stats()["sweeping"] is False


@pytest.mark.asyncio
async def test_start_and_stop_are_idempotent() -> None:
    cache = TTLCache(sweep_interval=60)

    await cache.stop()
    await cache.start()
    task = cache._sweep_task
    await cache.start()
    assert cache._sweep_task is task

    await cache.stop()
    await cache.stop()
    assert cache._sweep_task is None
