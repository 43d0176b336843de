from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from flagship.errors import RecordNotFoundError, RefreshError, StoreError, StoreTimeoutError
from flagship.models.document import StoreDocument
from flagship.services.cache import SnapshotCache
from flagship.stores.memory import InMemoryStore


class SlowStore(InMemoryStore):
    """Store whose loads block until the test releases them."""

    def __init__(self, document: dict) -> None:
        super().__init__(document)
        self.release = asyncio.Event()

    async def load(self) -> StoreDocument:
        await self.release.wait()
        return await super().load()


def make_store() -> InMemoryStore:
    return InMemoryStore(
        {
            "features": {"someflag": False},
            "throttles": {"someFeature": {"probability": 2.555, "whitelist": [10]}},
        }
    )


@pytest.mark.asyncio
async def test_fresh_snapshot_is_served_without_store_call(clock) -> None:
    store = make_store()
    cache = SnapshotCache(store, ttl=timedelta(hours=2), clock=clock)

    first = await cache.fetch()
    await store.set_feature("someflag", True)
    clock.advance(timedelta(hours=1))
    second = await cache.fetch()

    assert store.load_count == 1
    assert second is first
    assert second.features["someflag"] is False


@pytest.mark.asyncio
async def test_expired_snapshot_is_reloaded(clock) -> None:
    store = make_store()
    cache = SnapshotCache(store, ttl=timedelta(hours=2), clock=clock)
    first = await cache.fetch()

    await store.set_feature("someflag", True)
    clock.advance(timedelta(hours=2))
    second = await cache.fetch()

    assert store.load_count == 2
    assert second.features["someflag"] is True
    assert second.expiry == first.expiry + timedelta(hours=2)


@pytest.mark.asyncio
async def test_zero_ttl_reloads_every_call(clock) -> None:
    store = make_store()
    cache = SnapshotCache(store, ttl=timedelta(0), clock=clock)

    await cache.fetch()
    await cache.fetch()
    await cache.fetch()

    assert store.load_count == 3


@pytest.mark.asyncio
async def test_thresholds_recomputed_on_refresh(clock) -> None:
    store = make_store()
    cache = SnapshotCache(store, ttl=timedelta(0), clock=clock)

    rule = (await cache.fetch()).throttles["someFeature"]
    assert rule.threshold == 255
    assert rule.whitelist == frozenset({10})

    store.set_throttle("someFeature", probability=100)
    assert (await cache.fetch()).throttles["someFeature"].threshold == 100_00


@pytest.mark.asyncio
async def test_failed_refresh_raises_and_keeps_snapshot(clock) -> None:
    store = make_store()
    cache = SnapshotCache(store, ttl=timedelta(seconds=30), clock=clock)
    held = await cache.fetch()

    store.fail_with = StoreError("boom")
    clock.advance(timedelta(minutes=1))
    with pytest.raises(RefreshError) as excinfo:
        await cache.fetch()

    assert isinstance(excinfo.value.__cause__, StoreError)
    assert cache.snapshot is held


@pytest.mark.asyncio
async def test_read_falls_back_to_stale_snapshot(clock) -> None:
    store = make_store()
    errors: list[RefreshError] = []
    cache = SnapshotCache(
        store, ttl=timedelta(seconds=30), clock=clock, on_refresh_error=errors.append
    )
    held = await cache.fetch()

    store.fail_with = RecordNotFoundError("memory", "features")
    clock.advance(timedelta(minutes=1))
    read = await cache.read()

    assert read.stale is True
    assert read.snapshot is held
    assert isinstance(read.error, RefreshError)
    assert errors == [read.error]


@pytest.mark.asyncio
async def test_stale_until_store_recovers(clock) -> None:
    store = make_store()
    cache = SnapshotCache(store, ttl=timedelta(seconds=30), clock=clock)
    await cache.fetch()

    store.fail_with = StoreError("down")
    clock.advance(timedelta(minutes=1))
    assert (await cache.read()).stale is True
    assert (await cache.read()).stale is True

    store.fail_with = None
    await store.set_feature("someflag", True)
    read = await cache.read()

    assert read.stale is False
    assert read.error is None
    assert read.snapshot.features["someflag"] is True


@pytest.mark.asyncio
async def test_read_without_any_snapshot_raises(clock) -> None:
    store = InMemoryStore(None)
    cache = SnapshotCache(store, ttl=timedelta(seconds=30), clock=clock)

    with pytest.raises(RefreshError):
        await cache.read()


@pytest.mark.asyncio
async def test_concurrent_misses_share_one_load(clock) -> None:
    store = SlowStore({"features": {"someflag": True}})
    cache = SnapshotCache(store, ttl=timedelta(seconds=30), clock=clock)

    tasks = [asyncio.create_task(cache.fetch()) for _ in range(10)]
    await asyncio.sleep(0)
    store.release.set()
    snapshots = await asyncio.gather(*tasks)

    assert store.load_count == 1
    assert all(snapshot is snapshots[0] for snapshot in snapshots)


@pytest.mark.asyncio
async def test_load_timeout_is_a_refresh_error(clock) -> None:
    store = SlowStore({"features": {}})
    cache = SnapshotCache(
        store, ttl=timedelta(seconds=30), clock=clock, load_timeout=0.01
    )

    with pytest.raises(RefreshError) as excinfo:
        await cache.fetch()

    assert isinstance(excinfo.value.__cause__, StoreTimeoutError)
    assert cache.snapshot is None


@pytest.mark.asyncio
async def test_cancelled_refresh_leaves_cache_untouched(clock) -> None:
    store = make_store()
    cache = SnapshotCache(store, ttl=timedelta(seconds=30), clock=clock)
    held = await cache.fetch()

    slow = SlowStore({"features": {"someflag": True}})
    cache._store = slow
    clock.advance(timedelta(minutes=1))
    task = asyncio.create_task(cache.fetch())
    await asyncio.sleep(0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert cache.snapshot is held
