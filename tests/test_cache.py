import asyncio

import pytest

from app.modules.catalog.cache import CatalogCacheStore
from app.modules.catalog.models import CatalogSnapshot, Video


class DictTier:
    name = "dict"

    def __init__(self, snapshot=None, delay=0.0, fail=False):
        self.snapshot = snapshot
        self.delay = delay
        self.fail = fail
        self.stored = []

    async def load(self):
        await asyncio.sleep(self.delay)
        if self.fail:
            raise ConnectionError("tier down")
        return self.snapshot

    async def store(self, snapshot):
        await asyncio.sleep(self.delay)
        if self.fail:
            raise ConnectionError("tier down")
        self.stored.append(snapshot)


def snapshot(ts=1000.0, *ids):
    videos = tuple(Video(id=i, title=i, folder_id="f1") for i in ids)
    return CatalogSnapshot(videos=videos, total=len(videos), timestamp=ts)


def test_lookup_classifies_hit_stale_and_miss():
    store = CatalogCacheStore(ttl=300)
    assert store.lookup(now=1000).state == "miss"

    store._snapshot = snapshot(1000.0, "a")
    assert store.lookup(now=1299).state == "hit"
    stale = store.lookup(now=1300)
    assert stale.state == "stale"
    assert stale.snapshot.total == 1

    m = store.metrics
    assert (m.hits, m.stale_hits, m.misses) == (1, 1, 1)
    assert m.hit_rate == pytest.approx(66.67)


def test_is_fresh_respects_ttl_argument():
    store = CatalogCacheStore(ttl=300)
    assert not store.is_fresh()
    store._snapshot = snapshot(1000.0)
    assert store.is_fresh(now=1100)
    assert not store.is_fresh(ttl=50, now=1100)


async def test_set_writes_through_to_tier():
    tier = DictTier()
    store = CatalogCacheStore(tier)
    snap = snapshot(1000.0, "a")
    await store.set(snap)

    assert store.get() is snap
    assert tier.stored == [snap]
    assert store.cache_type == "memory+dict"


async def test_slow_tier_write_is_counted_and_local_copy_kept():
    store = CatalogCacheStore(DictTier(delay=1.0), tier_timeout=0.01)
    snap = snapshot(1000.0, "a")
    await store.set(snap)

    assert store.get() is snap
    assert store.metrics.timeouts == 1


async def test_failing_tier_write_is_counted():
    store = CatalogCacheStore(DictTier(fail=True))
    await store.set(snapshot(1000.0, "a"))

    assert store.get() is not None
    assert store.metrics.tier_errors == 1


async def test_rehydrate_fills_empty_store_from_tier():
    snap = snapshot(1000.0, "a", "b")
    store = CatalogCacheStore(DictTier(snapshot=snap))

    assert await store.rehydrate() == snap
    assert store.get() == snap


async def test_rehydrate_does_not_replace_existing_snapshot():
    store = CatalogCacheStore(DictTier(snapshot=snapshot(1.0, "old")))
    local = snapshot(2000.0, "new")
    store._snapshot = local

    assert await store.rehydrate() is local


async def test_rehydrate_survives_tier_failure():
    store = CatalogCacheStore(DictTier(fail=True))
    assert await store.rehydrate() is None
    assert store.metrics.tier_errors == 1


def test_stats_and_reset():
    store = CatalogCacheStore()
    store.lookup()
    stats = store.stats()
    assert stats["cache_type"] == "memory"
    assert stats["misses"] == 1
    assert stats["videos_count"] == 0
    assert stats["fresh"] is False

    store.metrics.reset()
    assert store.metrics.reads == 0
