import asyncio
import logging
from dataclasses import dataclass
from typing import Literal
from app.modules.catalog.models import CacheMetrics, CatalogSnapshot
from app.platform.ports.catalog_tier import SharedCatalogTier

log = logging.getLogger("catalog.cache")

CacheState = Literal["hit", "stale", "miss"]


@dataclass(frozen=True)
class CacheRead:
    snapshot: CatalogSnapshot | None
    state: CacheState


class CatalogCacheStore:
    """In-process snapshot pointer with an optional shared tier written through on every set.

    The pointer is replaced in one assignment, so readers see either the old or the
    new snapshot, never a mix.
    """

    def __init__(self, tier: SharedCatalogTier | None = None, *, ttl: float = 300.0, tier_timeout: float = 2.0):
        self.tier = tier
        self.ttl = ttl
        self.tier_timeout = tier_timeout
        self.metrics = CacheMetrics()
        self._snapshot: CatalogSnapshot | None = None

    @property
    def cache_type(self) -> str:
        return f"memory+{self.tier.name}" if self.tier else "memory"

    def get(self) -> CatalogSnapshot | None:
        return self._snapshot

    def is_fresh(self, ttl: float | None = None, now: float | None = None) -> bool:
        snap = self._snapshot
        if snap is None:
            return False
        return snap.age(now) < (self.ttl if ttl is None else ttl)

    def lookup(self, now: float | None = None) -> CacheRead:
        snap = self._snapshot
        if snap is None:
            self.metrics.misses += 1
            return CacheRead(None, "miss")
        if snap.age(now) < self.ttl:
            self.metrics.hits += 1
            return CacheRead(snap, "hit")
        self.metrics.stale_hits += 1
        return CacheRead(snap, "stale")

    async def set(self, snapshot: CatalogSnapshot) -> None:
        self._snapshot = snapshot
        if self.tier is None:
            return
        try:
            await asyncio.wait_for(self.tier.store(snapshot), timeout=self.tier_timeout)
        except asyncio.TimeoutError:
            self.metrics.timeouts += 1
            log.warning(f"Write-through to {self.tier.name} timed out after {self.tier_timeout}s")
        except Exception:
            self.metrics.tier_errors += 1
            log.exception(f"Write-through to {self.tier.name} failed")

    async def rehydrate(self) -> CatalogSnapshot | None:
        """Fill the in-process tier from the shared tier if it is empty."""
        if self._snapshot is not None or self.tier is None:
            return self._snapshot
        try:
            snap = await asyncio.wait_for(self.tier.load(), timeout=self.tier_timeout)
        except asyncio.TimeoutError:
            self.metrics.timeouts += 1
            log.warning(f"Reading {self.tier.name} timed out after {self.tier_timeout}s")
            return None
        except Exception:
            self.metrics.tier_errors += 1
            log.exception(f"Reading {self.tier.name} failed")
            return None
        # a refresh may have landed while we were waiting on the tier
        if snap is not None and self._snapshot is None:
            self._snapshot = snap
            log.info(f"Rehydrated catalog from {self.tier.name}: {snap.total} videos, age {snap.age():.0f}s")
        return self._snapshot

    def stats(self) -> dict:
        snap = self._snapshot
        m = self.metrics
        return {
            "cache_type": self.cache_type,
            "hits": m.hits,
            "stale_hits": m.stale_hits,
            "misses": m.misses,
            "hit_rate": m.hit_rate,
            "timeouts": m.timeouts,
            "timeout_rate": m.timeout_rate,
            "tier_errors": m.tier_errors,
            "videos_count": snap.total if snap else 0,
            "last_refresh": snap.timestamp if snap else None,
            "age_seconds": round(snap.age(), 1) if snap else None,
            "fresh": self.is_fresh(),
            "metrics_since": m.since,
        }
