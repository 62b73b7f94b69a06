import asyncio
import logging
import time
import httpx
from app.core.config import Settings
from app.core.db import Database
from app.core.redis import RedisManager
from app.modules.catalog.cache import CatalogCacheStore
from app.modules.catalog.refresh import CatalogRefresher
from app.modules.catalog.scheduler import RefreshScheduler
from app.modules.catalog.service import CatalogService
from app.modules.health.metrics import RequestMetrics
from app.modules.origin.client import OriginClient, Sleep
from app.modules.realtime.service import RealtimeFetcher
from app.modules.stream.service import StreamRelay
from app.platform.adapters.history_memory import MemoryRefreshHistory
from app.platform.adapters.history_sql import SqlRefreshHistory
from app.platform.adapters.tier_redis import RedisCatalogTier
from app.platform.ports.catalog_tier import SharedCatalogTier
from app.platform.ports.refresh_history import RefreshHistoryPort

log = logging.getLogger("platform.registry")


class ProviderRegistry:
    """Every long-lived collaborator, wired once at startup and torn down on shutdown."""

    def __init__(
        self,
        settings: Settings,
        *,
        origin: OriginClient,
        store: CatalogCacheStore,
        history: RefreshHistoryPort,
        redis: RedisManager | None = None,
        db: Database | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.settings = settings
        self.origin = origin
        self.store = store
        self.history = history
        self.redis = redis
        self.db = db
        self.refresher = CatalogRefresher(
            origin,
            store,
            concurrency=settings.FOLDER_CONCURRENCY,
            stagger=settings.FOLDER_STAGGER_SECONDS,
            page_size=settings.PAGE_SIZE,
            max_pages=settings.MAX_PAGES_PER_FOLDER,
            page_delay=settings.PAGE_DELAY_SECONDS,
            folder_list_timeout=settings.ORIGIN_FOLDER_LIST_TIMEOUT_SECONDS,
            sleep=sleep,
        )
        self.scheduler = RefreshScheduler(
            self.refresher,
            interval=settings.REFRESH_INTERVAL_SECONDS,
            run_on_start=settings.REFRESH_ON_STARTUP,
            history=history,
        )
        self.catalog = CatalogService(store, self.scheduler, origin, cold_wait=settings.COLD_READ_WAIT_SECONDS)
        self.relay = StreamRelay(
            origin,
            self.catalog,
            endpoint_prefix=f"{settings.API_PREFIX}/stream",
            manifest_name=settings.HLS_MANIFEST_NAME,
            mp4_name=settings.MP4_FILE_NAME,
            timeout=settings.STREAM_TIMEOUT_SECONDS,
        )
        self.realtime = RealtimeFetcher(origin, timeout=settings.REALTIME_TIMEOUT_SECONDS)
        self.request_metrics = RequestMetrics()
        self.started_at = time.time()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> "ProviderRegistry":
        origin = OriginClient(
            settings.ORIGIN_API_BASE,
            settings.ORIGIN_API_TOKEN,
            timeout=settings.ORIGIN_TIMEOUT_SECONDS,
            max_attempts=settings.ORIGIN_MAX_ATTEMPTS,
            backoff_base=settings.ORIGIN_BACKOFF_BASE_SECONDS,
            backoff_max=settings.ORIGIN_BACKOFF_MAX_SECONDS,
            transport=transport,
            sleep=sleep,
        )

        redis = None
        tier: SharedCatalogTier | None = None
        if settings.CACHE_PROVIDER == "redis":
            if not settings.REDIS_URL:
                raise RuntimeError("CACHE_PROVIDER=redis but REDIS_URL not configured")
            redis = RedisManager(settings.REDIS_URL)
            tier = RedisCatalogTier(redis, key=settings.REDIS_CACHE_KEY, expiry_seconds=settings.REDIS_CACHE_EXPIRY_SECONDS)
        store = CatalogCacheStore(tier, ttl=settings.CACHE_TTL_SECONDS, tier_timeout=settings.CACHE_TIER_TIMEOUT_SECONDS)

        db = Database(settings.DATABASE_DSN, manage=settings.DB_MANAGE) if settings.DATABASE_DSN else None
        if settings.REFRESH_HISTORY_PROVIDER == "sql":
            if db is None:
                raise RuntimeError("REFRESH_HISTORY_PROVIDER=sql but DATABASE_DSN not configured")
            history: RefreshHistoryPort = SqlRefreshHistory(db)
        else:
            history = MemoryRefreshHistory(settings.HISTORY_MAX_ENTRIES)

        return cls(settings, origin=origin, store=store, history=history, redis=redis, db=db, sleep=sleep)

    async def start(self):
        if self.redis:
            await self.redis.connect()
        if self.db:
            await self.db.init_models()
        await self.store.rehydrate()
        if self.settings.SCHEDULER_ENABLED:
            self.scheduler.start()
        log.info(
            f"Providers ready: cache={self.store.cache_type} history={self.history.__class__.__name__} "
            f"scheduler={'on' if self.settings.SCHEDULER_ENABLED else 'off'}"
        )

    async def close(self):
        await self.scheduler.stop()
        await self.origin.aclose()
        if self.redis:
            await self.redis.close()
        if self.db:
            await self.db.dispose()
