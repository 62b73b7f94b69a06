import logging
from app.core.redis import RedisManager
from app.modules.catalog.models import CatalogSnapshot
from app.platform.ports.catalog_tier import SharedCatalogTier

log = logging.getLogger("tier.redis")

class RedisCatalogTier(SharedCatalogTier):
    name = "redis"

    def __init__(self, manager: RedisManager, *, key: str = "vidrelay:catalog", expiry_seconds: int = 86400):
        self.manager = manager
        self.key = key
        self.expiry_seconds = expiry_seconds

    async def load(self) -> CatalogSnapshot | None:
        raw = await self.manager.redis.get(self.key)
        if not raw:
            return None
        return CatalogSnapshot.model_validate_json(raw)

    async def store(self, snapshot: CatalogSnapshot) -> None:
        # freshness is judged from snapshot.timestamp; the key expiry only bounds how long a dead deployment lingers
        await self.manager.redis.setex(self.key, self.expiry_seconds, snapshot.model_dump_json())
        log.debug(f"[REDIS TIER] SETEX key={self.key} videos={snapshot.total}")
