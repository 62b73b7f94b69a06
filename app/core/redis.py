import time
from redis import asyncio as aioredis


class RedisManager:
    def __init__(self, url: str):
        self.url = url
        self.redis = None

    async def connect(self):
        """Connect to Redis (called on FastAPI startup)."""
        self.redis = aioredis.from_url(
            self.url,
            encoding="utf-8",
            decode_responses=True
        )

    async def close(self):
        """Close Redis connection."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None

    async def ping(self) -> float:
        """Round-trip a PING; returns latency in ms."""
        start = time.perf_counter()
        await self.redis.ping()
        return (time.perf_counter() - start) * 1000
