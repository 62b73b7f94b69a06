import time
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncEngine, AsyncSession
from .base import Base


class Database:
    """Engine + session factory, built once at startup and handed to consumers."""

    def __init__(self, dsn: str, *, manage: str = "none"):
        kwargs = {} if dsn.startswith("sqlite") else {"pool_pre_ping": True}
        self.engine: AsyncEngine = create_async_engine(dsn, **kwargs)
        self.sessionmaker = async_sessionmaker(self.engine, expire_on_commit=False, class_=AsyncSession)
        self.manage = manage

    async def init_models(self):
        ## In dev-only "create_all" mode create the tables; otherwise, migrations own the schema.
        if self.manage.lower() == "create_all":
            # registers the tables on Base.metadata
            import app.modules.history.models  # noqa: F401
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> float:
        """SELECT 1; returns latency in ms."""
        start = time.perf_counter()
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return (time.perf_counter() - start) * 1000

    async def dispose(self):
        await self.engine.dispose()
