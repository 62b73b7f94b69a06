from typing import Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from app.modules.history.models import RefreshRun

class RefreshRunRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **fields) -> RefreshRun:
        obj = RefreshRun(**fields)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def list_recent(self, limit: int = 20) -> Sequence[RefreshRun]:
        q = select(RefreshRun).order_by(RefreshRun.started_at.desc()).limit(limit)
        res = await self.session.execute(q)
        return res.scalars().all()
