import logging
from app.core.db import Database
from app.modules.history.repository import RefreshRunRepository
from app.platform.ports.refresh_history import RefreshHistoryPort, RefreshRecord

log = logging.getLogger("history.sql")

class SqlRefreshHistory(RefreshHistoryPort):
    def __init__(self, db: Database):
        self.db = db

    async def record(self, entry: RefreshRecord) -> None:
        async with self.db.sessionmaker() as session:
            await RefreshRunRepository(session).create(**entry.model_dump())
            await session.commit()
        log.debug(f"[SQL HISTORY] recorded refresh status={entry.status} videos={entry.videos_count}")

    async def recent(self, limit: int = 20) -> list[RefreshRecord]:
        async with self.db.sessionmaker() as session:
            rows = await RefreshRunRepository(session).list_recent(limit)
        return [
            RefreshRecord(
                started_at=r.started_at,
                finished_at=r.finished_at,
                status=r.status,
                videos_count=r.videos_count,
                folders_count=r.folders_count,
                failed_folders=list(r.failed_folders or []),
                duration_ms=r.duration_ms,
                error=r.error,
            )
            for r in rows
        ]
