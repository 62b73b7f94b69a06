from datetime import datetime
from typing import Protocol, runtime_checkable
from pydantic import BaseModel

class RefreshRecord(BaseModel):
    started_at: datetime
    finished_at: datetime
    status: str  # success | failed
    videos_count: int = 0
    folders_count: int = 0
    failed_folders: list[str] = []
    duration_ms: int = 0
    error: str | None = None

@runtime_checkable
class RefreshHistoryPort(Protocol):
    async def record(self, entry: RefreshRecord) -> None: ...
    async def recent(self, limit: int = 20) -> list[RefreshRecord]: ...
