from collections import deque
from app.platform.ports.refresh_history import RefreshHistoryPort, RefreshRecord

class MemoryRefreshHistory(RefreshHistoryPort):
    def __init__(self, max_entries: int = 100):
        self._entries: deque[RefreshRecord] = deque(maxlen=max_entries)

    async def record(self, entry: RefreshRecord) -> None:
        self._entries.appendleft(entry)

    async def recent(self, limit: int = 20) -> list[RefreshRecord]:
        return list(self._entries)[:limit]
