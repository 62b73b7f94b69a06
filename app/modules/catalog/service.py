import logging
import math
from app.modules.catalog.cache import CacheRead, CatalogCacheStore
from app.modules.catalog.errors import VideoNotFound
from app.modules.catalog.models import Video
from app.modules.catalog.normalize import normalize_video
from app.modules.catalog.scheduler import RefreshScheduler
from app.modules.origin.client import OriginClient
from app.modules.origin.errors import OriginHttpError

log = logging.getLogger("catalog.service")


class CatalogUnavailable(Exception):
    """No snapshot exists yet and the origin could not produce one."""


class CatalogService:
    def __init__(self, store: CatalogCacheStore, scheduler: RefreshScheduler, client: OriginClient, *, cold_wait: float = 60.0):
        self.store = store
        self.scheduler = scheduler
        self.client = client
        self.cold_wait = cold_wait

    async def read(self) -> CacheRead:
        """Current snapshot, possibly stale. Only a cold cache makes the caller wait."""
        read = self.store.lookup()
        if read.state == "hit":
            return read
        if read.state == "stale":
            if self.scheduler.trigger_background():
                log.info(f"Serving stale catalog (age {read.snapshot.age():.0f}s), refresh kicked off")
            return read

        # cold: shared tier first, then a crawl
        snap = await self.store.rehydrate()
        if snap is None:
            if self.scheduler.is_refreshing:
                await self.scheduler.wait_idle(self.cold_wait)
            else:
                await self.scheduler.trigger()
            snap = self.store.get()
        if snap is None:
            raise CatalogUnavailable("catalog is not available yet")
        if not self.store.is_fresh():
            self.scheduler.trigger_background()
        return CacheRead(snap, "miss")

    async def get_video(self, video_id: str) -> Video:
        snap = self.store.get()
        if snap is None:
            snap = await self.store.rehydrate()
        if snap is not None:
            video = snap.find_video(video_id)
            if video is not None:
                return video
        return await self.fetch_video_from_origin(video_id)

    async def fetch_video_from_origin(self, video_id: str) -> Video:
        try:
            payload = await self.client.get_video(video_id)
        except OriginHttpError as e:
            if e.status == 404:
                raise VideoNotFound(video_id) from e
            raise
        raw = payload.get("data", payload) if isinstance(payload, dict) else None
        if not isinstance(raw, dict) or raw.get("id") is None:
            raise VideoNotFound(video_id)
        folder_id = raw.get("folder_id") or raw.get("folderId") or ""
        log.debug(f"Video {video_id} resolved directly from origin (cache miss)")
        return normalize_video(raw, folder_id)


def filter_videos(
    videos: tuple[Video, ...] | list[Video],
    *,
    folder: str | None = None,
    q: str | None = None,
    tags: list[str] | None = None,
) -> list[Video]:
    needle = (q or "").strip().lower()
    wanted = {t.strip().lower() for t in (tags or []) if t.strip()}
    out = []
    for v in videos:
        if folder and v.folder_id != folder:
            continue
        if needle and needle not in v.title.lower() and needle not in (v.description or "").lower():
            continue
        if wanted and not wanted.issubset({t.lower() for t in v.tags}):
            continue
        out.append(v)
    return out


def paginate(items: list, page: int, limit: int) -> tuple[list, dict]:
    total = len(items)
    total_pages = math.ceil(total / limit) if total else 0
    start = (page - 1) * limit
    return items[start:start + limit], {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": total_pages,
        "has_more": page < total_pages,
    }
