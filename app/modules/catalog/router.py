import logging
from collections import Counter
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from fastapi.responses import JSONResponse
from app.api.deps import get_catalog, get_realtime, get_scheduler
from app.modules.catalog.errors import VideoNotFound
from app.modules.catalog.models import RefreshStatus
from app.modules.catalog.schemas import CatalogOut, FolderOut, PaginatedVideosOut, RefreshTriggerOut
from app.modules.catalog.scheduler import RefreshScheduler
from app.modules.catalog.service import CatalogService, CatalogUnavailable, filter_videos, paginate
from app.modules.origin.errors import OriginError
from app.modules.realtime.service import RealtimeFetcher, overlay

router = APIRouter()
logger = logging.getLogger(__name__)

CACHE_HEADER = {"hit": "HIT", "stale": "STALE", "miss": "MISS"}


async def _read(catalog: CatalogService, response: Response):
    try:
        read = await catalog.read()
    except CatalogUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    response.headers["X-Cache"] = CACHE_HEADER[read.state]
    response.headers["X-Cache-Age"] = str(int(read.snapshot.age()))
    return read.snapshot


@router.get("/catalog", response_model=CatalogOut)
async def get_catalog_snapshot(response: Response, catalog: CatalogService = Depends(get_catalog)):
    snap = await _read(catalog, response)
    return snap.public_dict()


@router.get("/catalog/paginated", response_model=PaginatedVideosOut)
async def get_catalog_page(
    response: Response,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    folder: str | None = None,
    q: str | None = None,
    tags: str | None = None,
    realtime: bool = False,
    catalog: CatalogService = Depends(get_catalog),
    fetcher: RealtimeFetcher = Depends(get_realtime),
):
    snap = await _read(catalog, response)
    tag_list = tags.split(",") if tags else None
    items, meta = paginate(filter_videos(snap.videos, folder=folder, q=q, tags=tag_list), page, limit)
    videos = [v.model_dump(mode="json") for v in items]
    if realtime:
        videos = overlay(videos, await fetcher.fetch_realtime_counts())
    return {"videos": videos, "pagination": meta}


@router.get("/catalog/folders", response_model=list[FolderOut])
async def get_catalog_folders(response: Response, catalog: CatalogService = Depends(get_catalog)):
    snap = await _read(catalog, response)
    counts = Counter(v.folder_id for v in snap.videos)
    return [FolderOut(**f.model_dump(), cached_video_count=counts.get(f.id, 0)) for f in snap.folders]


@router.get("/catalog/videos/{video_id}")
async def get_catalog_video(
    video_id: str,
    realtime: bool = False,
    catalog: CatalogService = Depends(get_catalog),
    fetcher: RealtimeFetcher = Depends(get_realtime),
):
    try:
        video = await catalog.get_video(video_id)
    except VideoNotFound:
        raise HTTPException(status_code=404, detail="Video not found")
    except OriginError as e:
        logger.error(f"Direct lookup of video {video_id} failed: {e}")
        raise HTTPException(status_code=502, detail="Origin lookup failed")
    out = video.model_dump(mode="json")
    if realtime:
        out = overlay([out], await fetcher.fetch_realtime_counts())[0]
    return out


@router.post("/refresh", response_model=RefreshTriggerOut)
async def trigger_refresh(scheduler: RefreshScheduler = Depends(get_scheduler)):
    if scheduler.is_refreshing:
        body = RefreshTriggerOut(
            result={"success": False, "message": "Refresh already in progress"},
            status=scheduler.status(),
        )
        return JSONResponse(status_code=409, content=body.model_dump(mode="json"))
    result = await scheduler.trigger()
    return {"result": result, "status": scheduler.status()}


@router.get("/refresh/status", response_model=RefreshStatus)
async def refresh_status(scheduler: RefreshScheduler = Depends(get_scheduler)):
    return scheduler.status()
