from fastapi import APIRouter, Depends
from app.api.deps import get_realtime
from app.modules.realtime.service import RealtimeFetcher

router = APIRouter()

@router.get("/realtime")
async def realtime_counts(fetcher: RealtimeFetcher = Depends(get_realtime)) -> dict[str, int]:
    return await fetcher.fetch_realtime_counts()
