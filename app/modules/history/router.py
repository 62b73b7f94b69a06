from fastapi import APIRouter, Depends, Query
from app.api.deps import get_registry
from app.platform.provider_registry import ProviderRegistry
from app.platform.ports.refresh_history import RefreshRecord

router = APIRouter()

@router.get("/refresh/history", response_model=list[RefreshRecord])
async def refresh_history(limit: int = Query(20, ge=1, le=100), registry: ProviderRegistry = Depends(get_registry)):
    return await registry.history.recent(limit)
