from fastapi import APIRouter
from app.modules.catalog.router import router as catalog_router
from app.modules.stream.router import router as stream_router
from app.modules.realtime.router import router as realtime_router
from app.modules.history.router import router as history_router
from app.modules.health.router import router as health_router

api_router = APIRouter()
api_router.include_router(catalog_router, tags=["catalog"])
api_router.include_router(history_router, tags=["catalog"])
api_router.include_router(stream_router, prefix="/stream", tags=["stream"])
api_router.include_router(realtime_router, tags=["realtime"])
api_router.include_router(health_router, tags=["health"])

@api_router.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
