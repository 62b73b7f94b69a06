import asyncio
import logging
import os
import time
from fastapi import APIRouter, Depends, Query
from app.api.deps import get_registry
from app.platform.provider_registry import ProviderRegistry

router = APIRouter()
logger = logging.getLogger(__name__)

PROBE_TIMEOUT = 2.0


async def _ping(check) -> dict:
    """Run a ping coroutine factory; never raises."""
    if check is None:
        return {"status": "disabled", "response_time": None}
    try:
        latency = await asyncio.wait_for(check(), timeout=PROBE_TIMEOUT)
        return {"status": "healthy", "response_time": round(latency, 2)}
    except Exception as e:
        logger.error(f"Health check failed: {e!r}")
        return {"status": "error", "response_time": None}


@router.get("/admin/health")
async def system_health(registry: ProviderRegistry = Depends(get_registry)):
    db, redis = await asyncio.gather(
        _ping(registry.db.ping if registry.db else None),
        _ping(registry.redis.ping if registry.redis else None),
    )
    try:
        load = os.getloadavg()
    except OSError:  # not available on every platform
        load = (None, None, None)
    metrics = registry.request_metrics
    degraded = "error" in (db["status"], redis["status"]) or registry.store.get() is None
    return {
        "status": "degraded" if degraded else "healthy",
        "timestamp": time.time(),
        "system": {
            "cpu": {"load_average": {"1m": load[0], "5m": load[1], "15m": load[2]}, "cores": os.cpu_count()},
            "uptime": {
                "process": round(time.time() - registry.started_at, 1),
                "metrics_since": round(time.time() - metrics.last_reset, 1),
            },
        },
        "database": db,
        "redis": redis,
        "cache": registry.store.stats(),
        "refresh": registry.scheduler.status().model_dump(),
        "api": metrics.summary(),
    }


@router.get("/admin/health/endpoints")
async def endpoint_metrics(registry: ProviderRegistry = Depends(get_registry)):
    metrics = registry.request_metrics
    endpoints = metrics.endpoint_report()
    return {
        "endpoints": endpoints,
        "summary": {
            "total_endpoints": len(endpoints),
            "total_requests": metrics.total_requests,
            "avg_response_time": metrics.avg_response_time,
        },
    }


@router.get("/admin/health/errors")
async def recent_errors(limit: int = Query(50, ge=1, le=100), registry: ProviderRegistry = Depends(get_registry)):
    metrics = registry.request_metrics
    errors = metrics.recent_errors(limit)
    by_endpoint: dict[str, int] = {}
    for e in errors:
        by_endpoint[e["endpoint"]] = by_endpoint.get(e["endpoint"], 0) + 1
    top = sorted(({"endpoint": k, "count": v} for k, v in by_endpoint.items()), key=lambda r: r["count"], reverse=True)[:10]
    return {
        "errors": errors,
        "summary": {"total_errors": len(metrics.errors), "recent_errors": len(errors), "top_error_endpoints": top},
    }


@router.post("/admin/health/reset")
async def reset_metrics(registry: ProviderRegistry = Depends(get_registry)):
    registry.request_metrics.reset()
    registry.store.metrics.reset()
    logger.info("Request and cache metrics reset by operator")
    return {"success": True, "message": "Metrics reset successfully", "reset_at": registry.request_metrics.last_reset}
