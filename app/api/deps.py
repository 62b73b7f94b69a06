from fastapi import Depends, Request
from app.platform.provider_registry import ProviderRegistry
from app.modules.catalog.service import CatalogService
from app.modules.catalog.scheduler import RefreshScheduler
from app.modules.stream.service import StreamRelay
from app.modules.realtime.service import RealtimeFetcher

def get_registry(request: Request) -> ProviderRegistry:
    return request.app.state.registry

def get_catalog(registry: ProviderRegistry = Depends(get_registry)) -> CatalogService:
    return registry.catalog

def get_scheduler(registry: ProviderRegistry = Depends(get_registry)) -> RefreshScheduler:
    return registry.scheduler

def get_relay(registry: ProviderRegistry = Depends(get_registry)) -> StreamRelay:
    return registry.relay

def get_realtime(registry: ProviderRegistry = Depends(get_registry)) -> RealtimeFetcher:
    return registry.realtime
