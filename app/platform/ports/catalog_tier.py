from typing import Protocol, runtime_checkable
from app.modules.catalog.models import CatalogSnapshot

@runtime_checkable
class SharedCatalogTier(Protocol):
    name: str
    async def load(self) -> CatalogSnapshot | None: ...
    async def store(self, snapshot: CatalogSnapshot) -> None: ...
