from pydantic import BaseModel
from app.modules.catalog.models import Folder, RefreshResult, RefreshStatus

class CatalogOut(BaseModel):
    videos: list[dict]
    folders: list[Folder]
    total: int

class PaginationOut(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_more: bool

class PaginatedVideosOut(BaseModel):
    videos: list[dict]
    pagination: PaginationOut

class FolderOut(Folder):
    cached_video_count: int = 0

class RefreshTriggerOut(BaseModel):
    result: RefreshResult
    status: RefreshStatus
