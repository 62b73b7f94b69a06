import time
from dataclasses import dataclass, field
from pydantic import BaseModel, ConfigDict, Field


class Folder(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str | None = None
    video_count: int | None = None
    created_at: str | None = None
    updated_at: str | None = None


class Video(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str | None = None
    duration: int = Field(default=0, ge=0)
    thumbnail: str | None = None
    poster: str | None = None
    asset_base_url: str | None = None
    asset_path: str | None = None  # absent => not streamable
    created_at: str | None = None
    updated_at: str | None = None
    views: int = Field(default=0, ge=0)
    size_bytes: int | None = None
    folder_id: str
    tags: tuple[str, ...] = ()
    width: int | None = None
    height: int | None = None

    @property
    def streamable(self) -> bool:
        return bool(self.asset_base_url and self.asset_path)


class CatalogSnapshot(BaseModel):
    """A fully assembled catalog. Never mutated; a refresh builds a new one."""
    model_config = ConfigDict(frozen=True)

    videos: tuple[Video, ...] = ()
    folders: tuple[Folder, ...] = ()
    total: int = 0
    timestamp: float = Field(default_factory=time.time)

    def age(self, now: float | None = None) -> float:
        return max(0.0, (now if now is not None else time.time()) - self.timestamp)

    def find_video(self, video_id: str) -> Video | None:
        for v in self.videos:
            if v.id == video_id:
                return v
        return None

    def content_equals(self, other: "CatalogSnapshot") -> bool:
        return self.videos == other.videos and self.folders == other.folders and self.total == other.total

    def public_dict(self) -> dict:
        return self.model_dump(mode="json", include={"videos", "folders", "total"})


class RefreshStatus(BaseModel):
    is_running: bool
    is_refreshing: bool
    last_refresh_time: float | None = None
    next_refresh_in: float | None = None
    last_error: str | None = None
    last_duration_ms: int | None = None


class RefreshResult(BaseModel):
    success: bool
    message: str
    videos_count: int | None = None
    failed_folders: list[str] = []


@dataclass(frozen=True)
class FolderFailure:
    """Non-fatal per-folder failure recorded on a refresh."""
    folder_id: str
    folder_name: str
    error: str
    partial: bool = False  # some videos were salvaged before the error


@dataclass(frozen=True)
class RefreshOutcome:
    snapshot: CatalogSnapshot
    failures: tuple[FolderFailure, ...] = ()
    duration_ms: int = 0


@dataclass
class CacheMetrics:
    hits: int = 0
    misses: int = 0
    stale_hits: int = 0
    timeouts: int = 0
    tier_errors: int = 0
    since: float = field(default_factory=time.time)

    @property
    def reads(self) -> int:
        return self.hits + self.stale_hits + self.misses

    @property
    def hit_rate(self) -> float:
        if not self.reads:
            return 0.0
        return round((self.hits + self.stale_hits) / self.reads * 100, 2)

    @property
    def timeout_rate(self) -> float:
        if not self.reads:
            return 0.0
        return round(self.timeouts / self.reads * 100, 2)

    def reset(self):
        self.hits = self.misses = self.stale_hits = self.timeouts = self.tier_errors = 0
        self.since = time.time()
