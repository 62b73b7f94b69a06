import math
from typing import Any

import httpx
import pytest

from app.core.config import Settings
from app.platform.provider_registry import ProviderRegistry

ORIGIN_BASE = "https://origin.test/api/v1"
ASSET_HOST = "https://assets.test"
TOKEN = "secret-token"


def raw_video(video_id: str, *, title: str | None = None, asset_dir: str | None = "auto", **extra) -> dict:
    poster = None
    if asset_dir == "auto":
        poster = f"{ASSET_HOST}/media/{video_id}/poster.png"
    elif asset_dir:
        poster = f"{ASSET_HOST}/{asset_dir}/poster.png"
    return {
        "id": video_id,
        "title": title or f"Video {video_id}",
        "duration": 120,
        "poster": poster,
        "views": 3,
        "size": 1024,
        **extra,
    }


class FakeOrigin:
    """In-memory origin served through httpx.MockTransport."""

    def __init__(self, per_page_default: int = 100):
        self.folders: list[dict] = []
        self.videos: dict[str, list[dict]] = {}
        self.assets: dict[str, tuple[int, dict, bytes]] = {}
        self.realtime: Any = {"data": []}
        self.failing_folders: set[str] = set()
        self.down = False
        self.requests: list[httpx.Request] = []
        self.per_page_default = per_page_default

    def add_folder(self, folder_id: str, name: str, videos: list[dict]):
        self.folders.append({"id": folder_id, "name": name, "video_count": len(videos)})
        self.videos[folder_id] = videos

    def add_asset(self, path: str, body: bytes | str, content_type: str = "video/mp2t", status: int = 200, headers: dict | None = None):
        if isinstance(body, str):
            body = body.encode()
        self.assets[path] = (status, {"content-type": content_type, **(headers or {})}, body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.down:
            return httpx.Response(503, text="origin down")
        url = request.url
        if url.host == "assets.test":
            if url.path not in self.assets:
                return httpx.Response(404, text="no such asset")
            status, headers, body = self.assets[url.path]
            if "range" in request.headers and status == 200:
                headers = {**headers, "content-range": f"bytes 0-{len(body) - 1}/{len(body)}"}
                status = 206
            return httpx.Response(status, headers=headers, content=body)

        path = url.path.removeprefix("/api/v1")
        if path == "/video/folder":
            return httpx.Response(200, json={"data": self.folders})
        if path.startswith("/video/folder/"):
            folder_id = path.rsplit("/", 1)[-1]
            if folder_id in self.failing_folders:
                return httpx.Response(500, text="boom")
            page = int(url.params.get("page", 1))
            per_page = int(url.params.get("perPage", self.per_page_default))
            items = self.videos.get(folder_id, [])
            chunk = items[(page - 1) * per_page: page * per_page]
            return httpx.Response(200, json={
                "data": chunk,
                "metadata": {"currentPage": page, "maxPage": max(1, math.ceil(len(items) / per_page))},
            })
        if path.startswith("/video/manage/"):
            video_id = path.rsplit("/", 1)[-1]
            for folder_id, items in self.videos.items():
                for v in items:
                    if v["id"] == video_id:
                        return httpx.Response(200, json={"data": {**v, "folder_id": folder_id}})
            return httpx.Response(404, json={"message": "not found"})
        if path == "/video/realtime":
            return httpx.Response(200, json=self.realtime)
        raise AssertionError(f"Unexpected request {request.method} {request.url}")


@pytest.fixture
def fake_origin() -> FakeOrigin:
    origin = FakeOrigin()
    origin.add_folder("f1", "  Music ", [raw_video("v1", tags=["live", "Rock"]), raw_video("v2", title="Acoustic session")])
    origin.add_folder("f2", "Talks", [raw_video("v3", description="About caching"), raw_video("v4", asset_dir=None)])
    return origin


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def fake_sleep(sleeps):
    async def _sleep(delay: float) -> None:
        sleeps.append(delay)
    return _sleep


def make_settings(**overrides) -> Settings:
    values = {
        "ORIGIN_API_BASE": ORIGIN_BASE,
        "ORIGIN_API_TOKEN": TOKEN,
        "PAGE_DELAY_SECONDS": 0,
        "FOLDER_STAGGER_SECONDS": 0,
        "SCHEDULER_ENABLED": False,
        "CACHE_PROVIDER": "memory",
        "REFRESH_HISTORY_PROVIDER": "memory",
        "DATABASE_DSN": None,
        "LOG_LEVEL": "WARNING",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def make_registry(fake_origin, fake_sleep):
    def _make(**overrides) -> ProviderRegistry:
        return ProviderRegistry.from_settings(
            make_settings(**overrides),
            transport=httpx.MockTransport(fake_origin.handler),
            sleep=fake_sleep,
        )
    return _make


@pytest.fixture
def video_factory():
    return raw_video


@pytest.fixture
def origin_factory():
    return FakeOrigin
