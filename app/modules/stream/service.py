import logging
from dataclasses import dataclass
from urllib.parse import quote
import httpx
from app.modules.catalog.errors import AssetPathUnresolvable
from app.modules.catalog.service import CatalogService
from app.modules.origin.client import OriginClient
from app.modules.stream.manifest import ABSOLUTE_RE, ManifestRewriteFailure, manifest_dir, rewrite_manifest

log = logging.getLogger("stream.relay")


class InvalidAssetPath(Exception):
    pass


@dataclass(frozen=True)
class AssetLocation:
    base_url: str
    path: str

    def url_for(self, relative_path: str) -> str:
        return f"{self.base_url}{self.path}/{quote(relative_path, safe='/?=&%')}"


def validate_relative_path(relative_path: str) -> str:
    p = relative_path.strip()
    if not p or p.startswith(("/", "\\")) or ABSOLUTE_RE.match(p) or "\\" in p:
        raise InvalidAssetPath(f"invalid asset path: {relative_path!r}")
    if any(part == ".." for part in p.split("?")[0].split("/")):
        raise InvalidAssetPath(f"invalid asset path: {relative_path!r}")
    return p


class StreamRelay:
    """Resolves a video to its origin asset directory and relays playlists/media through us."""

    def __init__(
        self,
        client: OriginClient,
        catalog: CatalogService,
        *,
        endpoint_prefix: str = "/api/stream",
        manifest_name: str = "index.m3u8",
        mp4_name: str = "video.mp4",
        timeout: float = 30.0,
    ):
        self.client = client
        self.catalog = catalog
        self.endpoint_prefix = endpoint_prefix.rstrip("/")
        self.manifest_name = manifest_name
        self.mp4_name = mp4_name
        self.timeout = timeout

    @staticmethod
    def is_manifest_request(relative_path: str | None) -> bool:
        return not relative_path or relative_path.split("?")[0].lower().endswith(".m3u8")

    def segment_endpoint(self, video_id: str) -> str:
        return f"{self.endpoint_prefix}/{quote(video_id, safe='')}/segment"

    async def resolve_asset(self, video_id: str) -> AssetLocation:
        video = await self.catalog.get_video(video_id)
        if not video.streamable:
            raise AssetPathUnresolvable(video_id, video.poster)
        return AssetLocation(video.asset_base_url, video.asset_path)

    async def fetch_manifest(self, video_id: str, relative_path: str | None = None) -> str:
        relative_path = validate_relative_path(relative_path) if relative_path else self.manifest_name
        asset = await self.resolve_asset(video_id)
        url = asset.url_for(relative_path)
        text = await self.client.fetch_text(url, timeout=self.timeout)
        try:
            rewritten = rewrite_manifest(
                text,
                self.segment_endpoint(video_id),
                manifest_dir(relative_path),
                asset_base_url=asset.base_url,
                asset_path=asset.path,
            )
        except ManifestRewriteFailure:
            log.warning(f"Could not rewrite manifest for video {video_id}: {url}")
            raise
        log.debug(f"Relayed manifest {relative_path} for video {video_id}")
        return rewritten

    async def open_media(self, video_id: str, relative_path: str, range_header: str | None = None) -> httpx.Response:
        """Streamed origin response for a segment or container file; caller closes it."""
        relative_path = validate_relative_path(relative_path)
        asset = await self.resolve_asset(video_id)
        headers = {"Accept": "*/*"}
        if range_header:
            headers["Range"] = range_header
        return await self.client.open_stream(asset.url_for(relative_path), headers=headers, timeout=self.timeout)
