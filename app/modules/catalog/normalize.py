import logging
import re
from typing import Any
from app.modules.catalog.errors import AssetPathUnresolvable
from app.modules.catalog.models import Folder, Video

log = logging.getLogger("catalog.normalize")

# https://<host>/<asset dir...>/poster.png[?query]
ASSET_URL_RE = re.compile(
    r"^(?P<base>https?://[^/?#]+)(?P<path>/[^?#]+)/[^/?#]+\.(?:png|jpe?g|webp|gif)(?:[?#].*)?$",
    re.IGNORECASE,
)


def derive_asset_location(url: str | None, video_id: str | None = None) -> tuple[str, str]:
    """Split a poster URL into (base url, asset directory) by dropping the file name."""
    m = ASSET_URL_RE.match(url or "")
    if not m:
        raise AssetPathUnresolvable(video_id, url)
    return m.group("base"), m.group("path").rstrip("/")


def _int(value: Any, default: int | None = 0) -> int | None:
    if value is None or value == "":
        return default
    try:
        return max(0, int(float(value)))
    except (TypeError, ValueError):
        return default


def _text(value: Any) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _first(raw: dict, *keys: str) -> Any:
    for k in keys:
        if raw.get(k) is not None:
            return raw[k]
    return None


def _tags(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(t for t in (_text(x) for x in value) if t)


def normalize_folder(raw: dict) -> Folder:
    return Folder(
        id=str(raw["id"]),
        name=_text(raw.get("name")) or "Unnamed Folder",
        description=_text(raw.get("description")),
        video_count=_int(_first(raw, "video_count", "videoCount"), None),
        created_at=_first(raw, "created_at", "createdAt"),
        updated_at=_first(raw, "updated_at", "updatedAt"),
    )


def normalize_video(raw: dict, folder_id: str) -> Video:
    video_id = str(raw["id"])
    poster = _text(raw.get("poster"))
    try:
        asset_base_url, asset_path = derive_asset_location(poster, video_id)
    except AssetPathUnresolvable as e:
        log.debug(str(e))
        asset_base_url = asset_path = None
    return Video(
        id=video_id,
        title=_text(_first(raw, "title", "name")) or "Untitled",
        description=_text(raw.get("description")),
        duration=_int(raw.get("duration")),
        thumbnail=_text(raw.get("thumbnail")),
        poster=poster,
        asset_base_url=asset_base_url,
        asset_path=asset_path,
        created_at=_first(raw, "created_at", "createdAt"),
        updated_at=_first(raw, "updated_at", "updatedAt"),
        views=_int(raw.get("views")),
        size_bytes=_int(_first(raw, "size", "size_bytes"), None),
        folder_id=str(folder_id),
        tags=_tags(raw.get("tags")),
        width=_int(raw.get("width"), None),
        height=_int(raw.get("height"), None),
    )
