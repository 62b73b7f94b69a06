import asyncio
import logging
import math
from dataclasses import dataclass, field
from typing import Any
from app.modules.origin.client import OriginClient, Sleep
from app.modules.origin.errors import OriginError

log = logging.getLogger("catalog.pagination")

META_KEYS = ("metadata", "pagination", "meta")


@dataclass
class FolderVideos:
    videos: list[dict] = field(default_factory=list)
    partial_error: str | None = None


@dataclass(frozen=True)
class PageInfo:
    items: list
    current_page: int | None
    max_page: int | None


def _positive_int(value: Any) -> int | None:
    try:
        n = int(value)
    except (TypeError, ValueError):
        return None
    return n if n > 0 else None


def _lookup(payload: dict, *keys: str) -> Any:
    scopes = [payload] + [payload[k] for k in META_KEYS if isinstance(payload.get(k), dict)]
    for scope in scopes:
        for k in keys:
            if scope.get(k) is not None:
                return scope[k]
    return None


def parse_page(payload: Any, page_size: int) -> PageInfo:
    """Accepts a bare list or a `data` envelope with currentPage/maxPage/total metadata."""
    if isinstance(payload, list):
        return PageInfo(payload, None, None)
    if not isinstance(payload, dict):
        raise ValueError(f"unexpected page payload: {type(payload).__name__}")
    items = payload.get("data") or []
    if not isinstance(items, list):
        raise ValueError("page `data` is not a list")
    current = _positive_int(_lookup(payload, "currentPage", "current_page", "page"))
    max_page = _positive_int(_lookup(payload, "maxPage", "max_page", "last_page", "totalPages", "total_pages"))
    if max_page is None:
        total = _positive_int(_lookup(payload, "total", "totalItems", "total_items"))
        if total is not None:
            max_page = math.ceil(total / page_size)
    return PageInfo(items, current, max_page)


async def fetch_all_videos_in_folder(
    client: OriginClient,
    folder_id: str,
    *,
    page_size: int = 100,
    max_pages: int = 50,
    page_delay: float = 0.1,
    sleep: Sleep = asyncio.sleep,
) -> FolderVideos:
    """Walk a folder's listing until the origin runs out of pages or the page cap is hit.

    Page failures never raise: whatever was collected is returned together with
    `partial_error`.
    """
    result = FolderVideos()
    page = 1
    while True:
        try:
            payload = await client.list_folder_videos(folder_id, page, page_size)
            info = parse_page(payload, page_size)
        except (OriginError, ValueError) as e:
            result.partial_error = f"page {page}: {e}"
            log.warning(f"Folder {folder_id}: stopping at {result.partial_error} ({len(result.videos)} videos kept)")
            return result

        if not info.items:
            break
        result.videos.extend(v for v in info.items if isinstance(v, dict) and v.get("id") is not None)

        current = info.current_page or page
        if info.max_page is not None:
            if current >= info.max_page:
                break
        elif len(info.items) < page_size:
            # no usable metadata: a short page is the last one
            break
        if page >= max_pages:
            log.warning(f"Folder {folder_id}: reached page cap ({max_pages}), listing may be truncated")
            break

        page += 1
        if page_delay > 0:
            await sleep(page_delay)
    return result
