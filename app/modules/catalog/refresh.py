import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable
from app.modules.catalog.cache import CatalogCacheStore
from app.modules.catalog.errors import AllFoldersFailed, RefreshInProgress
from app.modules.catalog.models import CatalogSnapshot, Folder, FolderFailure, RefreshOutcome, Video
from app.modules.catalog.normalize import normalize_folder, normalize_video
from app.modules.catalog.pagination import FolderVideos, fetch_all_videos_in_folder
from app.modules.origin.client import OriginClient, Sleep, unwrap_list

log = logging.getLogger("catalog.refresh")

FolderFetcher = Callable[[str], Awaitable[FolderVideos]]


@dataclass
class FolderResult:
    folder: Folder
    videos: list[Video]
    failure: FolderFailure | None = None


class CatalogRefresher:
    """Crawls every origin folder and swaps a freshly built snapshot into the store.

    At most one crawl runs at a time; an overlapping call raises RefreshInProgress.
    """

    def __init__(
        self,
        client: OriginClient,
        store: CatalogCacheStore,
        *,
        concurrency: int = 2,
        stagger: float = 0.1,
        page_size: int = 100,
        max_pages: int = 50,
        page_delay: float = 0.1,
        folder_list_timeout: float | None = 5.0,
        sleep: Sleep = asyncio.sleep,
        folder_fetcher: FolderFetcher | None = None,
    ):
        self.client = client
        self.store = store
        self.concurrency = max(1, concurrency)
        self.stagger = stagger
        self.folder_list_timeout = folder_list_timeout
        self._sleep = sleep
        self._fetch_folder = folder_fetcher or (
            lambda folder_id: fetch_all_videos_in_folder(
                client, folder_id, page_size=page_size, max_pages=max_pages, page_delay=page_delay, sleep=sleep,
            )
        )
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def run_full_refresh(self) -> RefreshOutcome:
        # check-and-set before the first await: no other coroutine can interleave here
        if self._in_flight:
            raise RefreshInProgress()
        self._in_flight = True
        try:
            return await self._run()
        finally:
            self._in_flight = False

    async def _run(self) -> RefreshOutcome:
        started = time.perf_counter()
        log.info("Catalog refresh: starting")

        raw_folders = unwrap_list(await self.client.list_folders(timeout=self.folder_list_timeout))
        folders = [normalize_folder(f) for f in raw_folders if isinstance(f, dict) and f.get("id") is not None]

        semaphore = asyncio.Semaphore(self.concurrency)
        results = await asyncio.gather(
            *(self._crawl_folder(i, folder, semaphore) for i, folder in enumerate(folders)),
            return_exceptions=True,
        )

        videos: list[Video] = []
        failures: list[FolderFailure] = []
        seen: set[str] = set()
        for folder, res in zip(folders, results):
            if isinstance(res, BaseException):
                # _crawl_folder converts its own errors; only cancellation-style failures land here
                log.error(f"Folder {folder.name} ({folder.id}) crashed: {res!r}")
                failures.append(FolderFailure(folder.id, folder.name, repr(res)))
                continue
            if res.failure:
                failures.append(res.failure)
            for v in res.videos:
                if v.id in seen:
                    log.debug(f"Video {v.id} listed in more than one folder; keeping first occurrence")
                    continue
                seen.add(v.id)
                videos.append(v)

        if folders and not videos and len(failures) == len(folders):
            log.error(f"Catalog refresh: every folder failed ({len(failures)}), snapshot not replaced")
            raise AllFoldersFailed(len(failures))

        snapshot = CatalogSnapshot(videos=tuple(videos), folders=tuple(folders), total=len(videos), timestamp=time.time())
        await self.store.set(snapshot)

        duration_ms = int((time.perf_counter() - started) * 1000)
        log.info(
            f"Catalog refresh: completed in {duration_ms}ms ({snapshot.total} videos, "
            f"{len(folders)} folders, {len(failures)} folder failures)"
        )
        return RefreshOutcome(snapshot=snapshot, failures=tuple(failures), duration_ms=duration_ms)

    async def _crawl_folder(self, index: int, folder: Folder, semaphore: asyncio.Semaphore) -> FolderResult:
        delay = (index // self.concurrency) * self.stagger
        if delay > 0:
            await self._sleep(delay)
        try:
            async with semaphore:
                fetched = await self._fetch_folder(folder.id)
        except Exception as e:
            log.error(f"  Error fetching folder {folder.name} ({folder.id}): {e}")
            return FolderResult(folder, [], FolderFailure(folder.id, folder.name, str(e) or repr(e)))

        videos = []
        for raw in fetched.videos:
            try:
                videos.append(normalize_video(raw, folder.id))
            except (KeyError, ValueError) as e:
                log.warning(f"  Skipping malformed video record in {folder.name}: {e}")

        failure = None
        if fetched.partial_error:
            log.warning(f"  Partial data from {folder.name}: {fetched.partial_error}")
            failure = FolderFailure(folder.id, folder.name, fetched.partial_error, partial=bool(videos))
        log.info(f"  Fetched {len(videos)} videos from {folder.name}")
        return FolderResult(folder, videos, failure)
