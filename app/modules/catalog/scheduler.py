import asyncio
import logging
import time
from datetime import datetime, timezone
from app.modules.catalog.errors import RefreshInProgress
from app.modules.catalog.models import RefreshResult, RefreshStatus
from app.modules.catalog.refresh import CatalogRefresher
from app.platform.ports.refresh_history import RefreshHistoryPort, RefreshRecord

log = logging.getLogger("catalog.scheduler")


class RefreshScheduler:
    """Runs the refresher every `interval` seconds and on demand.

    States: idle -> refreshing -> idle. A trigger while refreshing is rejected,
    never queued. `stop()` sets the stop token and awaits every task it owns.
    """

    def __init__(
        self,
        refresher: CatalogRefresher,
        *,
        interval: float = 300.0,
        run_on_start: bool = True,
        history: RefreshHistoryPort | None = None,
    ):
        self.refresher = refresher
        self.interval = interval
        self.run_on_start = run_on_start
        self.history = history
        self._stop = asyncio.Event()
        self._ticker: asyncio.Task | None = None
        self._background: set[asyncio.Task] = set()
        self._active = 0
        self._idle = asyncio.Event()
        self._idle.set()
        self.last_refresh_time: float | None = None
        self.last_attempt_time: float | None = None
        self.last_error: str | None = None
        self.last_duration_ms: int | None = None

    @property
    def is_running(self) -> bool:
        return self._ticker is not None and not self._ticker.done()

    @property
    def is_refreshing(self) -> bool:
        return self.refresher.in_flight

    def start(self):
        if self.is_running:
            log.warning("Background refresh already running")
            return
        self._stop = asyncio.Event()
        self._ticker = asyncio.create_task(self._tick_loop(), name="catalog-refresh-ticker")
        log.info(f"Starting background refresh (interval: {self.interval:.0f}s)")

    async def stop(self):
        self._stop.set()
        tasks = [t for t in (self._ticker, *self._background) if t is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        if self._ticker is not None:
            log.info("Stopped background refresh")
        self._ticker = None

    async def _tick_loop(self):
        first = True
        while not self._stop.is_set():
            if not first or self.run_on_start:
                if self.is_refreshing:
                    log.info("Scheduled refresh skipped: one is already in progress")
                else:
                    await self.trigger()
            first = False
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

    async def trigger(self) -> RefreshResult:
        if self.is_refreshing:
            return RefreshResult(success=False, message=str(RefreshInProgress()))
        self._begin()
        return await self._refresh_once()

    def trigger_background(self) -> bool:
        """Kick a refresh without waiting for it (stale-while-revalidate)."""
        if self.is_refreshing or self._active:
            return False
        self._begin()
        task = asyncio.create_task(self._refresh_once(), name="catalog-refresh-background")
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return True

    async def wait_idle(self, timeout: float) -> bool:
        """Wait until no scheduler-started refresh is pending or running; returns False on timeout."""
        if self._idle.is_set():
            return True
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    def _begin(self):
        # counted before the task is created so wait_idle sees a queued background refresh
        self._active += 1
        self._idle.clear()

    def _end(self):
        self._active -= 1
        if not self._active:
            self._idle.set()

    async def _refresh_once(self) -> RefreshResult:
        try:
            return await self._run_refresh()
        finally:
            self._end()

    async def _run_refresh(self) -> RefreshResult:
        started_at = datetime.now(timezone.utc)
        self.last_attempt_time = time.time()
        try:
            outcome = await self.refresher.run_full_refresh()
        except RefreshInProgress as e:
            return RefreshResult(success=False, message=str(e))
        except Exception as e:
            # previous snapshot stays in place
            self.last_error = str(e) or repr(e)
            self.last_duration_ms = int((time.time() - self.last_attempt_time) * 1000)
            log.error(f"Background refresh failed: {self.last_error}", exc_info=True)
            await self._record(RefreshRecord(
                started_at=started_at,
                finished_at=datetime.now(timezone.utc),
                status="failed",
                duration_ms=self.last_duration_ms,
                error=self.last_error,
            ))
            return RefreshResult(success=False, message=self.last_error)

        self.last_refresh_time = outcome.snapshot.timestamp
        self.last_error = None
        self.last_duration_ms = outcome.duration_ms
        failed = [f.folder_id for f in outcome.failures]
        await self._record(RefreshRecord(
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
            status="success",
            videos_count=outcome.snapshot.total,
            folders_count=len(outcome.snapshot.folders),
            failed_folders=failed,
            duration_ms=outcome.duration_ms,
        ))
        return RefreshResult(
            success=True,
            message=f"Refreshed {outcome.snapshot.total} videos in {outcome.duration_ms}ms",
            videos_count=outcome.snapshot.total,
            failed_folders=failed,
        )

    async def _record(self, entry: RefreshRecord):
        if self.history is None:
            return
        try:
            await self.history.record(entry)
        except Exception:
            log.exception("Failed to record refresh history")

    def status(self) -> RefreshStatus:
        last_refresh = self.last_refresh_time
        if last_refresh is None:
            # a snapshot rehydrated from the shared tier was refreshed by another process
            snap = self.refresher.store.get()
            last_refresh = snap.timestamp if snap is not None else None
        next_in = None
        if self.is_running:
            anchor = self.last_attempt_time or time.time()
            next_in = max(0.0, round(self.interval - (time.time() - anchor), 1))
        return RefreshStatus(
            is_running=self.is_running,
            is_refreshing=self.is_refreshing,
            last_refresh_time=last_refresh,
            next_refresh_in=next_in,
            last_error=self.last_error,
            last_duration_ms=self.last_duration_ms,
        )
