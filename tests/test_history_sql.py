from datetime import datetime, timedelta, timezone

import pytest

from app.core.db import Database
from app.platform.adapters.history_sql import SqlRefreshHistory
from app.platform.ports.refresh_history import RefreshRecord


@pytest.fixture
async def db(tmp_path):
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'history.db'}", manage="create_all")
    await database.init_models()
    yield database
    await database.dispose()


def record(minutes_ago: int, status: str = "success", **kwargs) -> RefreshRecord:
    started = datetime.now(timezone.utc) - timedelta(minutes=minutes_ago)
    return RefreshRecord(started_at=started, finished_at=started + timedelta(seconds=3), status=status, **kwargs)


async def test_records_round_trip_newest_first(db):
    history = SqlRefreshHistory(db)
    await history.record(record(10, videos_count=4, folders_count=2, failed_folders=["f2"], duration_ms=3000))
    await history.record(record(5, status="failed", error="origin returned HTTP 503"))

    rows = await history.recent()
    assert [r.status for r in rows] == ["failed", "success"]
    assert rows[0].error == "origin returned HTTP 503"
    assert rows[1].failed_folders == ["f2"]
    assert rows[1].videos_count == 4


async def test_recent_respects_limit(db):
    history = SqlRefreshHistory(db)
    for i in range(5):
        await history.record(record(i))
    assert len(await history.recent(limit=3)) == 3


async def test_ping_reports_latency(db):
    assert await db.ping() >= 0


async def test_registry_uses_sql_history(make_registry, tmp_path):
    registry = make_registry(
        REFRESH_HISTORY_PROVIDER="sql",
        DATABASE_DSN=f"sqlite+aiosqlite:///{tmp_path / 'reg.db'}",
        DB_MANAGE="create_all",
    )
    await registry.start()
    try:
        await registry.scheduler.trigger()
        [entry] = await registry.history.recent()
        assert entry.status == "success"
        assert entry.videos_count == 4
    finally:
        await registry.close()
