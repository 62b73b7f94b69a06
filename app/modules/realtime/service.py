import asyncio
import logging
from typing import Any, Iterable
from app.modules.origin.client import OriginClient

log = logging.getLogger("realtime")


def parse_realtime(payload: Any) -> dict[str, int]:
    rows = payload.get("data") if isinstance(payload, dict) else payload
    counts: dict[str, int] = {}
    for row in rows or []:
        if not isinstance(row, dict) or row.get("id") is None:
            continue
        try:
            counts[str(row["id"])] = max(0, int(row.get("realtime") or row.get("viewers") or 0))
        except (TypeError, ValueError):
            continue
    return counts


class RealtimeFetcher:
    """Live viewer counts. Best effort: a slow or broken origin yields an empty map."""

    def __init__(self, client: OriginClient, *, timeout: float = 5.0):
        self.client = client
        self.timeout = timeout

    async def fetch_realtime_counts(self) -> dict[str, int]:
        try:
            payload = await asyncio.wait_for(self.client.get_realtime(timeout=self.timeout), timeout=self.timeout)
            counts = parse_realtime(payload)
        except asyncio.TimeoutError:
            log.warning(f"Realtime stats timed out after {self.timeout}s")
            return {}
        except Exception as e:
            log.warning(f"Realtime stats unavailable: {e}")
            return {}
        log.debug(f"Realtime stats for {len(counts)} videos")
        return counts


def overlay(videos: Iterable[dict], counts: dict[str, int]) -> list[dict]:
    return [{**v, "realtime_viewers": counts.get(v["id"], 0)} for v in videos]
