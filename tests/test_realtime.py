import asyncio

import httpx

from app.modules.origin.client import OriginClient
from app.modules.realtime.service import RealtimeFetcher, overlay, parse_realtime

BASE = "https://origin.test/api/v1"


def test_parse_realtime_accepts_envelope_and_list():
    assert parse_realtime({"data": [{"id": "v1", "realtime": 4}, {"id": 7, "realtime": "2"}]}) == {"v1": 4, "7": 2}
    assert parse_realtime([{"id": "v1", "viewers": 1}, {"no": "id"}, "junk"]) == {"v1": 1}
    assert parse_realtime({"data": None}) == {}
    assert parse_realtime([{"id": "v1", "realtime": "many"}]) == {}


def test_overlay_defaults_to_zero():
    out = overlay([{"id": "v1"}, {"id": "v2"}], {"v1": 9})
    assert [v["realtime_viewers"] for v in out] == [9, 0]


async def test_fetch_counts_from_origin(fake_origin, fake_sleep):
    fake_origin.realtime = {"data": [{"id": "v1", "realtime": 12}]}
    client = OriginClient(BASE, "secret-token", transport=httpx.MockTransport(fake_origin.handler), sleep=fake_sleep)

    assert await RealtimeFetcher(client).fetch_realtime_counts() == {"v1": 12}
    await client.aclose()


async def test_broken_origin_yields_empty_map(fake_origin, fake_sleep):
    fake_origin.down = True
    client = OriginClient(BASE, "secret-token", transport=httpx.MockTransport(fake_origin.handler), sleep=fake_sleep)

    assert await RealtimeFetcher(client).fetch_realtime_counts() == {}
    await client.aclose()


async def test_slow_origin_yields_empty_map():
    class SlowClient:
        async def get_realtime(self, timeout=None):
            await asyncio.sleep(5)

    assert await RealtimeFetcher(SlowClient(), timeout=0.01).fetch_realtime_counts() == {}
