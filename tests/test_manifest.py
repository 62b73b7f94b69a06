import pytest

from app.modules.stream.manifest import ManifestRewriteFailure, is_media_uri, manifest_dir, relay_target, rewrite_manifest

ENDPOINT = "/api/stream/v1/segment"
ASSET_BASE = "https://assets.test"
ASSET_PATH = "/media/v1"

MASTER = """#EXTM3U
#EXT-X-STREAM-INF:BANDWIDTH=800000,RESOLUTION=640x360
360p/index.m3u8
#EXT-X-STREAM-INF:BANDWIDTH=2800000,RESOLUTION=1280x720
https://cdn.example.com/720p/index.m3u8
"""

MEDIA = """#EXTM3U
#EXT-X-TARGETDURATION:6
#EXTINF:6.0,
seg 000.ts
#EXTINF:6.0,
seg001.ts?token=abc

#EXT-X-ENDLIST"""


def test_rewrites_media_entries_and_keeps_foreign_hosts():
    out = rewrite_manifest(MASTER, ENDPOINT, asset_base_url=ASSET_BASE, asset_path=ASSET_PATH)
    lines = out.split("\n")

    assert len(lines) == len(MASTER.split("\n"))
    assert lines[2] == f"{ENDPOINT}?path=360p/index.m3u8"
    assert lines[4] == "https://cdn.example.com/720p/index.m3u8"
    assert lines[1] == MASTER.split("\n")[1]


def test_nested_playlist_entries_keep_their_directory():
    out = rewrite_manifest(MEDIA, ENDPOINT, manifest_dir("360p/index.m3u8"))
    lines = out.split("\n")

    assert lines[3] == f"{ENDPOINT}?path=360p/seg%20000.ts"
    assert lines[5].startswith(f"{ENDPOINT}?path=360p/seg001.ts")
    assert lines[6] == ""
    assert lines[-1] == "#EXT-X-ENDLIST"


def test_crlf_line_endings_are_preserved():
    text = "#EXTM3U\r\n#EXTINF:4,\r\na.ts\r\n"
    out = rewrite_manifest(text, ENDPOINT)
    assert out == f"#EXTM3U\r\n#EXTINF:4,\r\n{ENDPOINT}?path=a.ts\r\n"


def test_byte_order_mark_is_tolerated():
    assert rewrite_manifest("\ufeff#EXTM3U\nb.ts", ENDPOINT).endswith("?path=b.ts")


def test_empty_manifest_passes_through():
    assert rewrite_manifest("", ENDPOINT) == ""


@pytest.mark.parametrize("bad", ["<html>oops</html>", b"#EXTM3U", None])
def test_non_playlists_are_rejected(bad):
    with pytest.raises(ManifestRewriteFailure):
        rewrite_manifest(bad, ENDPOINT)


@pytest.mark.parametrize("line, expected", [
    ("a.ts", True),
    ("sub/index.M3U8", True),
    ("#EXTINF:6,", False),
    ("/abs/a.ts", True),
    ("https://x/a.ts?sig=1", True),
    ("key.bin", False),
    ("   ", False),
])
def test_is_media_uri(line, expected):
    assert is_media_uri(line) is expected


def test_manifest_dir():
    assert manifest_dir(None) == ""
    assert manifest_dir("index.m3u8") == ""
    assert manifest_dir("720p/index.m3u8") == "720p/"


def test_root_relative_and_same_host_entries_are_relayed():
    text = (
        "#EXTM3U\n#EXTINF:6.0,\n/media/v1/360p/seg0.ts\n"
        "#EXTINF:6.0,\nhttps://assets.test/media/v1/360p/seg1.ts?token=abc\n"
        "#EXTINF:6.0,\nHTTPS://ASSETS.TEST/media/v1/360p/seg2.ts\n"
    )
    lines = rewrite_manifest(text, ENDPOINT, "360p/", asset_base_url=ASSET_BASE, asset_path=ASSET_PATH).split("\n")

    assert lines[2] == f"{ENDPOINT}?path=360p/seg0.ts"
    assert lines[4] == f"{ENDPOINT}?path=360p/seg1.ts%3Ftoken%3Dabc"
    assert lines[6] == f"{ENDPOINT}?path=360p/seg2.ts"


@pytest.mark.parametrize("entry", ["/other/video/seg0.ts", "https://assets.test/elsewhere/seg0.ts"])
def test_entries_outside_the_asset_directory_are_rejected(entry):
    with pytest.raises(ManifestRewriteFailure):
        rewrite_manifest(f"#EXTM3U\n{entry}\n", ENDPOINT, asset_base_url=ASSET_BASE, asset_path=ASSET_PATH)


def test_root_relative_entry_without_asset_location_is_rejected():
    with pytest.raises(ManifestRewriteFailure):
        rewrite_manifest("#EXTM3U\n/media/v1/seg0.ts\n", ENDPOINT)


@pytest.mark.parametrize("uri, expected", [
    ("seg0.ts", "360p/seg0.ts"),
    ("../audio/a.ts", "audio/a.ts"),
    ("/media/v1/360p/seg0.ts", "360p/seg0.ts"),
    ("https://assets.test/media/v1/x.m3u8?v=2", "x.m3u8?v=2"),
    ("https://cdn.example.com/x.ts", None),
])
def test_relay_target(uri, expected):
    assert relay_target(uri, "360p/", ASSET_BASE, ASSET_PATH) == expected
