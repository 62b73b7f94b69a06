import pytest

from app.modules.catalog.errors import AssetPathUnresolvable
from app.modules.catalog.normalize import derive_asset_location, normalize_folder, normalize_video


@pytest.mark.parametrize("url, expected", [
    ("https://assets.test/media/v1/poster.png", ("https://assets.test", "/media/v1")),
    ("https://cdn.example.com/a/b/c/thumb.JPG?v=3", ("https://cdn.example.com", "/a/b/c")),
    ("http://host:8080/x/poster.webp", ("http://host:8080", "/x")),
])
def test_derive_asset_location(url, expected):
    assert derive_asset_location(url, "v1") == expected


@pytest.mark.parametrize("url", [None, "", "not a url", "https://assets.test/poster.png", "https://assets.test/media/v1/clip.mp4"])
def test_derive_asset_location_rejects_unusable_urls(url):
    with pytest.raises(AssetPathUnresolvable):
        derive_asset_location(url, "v1")


def test_normalize_video_fills_defaults_and_asset_location():
    video = normalize_video(
        {"id": 42, "name": "  Clip ", "duration": "61.7", "views": -5, "size": "2048", "tags": "a, b,,c",
         "poster": "https://assets.test/media/42/poster.png", "createdAt": "2024-01-01"},
        "f9",
    )
    assert video.id == "42"
    assert video.title == "Clip"
    assert video.duration == 61
    assert video.views == 0
    assert video.size_bytes == 2048
    assert video.tags == ("a", "b", "c")
    assert video.folder_id == "f9"
    assert video.created_at == "2024-01-01"
    assert (video.asset_base_url, video.asset_path) == ("https://assets.test", "/media/42")
    assert video.streamable


def test_video_without_poster_is_kept_but_not_streamable():
    video = normalize_video({"id": "v4"}, "f2")
    assert video.title == "Untitled"
    assert video.asset_path is None
    assert not video.streamable


def test_normalize_video_requires_an_id():
    with pytest.raises(KeyError):
        normalize_video({"title": "orphan"}, "f1")


def test_normalize_folder_trims_and_defaults():
    assert normalize_folder({"id": 1, "name": "  Music "}).name == "Music"
    folder = normalize_folder({"id": "f2", "name": "   ", "videoCount": "7"})
    assert folder.name == "Unnamed Folder"
    assert folder.video_count == 7
