import pytest

from playlist_archiver.resolver import (
    item_url,
    playlist_url,
    resolve_item_id,
    resolve_playlist_id,
)


@pytest.mark.parametrize(
    "reference, expected",
    [
        ("https://www.youtube.com/playlist?list=PLabc_123-x", "PLabc_123-x"),
        ("https://www.youtube.com/watch?v=abc123&list=PLxyz", "PLxyz"),
        ("https://music.youtube.com/playlist?list=OLAK5uy_k&si=share", "OLAK5uy_k"),
    ],
)
def test_resolve_playlist_id(reference, expected):
    assert resolve_playlist_id(reference) == expected


@pytest.mark.parametrize(
    "reference",
    [
        "https://www.youtube.com/watch?v=abc123",
        "https://www.youtube.com/playlist?playlist=PL123",
        "not a link",
        "",
    ],
)
def test_resolve_playlist_id_without_list_parameter(reference):
    assert resolve_playlist_id(reference) is None


@pytest.mark.parametrize(
    "reference, expected",
    [
        ("https://www.youtube.com/watch?v=dQw4w9WgXcQ", "dQw4w9WgXcQ"),
        ("https://www.youtube.com/watch?list=PL1&v=dQw4w9WgXcQ&t=42", "dQw4w9WgXcQ"),
        ("https://youtu.be/dQw4w9WgXcQ?si=abc", "dQw4w9WgXcQ"),
        ("  dQw4w9WgXcQ  ", "dQw4w9WgXcQ"),
    ],
)
def test_resolve_item_id(reference, expected):
    assert resolve_item_id(reference) == expected


def test_resolve_item_id_invalid():
    assert resolve_item_id("https://example.com/nothing") is None
    assert resolve_item_id("short") is None


def test_urls():
    assert item_url("abc") == "https://www.youtube.com/watch?v=abc"
    assert playlist_url("PL1") == "https://www.youtube.com/playlist?list=PL1"
