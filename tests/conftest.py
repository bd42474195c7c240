import logging
from pathlib import Path

import pytest
from pymonad.either import Left, Right

from playlist_archiver.adapters.zip_archiver import ZipArchiver
from playlist_archiver.domain.errors import ItemError, ItemErrorKind
from playlist_archiver.domain.models import ItemMetadata, PlaylistInfo, StreamHandle
from playlist_archiver.domain.ports import Fetcher, PlaylistSource, StreamExtractor, TagReader, Transcoder
from playlist_archiver.i18n import set_lang
from playlist_archiver.orchestrator import PlaylistArchiver

PLAYLIST_URL = "https://x.test/playlist?list=PL123"


@pytest.fixture(autouse=True)
def english_messages():
    """Run messages are asserted in English whatever the machine locale."""
    set_lang("en")
    yield
    set_lang("en")


@pytest.fixture(autouse=True)
def capture_all_logs(caplog):
    caplog.set_level(logging.DEBUG)


def negotiated(item_id, title=None):
    """A successful negotiation result for `item_id`."""
    metadata = ItemMetadata(
        item_id=item_id,
        title=title or f"Song {item_id}",
        source_url=f"https://www.youtube.com/watch?v={item_id}",
        cover_url=f"https://i.ytimg.com/vi/{item_id}/hqdefault.jpg",
    )
    handle = StreamHandle(item_id=item_id, url=f"https://cdn.test/{item_id}", media_kind="webm")
    return Right((metadata, handle))


class FakePlaylistSource(PlaylistSource):
    def __init__(self, result):
        self.result = result
        self.calls = []

    def expand(self, playlist_id):
        self.calls.append(playlist_id)
        return self.result


class FakeExtractor(StreamExtractor):
    """Returns the outcome registered for each reference; ids derive from `v=`."""

    def __init__(self, outcomes=None):
        self.outcomes = outcomes or {}
        self.calls = []

    def negotiate(self, reference):
        self.calls.append(reference)
        if reference in self.outcomes:
            return self.outcomes[reference]
        return negotiated(reference.rsplit("v=", 1)[-1])


class FakeFetcher(Fetcher):
    def __init__(self, failures=None):
        self.failures = failures or {}
        self.calls = []

    def fetch(self, url, destination, headers=None):
        self.calls.append(url)
        if url in self.failures:
            return Left(self.failures[url])
        Path(destination).write_bytes(b"raw stream")
        return Right(Path(destination))


class FakeTranscoder(Transcoder):
    def __init__(self, failures=None):
        self.failures = failures or {}
        self.calls = []

    def transcode(self, raw_file, target_file, metadata):
        self.calls.append((raw_file, target_file, metadata))
        if metadata.item_id in self.failures:
            return Left(self.failures[metadata.item_id])
        target_file.write_bytes(b"encoded audio")
        return Right(target_file)


class FakeTagReader(TagReader):
    """Returns the comment registered for a file name, None otherwise."""

    def __init__(self, comments=None):
        self.comments = comments or {}

    def get_comment(self, file_path):
        return self.comments.get(Path(file_path).name)


class FailingArchiver(ZipArchiver):
    def __init__(self, error):
        super().__init__()
        self.error = error
        self.calls = 0

    def archive(self, source_dir, archive_path):
        self.calls += 1
        return Left(self.error)


def item_refs(*ids):
    return tuple(f"https://www.youtube.com/watch?v={i}" for i in ids)


@pytest.fixture
def playlist():
    return PlaylistInfo(playlist_id="PL123", title="Road Trip", items=item_refs("aaa", "bbb", "ccc"))


@pytest.fixture
def components(playlist):
    """Default collaborators: every item succeeds."""
    return {
        "playlist_source": FakePlaylistSource(Right(playlist)),
        "extractor": FakeExtractor(),
        "fetcher": FakeFetcher(),
        "transcoder": FakeTranscoder(),
        "archiver": ZipArchiver(),
        "tag_reader": FakeTagReader(),
    }


@pytest.fixture
def make_archiver(tmp_path, components):
    def _make(**overrides):
        parts = dict(components, **overrides)
        return PlaylistArchiver(music_root=tmp_path / "Music", **parts)
    return _make


def timeout_error():
    return Left(ItemError("Extraction timed out after 30s.", ItemErrorKind.TIMEOUT))
