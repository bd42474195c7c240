from unittest.mock import MagicMock

import pytest
import requests

from playlist_archiver.adapters.http_fetcher import HttpFetcher
from playlist_archiver.domain.errors import ItemErrorKind


@pytest.fixture
def session():
    """A requests session whose get() yields a mocked streaming response."""
    mock_session = MagicMock(spec=requests.Session)
    response = MagicMock()
    response.iter_content.return_value = [b"abc", b"", b"def"]
    mock_session.get.return_value.__enter__.return_value = response
    return mock_session, response


def test_fetch_writes_all_chunks(session, tmp_path):
    mock_session, response = session
    destination = tmp_path / "work" / "abc.webm"

    result = HttpFetcher(timeout=12, session=mock_session).fetch(
        "https://cdn.test/abc", destination, {"User-Agent": "yt"}
    )

    assert result.is_right()
    assert result.value == destination
    assert destination.read_bytes() == b"abcdef"
    mock_session.get.assert_called_once_with(
        "https://cdn.test/abc", headers={"User-Agent": "yt"}, stream=True, timeout=12
    )
    response.raise_for_status.assert_called_once()
    # the response context manager was exited
    mock_session.get.return_value.__exit__.assert_called_once()


def test_fetch_http_error_is_network(session, tmp_path, caplog):
    mock_session, response = session
    response.raise_for_status.side_effect = requests.HTTPError("403 Forbidden")
    destination = tmp_path / "abc.webm"

    result = HttpFetcher(session=mock_session).fetch("https://cdn.test/abc", destination)

    error, _ = result.monoid
    assert error.kind is ItemErrorKind.NETWORK
    assert not destination.exists()
    assert "Network error while fetching 'abc.webm'" in caplog.text


def test_fetch_interrupted_stream_removes_partial_file(session, tmp_path):
    """
    Given a stream that breaks after the first chunk,
    When the fetch fails,
    Then no partial file is left behind.
    """
    mock_session, response = session

    def broken_stream(chunk_size):
        yield b"abc"
        raise requests.ConnectionError("connection reset")

    response.iter_content.side_effect = broken_stream
    destination = tmp_path / "abc.webm"

    result = HttpFetcher(session=mock_session).fetch("https://cdn.test/abc", destination)

    error, _ = result.monoid
    assert error.kind is ItemErrorKind.NETWORK
    assert not destination.exists()


def test_fetch_unwritable_destination_is_io(session, tmp_path):
    mock_session, _ = session
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("file")

    result = HttpFetcher(session=mock_session).fetch("https://cdn.test/abc", blocker / "abc.webm")

    error, _ = result.monoid
    assert error.kind is ItemErrorKind.IO
