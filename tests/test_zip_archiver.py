import zipfile

from playlist_archiver.adapters.zip_archiver import ZipArchiver


def _folder(tmp_path):
    folder = tmp_path / "Music" / "Road Trip"
    folder.mkdir(parents=True)
    (folder / "Song A.mp3").write_bytes(b"a" * 64)
    (folder / "Song B.mp3").write_bytes(b"b" * 64)
    (folder / ".Song C.partial.mp3").write_bytes(b"partial")
    return folder


def test_archive_contains_folder_entries(tmp_path, caplog):
    """
    Given a playlist folder with two finished files and one partial file,
    When it is archived,
    Then the zip holds the finished files under the folder name.
    """
    folder = _folder(tmp_path)
    archive_path = folder.parent / "Road Trip.zip"

    result = ZipArchiver().archive(folder, archive_path)

    assert result.is_right()
    assert result.value == archive_path
    with zipfile.ZipFile(archive_path) as zf:
        assert sorted(zf.namelist()) == ["Road Trip/Song A.mp3", "Road Trip/Song B.mp3"]
        assert zf.read("Road Trip/Song A.mp3") == b"a" * 64
        assert all(info.compress_type == zipfile.ZIP_DEFLATED for info in zf.infolist())
    assert not (folder.parent / ".Road Trip.zip.partial").exists()
    assert "with 2 file(s)" in caplog.text


def test_archive_replaces_previous_archive(tmp_path):
    folder = _folder(tmp_path)
    archive_path = folder.parent / "Road Trip.zip"
    archive_path.write_bytes(b"stale")

    ZipArchiver().archive(folder, archive_path)

    with zipfile.ZipFile(archive_path) as zf:
        assert len(zf.namelist()) == 2


def test_archive_failure_is_packaging_error(tmp_path, caplog):
    folder = _folder(tmp_path)

    result = ZipArchiver().archive(folder, tmp_path / "missing" / "Road Trip.zip")

    assert result.is_left()
    error, _ = result.monoid
    assert error.message
    assert "Could not create archive" in caplog.text
