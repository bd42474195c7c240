import pytest
from typer.testing import CliRunner
from pymonad.either import Right, Left

from conftest import PLAYLIST_URL, FakeExtractor, timeout_error
from playlist_archiver.cli import app, build_archiver
from playlist_archiver.config import Settings
from playlist_archiver.domain.errors import AuthenticationError

runner = CliRunner()


@pytest.fixture
def patched_build(mocker, make_archiver):
    """Replaces the production wiring with an archiver built on fakes."""

    def _patch(**overrides):
        archiver = make_archiver(**overrides)
        return mocker.patch("playlist_archiver.cli.build_archiver", return_value=Right(archiver))

    return _patch


def test_download_success(patched_build, tmp_path):
    """
    Given a playlist whose items all succeed,
    When the download command runs,
    Then it exits 0 and prints the archive path.
    """
    patched_build()

    result = runner.invoke(app, ["download", PLAYLIST_URL])

    assert result.exit_code == 0
    assert "Download complete" in result.stdout
    assert (tmp_path / "Music" / "Road Trip.zip").exists()


def test_download_reports_skipped_items(patched_build):
    bbb = "https://www.youtube.com/watch?v=bbb"
    patched_build(extractor=FakeExtractor({bbb: timeout_error()}))

    result = runner.invoke(app, ["download", PLAYLIST_URL])

    assert result.exit_code == 0
    assert "1 item(s) skipped." in result.stdout
    assert "timed out" in result.stdout


def test_download_invalid_link_exits_with_error(patched_build):
    patched_build()

    result = runner.invoke(app, ["download", "https://x.test/no-playlist-here"])

    assert result.exit_code == 1
    assert "Invalid playlist URL" in result.stdout


def test_download_invalid_format_is_config_error(mocker):
    mock_build = mocker.patch("playlist_archiver.cli.build_archiver")

    result = runner.invoke(app, ["download", PLAYLIST_URL, "--format", "flac"])

    assert result.exit_code == 1
    assert "Invalid configuration" in result.stdout
    mock_build.assert_not_called()


def test_download_passes_cli_overrides(mocker, tmp_path):
    """
    Given a config file and command line options,
    When the command runs,
    Then options override the file before the archiver is built.
    """
    config = tmp_path / "config.yaml"
    config.write_text("audio_quality: 128\nsource: youtube-api\n", encoding="utf-8")
    mock_build = mocker.patch(
        "playlist_archiver.cli.build_archiver",
        return_value=Left(AuthenticationError("File 'client_secret.json' not found.")),
    )

    result = runner.invoke(
        app,
        ["download", PLAYLIST_URL, "-c", str(config), "-o", str(tmp_path / "Out"), "-f", "m4a", "--timeout", "5"],
    )

    assert result.exit_code == 1
    assert "Authentication failed" in result.stdout
    settings = mock_build.call_args[0][0]
    assert settings.music_root == tmp_path / "Out"
    assert settings.audio_format == "m4a"
    assert settings.audio_quality == "128"
    assert settings.source == "youtube-api"
    assert settings.negotiation_timeout == 5.0


def test_download_in_french(patched_build):
    patched_build()

    result = runner.invoke(app, ["--lang", "fr", "download", "https://x.test/nothing"])

    assert result.exit_code == 1
    assert "URL de playlist invalide" in result.stdout


def test_build_archiver_defaults_to_ytdlp_source(mocker):
    mock_source = mocker.patch("playlist_archiver.cli.YTDLPPlaylistSource")

    result = build_archiver(Settings(negotiation_timeout=12.0))

    assert result.is_right()
    mock_source.assert_called_once_with(timeout=12.0)


def test_build_archiver_with_api_key(mocker):
    mock_source = mocker.patch("playlist_archiver.cli.YouTubeApiPlaylistSource")
    mock_credentials = mocker.patch("playlist_archiver.cli.get_credentials")

    result = build_archiver(Settings(source="youtube-api", api_key="KEY"))

    assert result.is_right()
    mock_source.assert_called_once_with(api_key="KEY")
    mock_credentials.assert_not_called()


def test_build_archiver_propagates_auth_failure(mocker):
    mocker.patch(
        "playlist_archiver.cli.get_credentials",
        return_value=Left(AuthenticationError("File 'client_secret.json' not found.")),
    )

    result = build_archiver(Settings(source="youtube-api"))

    assert result.is_left()
    error, _ = result.monoid
    assert isinstance(error, AuthenticationError)
