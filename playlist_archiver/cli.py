import logging
from pathlib import Path
from typing import Optional

import typer
from pymonad.either import Either, Right
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn

from .adapters.ffmpeg_transcoder import FFmpegTranscoder
from .adapters.http_fetcher import HttpFetcher
from .adapters.mutagen_adapter import MutagenAdapter
from .adapters.youtube_api import YouTubeApiPlaylistSource
from .adapters.ytdlp_adapter import YTDLPPlaylistSource, YTDLPStreamExtractor
from .adapters.zip_archiver import ZipArchiver
from .auth import get_credentials
from .config import Settings, load_settings, validate_settings
from .domain.errors import AppError, AuthenticationError
from .domain.ports import PlaylistSource
from .i18n import get_message, set_lang
from .logger_config import setup_logger
from .orchestrator import PlaylistArchiver

# Initialization
console = Console()
logger = logging.getLogger(__name__)

app = typer.Typer(
    name="playlist-archiver",
    help="Download a YouTube playlist as tagged audio files packed in a zip archive.",
    add_completion=False,
)


@app.callback()
def main_callback(
    lang: Optional[str] = typer.Option(
        None,
        "--lang",
        help=get_message("help_lang"),
        show_default=False,
    ),
):
    """Download YouTube playlists from the command line."""
    if lang:
        set_lang(lang)
        logger.info(f"Language explicitly set to: {lang}")


# --- Helper Functions ---


def _handle_error(error: AppError) -> None:
    """Displays a formatted error message and exits the application."""
    console.print(f"[bold red]{get_message('download_error', error=error.message)}[/bold red]")
    raise typer.Exit(code=1)


def _playlist_source(settings: Settings) -> Either[AppError, PlaylistSource]:
    if settings.source == "ytdlp":
        return Right(YTDLPPlaylistSource(timeout=settings.negotiation_timeout))
    if settings.api_key:
        return Right(YouTubeApiPlaylistSource(api_key=settings.api_key))
    return get_credentials(settings.token_file, settings.client_secrets_file).map(
        lambda creds: YouTubeApiPlaylistSource(credentials=creds)
    )


def build_archiver(settings: Settings) -> Either[AppError, PlaylistArchiver]:
    """Wires the production adapters into a PlaylistArchiver."""
    tagger = MutagenAdapter()
    return _playlist_source(settings).map(
        lambda source: PlaylistArchiver(
            playlist_source=source,
            extractor=YTDLPStreamExtractor(timeout=settings.negotiation_timeout),
            fetcher=HttpFetcher(timeout=settings.fetch_timeout),
            transcoder=FFmpegTranscoder(quality=settings.audio_quality, tagger=tagger),
            archiver=ZipArchiver(),
            tag_reader=tagger,
            music_root=settings.music_root,
            audio_format=settings.audio_format,
        )
    )


def _run_with_progress(archiver: PlaylistArchiver, url: str):
    """Runs the download on its worker thread and renders its progress."""
    with Progress(
        SpinnerColumn(),
        TextColumn("{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=console,
    ) as progress:
        task = progress.add_task(get_message("preparing_download"), total=None)

        def on_progress(completed: int, total: int) -> None:
            progress.update(
                task,
                completed=completed,
                total=total,
                description=get_message("progress", completed=completed, total=total),
            )

        def on_complete(archive_path: str) -> None:
            console.print(f"[bold green]✓ {get_message('download_complete', archive_path=archive_path)}[/bold green]")

        def on_error(message: str) -> None:
            console.print(f"[bold red]✗ {get_message('download_error', error=message)}[/bold red]")

        handle = archiver.start(url, on_progress=on_progress, on_complete=on_complete, on_error=on_error)
        try:
            while handle.is_alive():
                handle.wait(0.2)
        except KeyboardInterrupt:
            console.print(f"[yellow]{get_message('cancelling')}[/yellow]")
            handle.cancel()
            handle.wait()
    return handle


# --- CLI Commands ---


@app.command(name="download")
def download_playlist(
    url: str = typer.Argument(..., help=get_message("help_download_url")),
    music_root: Optional[Path] = typer.Option(
        None, "--music-root", "-o", help=get_message("help_music_root"),
        file_okay=False, dir_okay=True,
    ),
    audio_format: Optional[str] = typer.Option(
        None, "--format", "-f", help=get_message("help_format")
    ),
    quality: Optional[str] = typer.Option(
        None, "--quality", "-q", help=get_message("help_quality")
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help=get_message("help_config"),
        exists=True, file_okay=True, dir_okay=False, readable=True,
    ),
    api_key: Optional[str] = typer.Option(
        None, "--api-key", help=get_message("help_api_key")
    ),
    source: Optional[str] = typer.Option(
        None, "--source", help=get_message("help_source")
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help=get_message("help_timeout")
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help=get_message("help_verbose")),
):
    """Downloads a YouTube playlist as audio files and zips them."""
    setup_logger(logging.DEBUG if verbose else logging.WARNING)
    logger.info(f"Command 'download' initiated for URL: {url}")

    settings = (
        load_settings(config_file)
        .map(lambda s: s.merge(
            music_root=music_root,
            audio_format=audio_format,
            audio_quality=quality,
            api_key=api_key,
            source=source,
            negotiation_timeout=timeout,
        ))
        .bind(validate_settings)
    )
    if settings.is_left():
        error, _ = settings.monoid
        _handle_error(AppError(get_message("config_error", error=error.message)))

    built = settings.bind(build_archiver)
    if built.is_left():
        error, _ = built.monoid
        if isinstance(error, AuthenticationError):
            error = AppError(get_message("auth_error", error=error.message))
        _handle_error(error)

    handle = _run_with_progress(built.value, url)
    result = handle.result
    if handle.skipped:
        console.print(f"[yellow]{get_message('items_skipped', count=len(handle.skipped))}[/yellow]")
        for reference, error in handle.skipped:
            console.print(f"  - [yellow]{reference}[/yellow]: {error.message}")

    if result is None or not result.succeeded:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
