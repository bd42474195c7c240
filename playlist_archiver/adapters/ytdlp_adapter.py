import json
import logging
import subprocess
import sys
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import yt_dlp
from yt_dlp.utils import DownloadError
from pymonad.either import Either, Left, Right

from ..domain.errors import ExpansionError, ExpansionErrorKind, ItemError, ItemErrorKind
from ..domain.models import ItemMetadata, PlaylistInfo, StreamHandle, StreamVariant
from ..domain.ports import PlaylistSource, StreamExtractor
from ..resolver import item_url, playlist_url, resolve_item_id
from .youtube_api import DEFAULT_PLAYLIST_TITLE

logger = logging.getLogger(__name__)

# Runs the installed yt-dlp in a child process that can be killed on timeout.
YTDLP_COMMAND = (sys.executable, "-m", "yt_dlp")

# Manifest protocols (m3u8, dash segments) cannot be fetched as a single file.
DIRECT_PROTOCOLS = ("http", "https")


def _base_opts(socket_timeout: float) -> Dict[str, Any]:
    return {
        "quiet": True,
        "no_warnings": True,
        "noprogress": True,
        "socket_timeout": socket_timeout,
    }


def to_variants(formats: Iterable[Dict[str, Any]]) -> List[StreamVariant]:
    """
    Converts yt-dlp format dictionaries into stream variants, keeping their
    order. Formats without a URL, or served through a manifest protocol,
    are left out.
    """
    variants = []
    for fmt in formats:
        url = fmt.get("url")
        if not url:
            continue
        protocol = fmt.get("protocol")
        if protocol and protocol not in DIRECT_PROTOCOLS:
            continue
        vcodec = fmt.get("vcodec")
        variants.append(
            StreamVariant(
                format_id=str(fmt.get("format_id", "")),
                url=url,
                ext=fmt.get("ext") or "bin",
                # Missing vcodec means yt-dlp could not tell; treat it as video.
                has_video=vcodec != "none",
                audio_bitrate=float(fmt.get("abr") or 0),
            )
        )
    return variants


def select_audio_variant(variants: Iterable[StreamVariant]) -> Optional[StreamVariant]:
    """
    Picks the stream to download: the audio-only variant with the highest
    positive bitrate. Among equal bitrates, the first one in the order the
    backend returned them wins.
    """
    candidates = [v for v in variants if v.is_audio_only]
    if not candidates:
        return None
    return max(candidates, key=lambda v: v.audio_bitrate)


def _cover_url(info: Dict[str, Any]) -> Optional[str]:
    if info.get("thumbnail"):
        return info["thumbnail"]
    thumbnails = info.get("thumbnails") or []
    # yt-dlp sorts thumbnails by preference, best last
    for thumb in reversed(thumbnails):
        if thumb.get("url"):
            return thumb["url"]
    return None


class YTDLPStreamExtractor(StreamExtractor):
    """
    Negotiates item metadata and an audio-only stream URL with yt-dlp.

    Each extraction runs `yt-dlp -J` in a child process. When it does not
    answer within `timeout` seconds the process is killed and reaped, so
    nothing from a timed-out item is left running when the next one starts.
    """

    def __init__(self, timeout: float = 30.0, command: Sequence[str] = YTDLP_COMMAND):
        self._timeout = timeout
        self._executable = list(command)

    def _command(self, url: str) -> List[str]:
        return self._executable + [
            "-J",
            "--no-playlist",
            "--no-warnings",
            "--socket-timeout", f"{self._timeout:g}",
            url,
        ]

    def _extract_info(self, url: str) -> Either[ItemError, Optional[Dict[str, Any]]]:
        try:
            process = subprocess.Popen(
                self._command(url),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            logger.error(f"Could not start yt-dlp: {e}")
            return Left(ItemError(f"Could not start yt-dlp: {e}", ItemErrorKind.TOOL_FAILURE))

        try:
            stdout, stderr = process.communicate(timeout=self._timeout)
        except subprocess.TimeoutExpired:
            process.kill()
            process.communicate()
            logger.warning(f"Negotiation for '{url}' timed out after {self._timeout}s.")
            return Left(ItemError(f"Extraction timed out after {self._timeout}s.", ItemErrorKind.TIMEOUT))

        stderr = (stderr or "").strip()
        if process.returncode != 0 and not (stdout or "").strip():
            logger.warning(f"Extraction failed for '{url}': {stderr}")
            return Left(ItemError(f"Extraction failed: {stderr}", ItemErrorKind.NO_METADATA))
        try:
            return Right(json.loads(stdout))
        except json.JSONDecodeError as e:
            logger.warning(f"Unreadable metadata for '{url}': {e}")
            return Left(ItemError(f"Unreadable metadata: {e}", ItemErrorKind.NO_METADATA))

    def negotiate(self, reference: str) -> Either[ItemError, Tuple[ItemMetadata, StreamHandle]]:
        """
        Returns the metadata and audio stream of one playlist item.

        Returns:
            Either: A Right((ItemMetadata, StreamHandle)) or a Left(ItemError).
        """
        item_id = resolve_item_id(reference)
        if item_id is None:
            logger.warning(f"Skipping invalid video URL: {reference}")
            return Left(ItemError(f"Invalid video URL: {reference}", ItemErrorKind.INVALID_REFERENCE))

        url = item_url(item_id)
        logger.debug(f"Negotiating stream for '{url}'.")
        extracted = self._extract_info(url)
        if extracted.is_left():
            return extracted

        info = extracted.value
        if not info:
            logger.warning(f"Skipping video with no metadata: {url}")
            return Left(ItemError(f"No metadata returned for '{url}'.", ItemErrorKind.NO_METADATA))

        variant = select_audio_variant(to_variants(info.get("formats") or []))
        if variant is None:
            logger.warning(f"Skipping video with no audio stream: {url}")
            return Left(ItemError(f"No audio-only stream for '{url}'.", ItemErrorKind.NO_AUDIO_STREAM))

        # Formats carry the headers the stream URL must be fetched with.
        headers = next(
            (f.get("http_headers") for f in info.get("formats", []) if f.get("format_id") == variant.format_id),
            None,
        ) or {}

        metadata = ItemMetadata(
            item_id=info.get("id") or item_id,
            title=info.get("title") or item_id,
            source_url=info.get("webpage_url") or url,
            cover_url=_cover_url(info),
        )
        handle = StreamHandle(
            item_id=metadata.item_id,
            url=variant.url,
            media_kind=variant.ext,
            headers=dict(headers),
        )
        logger.info(f"Selected format '{variant.format_id}' ({variant.audio_bitrate:g} kbps) for '{metadata.title}'.")
        return Right((metadata, handle))


class YTDLPPlaylistSource(PlaylistSource):
    """Expands playlists with yt-dlp's flat extraction; no API key required."""

    def __init__(self, timeout: float = 30.0):
        self._timeout = timeout

    def expand(self, playlist_id: str) -> Either[ExpansionError, PlaylistInfo]:
        url = playlist_url(playlist_id)
        logger.info(f"Retrieving playlist '{playlist_id}' with yt-dlp.")
        opts = dict(_base_opts(self._timeout), extract_flat=True)
        try:
            with yt_dlp.YoutubeDL(opts) as ydl:
                info = ydl.extract_info(url, download=False)
        except DownloadError as e:
            message = str(e)
            logger.error(f"Could not fetch playlist info: {message}")
            if "does not exist" in message or "not found" in message.lower():
                return Left(ExpansionError(f"Playlist '{playlist_id}' not found.", ExpansionErrorKind.NOT_FOUND))
            return Left(ExpansionError(f"Could not fetch playlist info: {message}", ExpansionErrorKind.SOURCE_UNAVAILABLE))

        if not info:
            return Left(ExpansionError(f"Playlist '{playlist_id}' not found.", ExpansionErrorKind.NOT_FOUND))

        urls = []
        for entry in info.get("entries") or []:
            if not entry:
                continue
            reference = entry.get("url") or entry.get("id")
            if reference:
                urls.append(reference)

        if not urls:
            logger.error(f"Playlist '{playlist_id}' has no videos.")
            return Left(ExpansionError(f"Playlist '{playlist_id}' is empty.", ExpansionErrorKind.EMPTY_PLAYLIST))

        title = info.get("title") or DEFAULT_PLAYLIST_TITLE
        logger.info(f"Playlist '{title}' contains {len(urls)} videos.")
        return Right(PlaylistInfo(playlist_id=playlist_id, title=title, items=tuple(urls)))
