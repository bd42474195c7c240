import logging
import os
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import requests
from pymonad.either import Either, Left, Right

from ..domain.errors import ItemError, ItemErrorKind
from ..domain.models import ItemMetadata
from ..domain.ports import Transcoder
from .mutagen_adapter import MutagenAdapter

logger = logging.getLogger(__name__)

# extension -> (ffmpeg audio codec, ffmpeg muxer)
CODECS: Dict[str, Tuple[str, str]] = {
    "mp3": ("libmp3lame", "mp3"),
    "m4a": ("aac", "ipod"),
}

INVALID_INPUT_MARKERS = (
    "Invalid data found when processing input",
    "could not find codec parameters",
    "does not contain any stream",
)


def temporary_path(target_file: Path) -> Path:
    """Hidden sibling of `target_file` used while the file is being written."""
    return target_file.with_name(f".{target_file.stem}.partial{target_file.suffix}")


class FFmpegTranscoder(Transcoder):
    """
    Converts downloaded streams to audio files with the ffmpeg binary, then
    tags them with Mutagen.

    The output is written next to the target under a hidden name and renamed
    into place once complete, so an interrupted item never leaves a file
    under its final name.
    """

    def __init__(
        self,
        quality: str = "192",
        ffmpeg_path: str = "ffmpeg",
        tagger: Optional[MutagenAdapter] = None,
        session: Optional[requests.Session] = None,
        cover_timeout: float = 10.0,
    ):
        self._quality = quality
        self._ffmpeg = ffmpeg_path
        self._tagger = tagger or MutagenAdapter()
        self._session = session or requests.Session()
        self._cover_timeout = cover_timeout

    def _command(self, raw_file: Path, output: Path, codec: str, muxer: str) -> List[str]:
        return [
            self._ffmpeg,
            "-y",
            "-hide_banner",
            "-loglevel", "error",
            "-i", str(raw_file),
            "-vn",
            "-codec:a", codec,
            "-b:a", f"{self._quality}k",
            "-f", muxer,
            str(output),
        ]

    def _download_cover(self, cover_url: str) -> Optional[bytes]:
        try:
            response = self._session.get(cover_url, timeout=self._cover_timeout)
            response.raise_for_status()
            return response.content
        except requests.RequestException as e:
            logger.warning(f"Could not download cover art '{cover_url}': {e}")
            return None

    def _run_ffmpeg(self, command: List[str]) -> Either[ItemError, None]:
        try:
            completed = subprocess.run(command, capture_output=True, text=True, check=False)
        except FileNotFoundError:
            logger.error(f"ffmpeg executable '{self._ffmpeg}' not found.")
            return Left(ItemError(f"ffmpeg executable '{self._ffmpeg}' not found.", ItemErrorKind.TOOL_FAILURE))
        except OSError as e:
            logger.error(f"Could not start ffmpeg: {e}")
            return Left(ItemError(f"Could not start ffmpeg: {e}", ItemErrorKind.TOOL_FAILURE))

        if completed.returncode == 0:
            return Right(None)

        stderr = (completed.stderr or "").strip()
        if any(marker in stderr for marker in INVALID_INPUT_MARKERS):
            logger.warning(f"ffmpeg rejected the input: {stderr}")
            return Left(ItemError(f"Unsupported input format: {stderr}", ItemErrorKind.UNSUPPORTED_FORMAT))
        logger.warning(f"ffmpeg failed with exit code {completed.returncode}: {stderr}")
        return Left(ItemError(f"ffmpeg exited with code {completed.returncode}: {stderr}", ItemErrorKind.TOOL_FAILURE))

    def transcode(
        self, raw_file: Path, target_file: Path, metadata: ItemMetadata
    ) -> Either[ItemError, Path]:
        """
        Converts `raw_file` into `target_file` and embeds the item's tags.

        A cover that cannot be downloaded or embedded is skipped; the file is
        still produced.

        Returns:
            Either: A Right(target_file) or a Left(ItemError).
        """
        extension = target_file.suffix.lstrip(".").lower()
        if extension not in CODECS:
            return Left(ItemError(f"Unsupported target format '{extension}'.", ItemErrorKind.UNSUPPORTED_FORMAT))

        codec, muxer = CODECS[extension]
        partial = temporary_path(target_file)
        logger.debug(f"Transcoding '{raw_file.name}' to '{target_file.name}'.")

        try:
            result = self._run_ffmpeg(self._command(raw_file, partial, codec, muxer))
            if result.is_left():
                return result

            cover = self._download_cover(metadata.cover_url) if metadata.cover_url else None
            if not self._tagger.write_tags(partial, metadata.title, metadata.source_url, cover) and cover:
                # Retry without the cover.
                self._tagger.write_tags(partial, metadata.title, metadata.source_url)

            os.replace(partial, target_file)
        except OSError as e:
            logger.warning(f"I/O error while producing '{target_file}': {e}")
            return Left(ItemError(f"I/O error: {e}", ItemErrorKind.IO))
        finally:
            partial.unlink(missing_ok=True)

        logger.info(f"Created '{target_file}'.")
        return Right(target_file)
