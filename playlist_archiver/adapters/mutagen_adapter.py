import logging
from pathlib import Path
from typing import Optional

from mutagen import MutagenError
from mutagen.id3 import APIC, COMM, ID3, ID3NoHeaderError, TIT2
from mutagen.mp4 import MP4, MP4Cover

from ..domain.ports import TagReader

logger = logging.getLogger(__name__)


def _image_mime(data: bytes) -> str:
    return "image/png" if data.startswith(b"\x89PNG") else "image/jpeg"


class MutagenAdapter(TagReader):
    """
    Adapter for reading and writing audio tags using Mutagen.

    MP3 files carry ID3 frames; M4A files carry MP4 atoms. The source URL of
    each item is stored in the comment tag so a later run can tell whether a
    file on disk came from the same video.
    """

    def get_comment(self, file_path: Path) -> Optional[str]:
        """
        Reads the comment tag from an audio file.

        Returns:
            The content of the comment tag, or None if not found or on error.
        """
        if not file_path.exists():
            return None

        try:
            if file_path.suffix.lower() == ".m4a":
                tags = MP4(file_path).tags
                comments = tags.get("\xa9cmt") if tags else None
                return comments[0] if comments else None

            audio = ID3(file_path)
            comment_frames = audio.getall("COMM")
            if comment_frames:
                return comment_frames[0].text[0]
            return None
        except ID3NoHeaderError:
            logger.warning(
                f"File '{file_path}' does not have an ID3 header. Cannot read comment."
            )
            return None
        except Exception as e:
            logger.error(f"Error reading comment from '{file_path}': {e}")
            return None

    def write_tags(
        self, file_path: Path, title: str, source_url: str, cover: Optional[bytes] = None
    ) -> bool:
        """
        Writes the title, the source URL and, when given, the cover art.

        Returns:
            True when the tags were saved, False otherwise. Failures are logged,
            never raised: an untagged file is still a usable file.
        """
        try:
            if file_path.suffix.lower() == ".m4a":
                self._write_mp4(file_path, title, source_url, cover)
            else:
                self._write_id3(file_path, title, source_url, cover)
        except (MutagenError, OSError) as e:
            logger.warning(f"Could not tag '{file_path.name}': {e}")
            return False
        return True

    def _write_id3(self, file_path: Path, title: str, source_url: str, cover: Optional[bytes]):
        try:
            tags = ID3(file_path)
        except ID3NoHeaderError:
            tags = ID3()
        tags.setall("TIT2", [TIT2(encoding=3, text=title)])
        tags.setall("COMM", [COMM(encoding=3, lang="eng", desc="", text=source_url)])
        if cover:
            tags.delall("APIC")
            tags.add(APIC(encoding=3, mime=_image_mime(cover), type=3, desc="Cover", data=cover))
        tags.save(file_path)

    def _write_mp4(self, file_path: Path, title: str, source_url: str, cover: Optional[bytes]):
        audio = MP4(file_path)
        if audio.tags is None:
            audio.add_tags()
        audio.tags["\xa9nam"] = [title]
        audio.tags["\xa9cmt"] = [source_url]
        if cover:
            image_format = MP4Cover.FORMAT_PNG if _image_mime(cover) == "image/png" else MP4Cover.FORMAT_JPEG
            audio.tags["covr"] = [MP4Cover(cover, imageformat=image_format)]
        audio.save()
