from abc import ABC, abstractmethod
from pathlib import Path
from typing import Mapping, Optional, Tuple

from pymonad.either import Either

from .errors import ExpansionError, ItemError, PackagingError
from .models import ItemMetadata, PlaylistInfo, StreamHandle


class PlaylistSource(ABC):
    """
    Port defining the contract for a playlist metadata source.
    """

    @abstractmethod
    def expand(self, playlist_id: str) -> Either[ExpansionError, PlaylistInfo]:
        """
        Resolves a playlist identifier into its title and ordered items.

        Returns:
            Either: A Right(PlaylistInfo) or a Left(ExpansionError).
        """
        pass


class StreamExtractor(ABC):
    """
    Port defining the contract for a stream extraction backend.
    """

    @abstractmethod
    def negotiate(
        self, reference: str
    ) -> Either[ItemError, Tuple[ItemMetadata, StreamHandle]]:
        """
        Obtains the metadata and an audio-only stream for one item.

        Returns:
            Either: A Right((ItemMetadata, StreamHandle)) or a Left(ItemError).
        """
        pass


class Fetcher(ABC):
    @abstractmethod
    def fetch(
        self, url: str, destination: Path, headers: Optional[Mapping[str, str]] = None
    ) -> Either[ItemError, Path]:
        """Streams the content of `url` into `destination`."""
        pass


class Transcoder(ABC):
    @abstractmethod
    def transcode(
        self, raw_file: Path, target_file: Path, metadata: ItemMetadata
    ) -> Either[ItemError, Path]:
        """Converts `raw_file` into `target_file`, embedding the cover if any."""
        pass


class Archiver(ABC):
    @abstractmethod
    def archive(self, source_dir: Path, archive_path: Path) -> Either[PackagingError, Path]:
        """Compresses `source_dir` into a single file at `archive_path`."""
        pass


class TagReader(ABC):
    @abstractmethod
    def get_comment(self, file_path: Path) -> Optional[str]:
        """Returns the comment tag of an audio file, or None if it has none."""
        pass
