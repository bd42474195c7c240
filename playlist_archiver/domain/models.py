from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional, Tuple


@dataclass(frozen=True)
class PlaylistInfo:
    """A playlist as returned by a playlist source, items in source order."""
    playlist_id: str
    title: str
    items: Tuple[str, ...]


@dataclass(frozen=True)
class ItemMetadata:
    """Metadata negotiated for a single playlist item."""
    item_id: str
    title: str
    source_url: str
    cover_url: Optional[str] = None


@dataclass(frozen=True)
class StreamVariant:
    """One encoding offered by the extraction backend for an item."""
    format_id: str
    url: str
    ext: str
    has_video: bool
    audio_bitrate: float

    @property
    def is_audio_only(self) -> bool:
        return not self.has_video and self.audio_bitrate > 0


@dataclass(frozen=True)
class StreamHandle:
    """A resolved, fetchable audio stream for one item."""
    item_id: str
    url: str
    media_kind: str
    headers: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ProgressEvent:
    completed: int
    total: int


class RunState(Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    EXPANDING = "expanding"
    PROCESSING_ITEMS = "processing_items"
    ARCHIVING = "archiving"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class RunResult:
    """Terminal outcome of a run: an archive path or an error message."""
    archive_path: Optional[Path] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.archive_path is not None
