from dataclasses import dataclass
from enum import Enum


class ExpansionErrorKind(Enum):
    NOT_FOUND = "not_found"
    EMPTY_PLAYLIST = "empty_playlist"
    SOURCE_UNAVAILABLE = "source_unavailable"


class ItemErrorKind(Enum):
    INVALID_REFERENCE = "invalid_reference"
    NO_METADATA = "no_metadata"
    NO_AUDIO_STREAM = "no_audio_stream"
    TIMEOUT = "timeout"
    NETWORK = "network"
    IO = "io"
    UNSUPPORTED_FORMAT = "unsupported_format"
    TOOL_FAILURE = "tool_failure"


@dataclass(frozen=True)
class AppError:
    """Base class for application errors."""
    message: str


@dataclass(frozen=True)
class InputError(AppError):
    """The playlist reference could not be parsed."""
    pass


@dataclass(frozen=True)
class ConfigError(AppError):
    """Invalid or unreadable configuration file."""
    pass


@dataclass(frozen=True)
class AuthenticationError(AppError):
    """Error related to Google authentication."""
    pass


@dataclass(frozen=True)
class ExpansionError(AppError):
    """The playlist could not be expanded into items. Terminal for a run."""
    kind: ExpansionErrorKind = ExpansionErrorKind.SOURCE_UNAVAILABLE


@dataclass(frozen=True)
class ItemError(AppError):
    """A single item could not be processed. The run skips it and goes on."""
    kind: ItemErrorKind = ItemErrorKind.IO


@dataclass(frozen=True)
class PackagingError(AppError):
    """The output directory could not be archived."""
    pass
