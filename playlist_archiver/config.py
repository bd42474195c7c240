import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Optional

import yaml
from pymonad.either import Either, Left, Right

from .domain.errors import ConfigError

logger = logging.getLogger(__name__)

SOURCES = ("ytdlp", "youtube-api")
AUDIO_FORMATS = ("mp3", "m4a")


@dataclass(frozen=True)
class Settings:
    """Runtime settings, loaded from YAML and overridden by CLI options."""
    music_root: Path = Path.home() / "Music"
    audio_format: str = "mp3"
    audio_quality: str = "192"
    negotiation_timeout: float = 30.0
    fetch_timeout: float = 60.0
    source: str = "ytdlp"
    api_key: Optional[str] = None
    client_secrets_file: str = "client_secret.json"
    token_file: str = "token.json"

    def merge(self, **overrides) -> "Settings":
        """Returns a copy where every non-None override replaces the current value."""
        values = {k: v for k, v in overrides.items() if v is not None}
        if "music_root" in values:
            values["music_root"] = Path(values["music_root"]).expanduser()
        return replace(self, **values)


def validate_settings(settings: Settings) -> Either[ConfigError, Settings]:
    if settings.source not in SOURCES:
        return Left(ConfigError(f"Unknown source '{settings.source}', expected one of {', '.join(SOURCES)}."))
    if settings.audio_format not in AUDIO_FORMATS:
        return Left(ConfigError(f"Unsupported audio format '{settings.audio_format}'."))
    if settings.negotiation_timeout <= 0 or settings.fetch_timeout <= 0:
        return Left(ConfigError("Timeouts must be positive."))
    return Right(settings)


def load_settings(file_path: Optional[Path] = None) -> Either[ConfigError, Settings]:
    """
    Loads settings from an optional YAML file.

    Args:
        file_path: Path of the YAML file. Defaults are used when None.

    Returns:
        Either: A Right(Settings) or a Left(ConfigError).
    """
    if file_path is None:
        return Right(Settings())

    try:
        with open(file_path, "r", encoding="utf-8") as file:
            data = yaml.safe_load(file) or {}
    except FileNotFoundError:
        logger.error(f"Configuration file '{file_path}' not found.")
        return Left(ConfigError(f"File '{file_path}' not found."))
    except (yaml.YAMLError, OSError) as e:
        logger.error(f"Could not read configuration file '{file_path}': {e}")
        return Left(ConfigError(f"Could not read '{file_path}': {e}"))

    if not isinstance(data, dict):
        return Left(ConfigError(f"'{file_path}' must contain a mapping."))

    known = {f.name for f in fields(Settings)}
    unknown = sorted(set(data) - known)
    if unknown:
        return Left(ConfigError(f"Unknown keys in '{file_path}': {', '.join(unknown)}"))

    try:
        settings = Settings().merge(**data)
        settings = replace(
            settings,
            audio_quality=str(settings.audio_quality),
            negotiation_timeout=float(settings.negotiation_timeout),
            fetch_timeout=float(settings.fetch_timeout),
        )
    except (TypeError, ValueError) as e:
        return Left(ConfigError(f"Invalid value in '{file_path}': {e}"))

    logger.info(f"Settings loaded from '{file_path}'.")
    return validate_settings(settings)
