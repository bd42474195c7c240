import logging
from pathlib import Path
from typing import Mapping, Optional

import requests
from pymonad.either import Either, Left, Right

from ..domain.errors import ItemError, ItemErrorKind
from ..domain.ports import Fetcher

logger = logging.getLogger(__name__)

CHUNK_SIZE = 256 * 1024


def _discard(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.debug(f"Could not remove partial file '{path}': {e}")


class HttpFetcher(Fetcher):
    """Streams a URL to a local file with `requests`."""

    def __init__(self, timeout: float = 60.0, session: Optional[requests.Session] = None):
        self._timeout = timeout
        self._session = session or requests.Session()

    def fetch(
        self, url: str, destination: Path, headers: Optional[Mapping[str, str]] = None
    ) -> Either[ItemError, Path]:
        """
        Downloads `url` into `destination`.

        The response and the file are closed on every path; a partially
        written destination is removed on failure.

        Returns:
            Either: A Right(destination) or a Left(ItemError) of kind NETWORK or IO.
        """
        destination = Path(destination)
        logger.debug(f"Fetching stream into '{destination}'.")
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            with self._session.get(
                url, headers=dict(headers or {}), stream=True, timeout=self._timeout
            ) as response:
                response.raise_for_status()
                with open(destination, "wb") as output:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            output.write(chunk)
        except requests.RequestException as e:
            _discard(destination)
            logger.warning(f"Network error while fetching '{destination.name}': {e}")
            return Left(ItemError(f"Network error: {e}", ItemErrorKind.NETWORK))
        except OSError as e:
            _discard(destination)
            logger.warning(f"I/O error while writing '{destination}': {e}")
            return Left(ItemError(f"I/O error: {e}", ItemErrorKind.IO))

        logger.debug(f"Fetched {destination.stat().st_size} bytes into '{destination.name}'.")
        return Right(destination)
