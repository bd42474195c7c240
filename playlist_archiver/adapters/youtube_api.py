import logging
from typing import Any, List, Optional

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from pymonad.either import Either, Left, Right

from ..domain.errors import ExpansionError, ExpansionErrorKind
from ..domain.models import PlaylistInfo
from ..domain.ports import PlaylistSource
from ..resolver import item_url

logger = logging.getLogger(__name__)

DEFAULT_PLAYLIST_TITLE = "YouTubePlaylist"
PAGE_SIZE = 50


def _http_error_detail(error: HttpError) -> str:
    content = error.content
    return content.decode("utf-8", errors="replace") if isinstance(content, bytes) else str(content)


class YouTubeApiPlaylistSource(PlaylistSource):
    """
    Expands playlists through the YouTube Data API v3.

    Either an API key or OAuth credentials must be supplied; the service
    object is built lazily on the first expansion.
    """

    def __init__(self, api_key: Optional[str] = None, credentials: Any = None):
        if not api_key and credentials is None:
            raise ValueError("An API key or OAuth credentials are required.")
        self._api_key = api_key
        self._credentials = credentials
        self._service = None

    def _youtube(self):
        if self._service is None:
            logger.info("Building YouTube service.")
            if self._api_key:
                self._service = build("youtube", "v3", developerKey=self._api_key)
            else:
                self._service = build("youtube", "v3", credentials=self._credentials)
        return self._service

    def _fetch_title(self, youtube, playlist_id: str) -> Optional[str]:
        response = youtube.playlists().list(part="snippet", id=playlist_id).execute()
        items = response.get("items")
        if not items:
            return None
        return items[0].get("snippet", {}).get("title") or DEFAULT_PLAYLIST_TITLE

    def _fetch_item_urls(self, youtube, playlist_id: str) -> List[str]:
        urls = []
        page_token = None
        while True:
            response = youtube.playlistItems().list(
                part="contentDetails",
                playlistId=playlist_id,
                maxResults=PAGE_SIZE,
                pageToken=page_token,
            ).execute()
            for entry in response.get("items", []):
                video_id = entry.get("contentDetails", {}).get("videoId")
                if video_id:
                    urls.append(item_url(video_id))
            page_token = response.get("nextPageToken")
            if not page_token:
                return urls

    def expand(self, playlist_id: str) -> Either[ExpansionError, PlaylistInfo]:
        """
        Retrieves the title and the ordered video URLs of a playlist.

        Args:
            playlist_id: The ID of the playlist.

        Returns:
            Either: A Right(PlaylistInfo) on success, or a Left(ExpansionError).
        """
        try:
            youtube = self._youtube()

            logger.info(f"Retrieving playlist '{playlist_id}'.")
            title = self._fetch_title(youtube, playlist_id)
            if title is None:
                logger.error(f"Playlist '{playlist_id}' not found.")
                return Left(ExpansionError(f"Playlist '{playlist_id}' not found.", ExpansionErrorKind.NOT_FOUND))

            urls = self._fetch_item_urls(youtube, playlist_id)
            if not urls:
                logger.error(f"Playlist '{playlist_id}' has no videos.")
                return Left(ExpansionError(f"Playlist '{playlist_id}' is empty.", ExpansionErrorKind.EMPTY_PLAYLIST))

            logger.info(f"Playlist '{title}' contains {len(urls)} videos.")
            return Right(PlaylistInfo(playlist_id=playlist_id, title=title, items=tuple(urls)))

        except HttpError as e:
            detail = _http_error_detail(e)
            logger.error(f"Failed to expand playlist '{playlist_id}': {detail}")
            if e.resp.status == 404:
                return Left(ExpansionError(f"Playlist '{playlist_id}' not found.", ExpansionErrorKind.NOT_FOUND))
            return Left(ExpansionError(f"API error during playlist retrieval: {detail}", ExpansionErrorKind.SOURCE_UNAVAILABLE))
        except Exception as e:
            logger.error(f"An unexpected error occurred while expanding '{playlist_id}': {e}")
            return Left(ExpansionError(f"An unexpected error occurred: {e}", ExpansionErrorKind.SOURCE_UNAVAILABLE))
