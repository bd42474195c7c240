import re
from typing import Optional

PLAYLIST_ID_PATTERN = re.compile(r"[&?]list=([a-zA-Z0-9_-]+)")
ITEM_ID_PATTERN = re.compile(r"[&?]v=([a-zA-Z0-9_-]+)")
SHORT_LINK_PATTERN = re.compile(r"youtu\.be/([a-zA-Z0-9_-]+)")
BARE_ITEM_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{11}$")


def resolve_playlist_id(reference: str) -> Optional[str]:
    """
    Extracts the playlist identifier from a playlist link.

    Returns:
        The value of the `list` query parameter, or None if there is none.
    """
    match = PLAYLIST_ID_PATTERN.search(reference)
    return match.group(1) if match else None


def resolve_item_id(reference: str) -> Optional[str]:
    """
    Extracts a video identifier from a watch link, a youtu.be short link,
    or a bare 11 character video id.
    """
    reference = reference.strip()
    for pattern in (ITEM_ID_PATTERN, SHORT_LINK_PATTERN):
        match = pattern.search(reference)
        if match:
            return match.group(1)
    if BARE_ITEM_ID_PATTERN.match(reference):
        return reference
    return None


def item_url(item_id: str) -> str:
    return f"https://www.youtube.com/watch?v={item_id}"


def playlist_url(playlist_id: str) -> str:
    return f"https://www.youtube.com/playlist?list={playlist_id}"
