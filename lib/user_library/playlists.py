"""
Playlist discovery: which of a user's playlists feed the library index.
"""
from __future__ import annotations

import logging
import os
from typing import Any, Dict, List
from urllib.parse import quote

import httpx

from lib.user_library.models import PlaylistRef
from lib.user_library.paginator import MAX_PAGES, fetch_all_pages

logger = logging.getLogger(__name__)

SPOTIFY_API_BASE = os.getenv("SPOTIFY_API_BASE", "https://api.spotify.com/v1").rstrip("/")
PLAYLIST_PAGE_LIMIT = 50

# Owner URI of Spotify's own editorial playlists
CURATOR_OWNER_URI = "spotify:user:spotify"


def is_aggregatable(playlist: Dict[str, Any]) -> bool:
    """Public, not owned by the curator account, and holding at least one track."""
    if not isinstance(playlist, dict):
        return False
    owner = playlist.get("owner") or {}
    tracks = playlist.get("tracks") or {}
    return (
        playlist.get("public") is True
        and owner.get("uri") != CURATOR_OWNER_URI
        and (tracks.get("total") or 0) > 0
    )


async def discover_playlists(
    client: httpx.AsyncClient,
    user_id: str,
    token: str | None,
    *,
    max_pages: int = MAX_PAGES,
) -> List[PlaylistRef]:
    url = f"{SPOTIFY_API_BASE}/users/{quote(user_id, safe='')}/playlists"
    raw = await fetch_all_pages(
        client,
        url,
        token,
        params={"limit": PLAYLIST_PAGE_LIMIT, "offset": 0},
        max_pages=max_pages,
    )
    selected = [PlaylistRef(id=p["id"], name=p.get("name") or "") for p in raw if is_aggregatable(p)]
    logger.info(f"[Discover] user={user_id} playlists={len(raw)} selected={len(selected)}")
    return selected
