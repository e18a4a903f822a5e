from __future__ import annotations

from typing import List
from urllib.parse import quote

import httpx

from lib.user_library.models import Track
from lib.user_library.paginator import MAX_PAGES, fetch_all_pages
from lib.user_library.playlists import SPOTIFY_API_BASE

TRACK_PAGE_LIMIT = 50
# Only id and name are needed for the index
TRACK_FIELDS = "next,items(track(id,name))"


async def fetch_playlist_tracks(
    client: httpx.AsyncClient,
    playlist_id: str,
    token: str | None,
    *,
    max_pages: int = MAX_PAGES,
) -> List[Track]:
    """All tracks of one playlist, skipping deleted or region-blocked entries."""
    url = f"{SPOTIFY_API_BASE}/playlists/{quote(playlist_id, safe='')}/tracks"
    items = await fetch_all_pages(
        client,
        url,
        token,
        params={"fields": TRACK_FIELDS, "limit": TRACK_PAGE_LIMIT},
        max_pages=max_pages,
    )
    tracks: List[Track] = []
    for item in items:
        track = item.get("track") if isinstance(item, dict) else None
        # null track: deleted or region-blocked.
        # Also drops local files (null id), which the null-track filter alone would keep.
        if not track or not track.get("id"):
            continue
        tracks.append(Track(id=track["id"], name=track.get("name") or ""))
    return tracks
