from __future__ import annotations

import logging
from functools import partial
from time import perf_counter

import httpx

from lib.user_library.aggregator import LIBRARY_MAX_CONCURRENCY, PlaylistTrackAggregator
from lib.user_library.models import TrackIndex
from lib.user_library.paginator import MAX_PAGES
from lib.user_library.playlists import discover_playlists
from lib.user_library.tracks import fetch_playlist_tracks

logger = logging.getLogger(__name__)


class UserLibraryService:
    """Discovery followed by bounded aggregation, over one shared HTTP client."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        aggregator: PlaylistTrackAggregator | None = None,
        max_pages: int = MAX_PAGES,
    ):
        self.client = client
        self.max_pages = max_pages
        self.aggregator = aggregator or PlaylistTrackAggregator(
            partial(fetch_playlist_tracks, client, max_pages=max_pages),
            max_concurrency=LIBRARY_MAX_CONCURRENCY,
        )

    async def build_index(self, user_id: str, token: str | None) -> TrackIndex:
        t0 = perf_counter()
        playlists = await discover_playlists(self.client, user_id, token, max_pages=self.max_pages)
        t1 = perf_counter()
        index = await self.aggregator.aggregate(playlists, token)
        t2 = perf_counter()
        logger.info(
            f"[PERF] user={user_id} discover_ms={(t1 - t0) * 1000:.1f} "
            f"aggregate_ms={(t2 - t1) * 1000:.1f} playlists={len(playlists)} tracks={len(index)}"
        )
        return index
