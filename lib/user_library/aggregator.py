"""
Bounded fan-out over playlists and merge into the track -> playlists index.

Track fetches run concurrently, at most ``max_concurrency`` at a time. The
join is all-or-nothing: the first failing playlist fails the aggregation and
no index is built. Siblings already running are left to finish.
"""
from __future__ import annotations

import asyncio
import logging
import os
from time import perf_counter
from typing import Awaitable, Callable, List, Sequence, Tuple

from lib.user_library.models import (
    PlaylistMembership,
    PlaylistRef,
    Track,
    TrackIndex,
    TrackIndexEntry,
)

logger = logging.getLogger(__name__)

LIBRARY_MAX_CONCURRENCY = int(os.getenv("LIBRARY_MAX_CONCURRENCY", "2"))

FetchTracks = Callable[[str, "str | None"], Awaitable[List[Track]]]


def merge_playlist_tracks(results: Sequence[Tuple[PlaylistRef, List[Track]]]) -> TrackIndex:
    """
    Build the inverted index from (playlist, tracks) pairs in the given order.

    The first name seen for a track id is kept. Every occurrence appends a
    membership, duplicates included.
    """
    index: TrackIndex = {}
    for playlist, tracks in results:
        membership = PlaylistMembership(playlist_id=playlist.id, playlist_name=playlist.name)
        for track in tracks:
            entry = index.get(track.id)
            if entry is None:
                entry = TrackIndexEntry(track_name=track.name)
                index[track.id] = entry
            entry.playlists.append(membership)
    return index


class PlaylistTrackAggregator:
    """Fetches tracks for many playlists under a concurrency ceiling."""

    def __init__(self, fetch_tracks: FetchTracks, max_concurrency: int = LIBRARY_MAX_CONCURRENCY):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self._fetch_tracks = fetch_tracks
        self.max_concurrency = max_concurrency
        self._sem = asyncio.Semaphore(max_concurrency)

    async def aggregate(self, playlists: Sequence[PlaylistRef], token: str | None) -> TrackIndex:
        t0 = perf_counter()
        completed: List[Tuple[PlaylistRef, List[Track]]] = []

        async def _unit(playlist: PlaylistRef) -> None:
            async with self._sem:
                tracks = await self._fetch_tracks(playlist.id, token)
            completed.append((playlist, tracks))

        try:
            await asyncio.gather(*(_unit(p) for p in playlists))
        except Exception as e:
            logger.warning(
                f"[Aggregator] failed after {len(completed)}/{len(playlists)} playlists: {e}"
            )
            raise

        index = merge_playlist_tracks(completed)
        logger.info(
            f"[Aggregator] playlists={len(playlists)} tracks={len(index)} "
            f"concurrency={self.max_concurrency} ms={(perf_counter() - t0) * 1000:.1f}"
        )
        return index
