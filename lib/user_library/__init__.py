"""
User library aggregation: playlists of a user -> track-to-playlists index.

Public API:
  - UserLibraryService(client).build_index(user_id, token) -> TrackIndex
  - PlaylistTrackAggregator(fetch_tracks, max_concurrency).aggregate(playlists, token)
  - discover_playlists(client, user_id, token) -> list[PlaylistRef]
  - fetch_playlist_tracks(client, playlist_id, token) -> list[Track]
  - fetch_all_pages(client, url, token) -> list

The cache gate lives in lib.user_library.cache_gate.
"""
from lib.user_library.aggregator import PlaylistTrackAggregator, merge_playlist_tracks
from lib.user_library.errors import (
    CacheStoreError,
    LibraryError,
    PaginationLimitExceeded,
    UpstreamFetchError,
)
from lib.user_library.models import (
    PlaylistMembership,
    PlaylistRef,
    Track,
    TrackIndex,
    TrackIndexEntry,
    serialize_index,
)
from lib.user_library.paginator import fetch_all_pages
from lib.user_library.playlists import discover_playlists, is_aggregatable
from lib.user_library.service import UserLibraryService
from lib.user_library.tracks import fetch_playlist_tracks

__all__ = [
    "PlaylistTrackAggregator",
    "merge_playlist_tracks",
    "CacheStoreError",
    "LibraryError",
    "PaginationLimitExceeded",
    "UpstreamFetchError",
    "PlaylistMembership",
    "PlaylistRef",
    "Track",
    "TrackIndex",
    "TrackIndexEntry",
    "serialize_index",
    "fetch_all_pages",
    "discover_playlists",
    "is_aggregatable",
    "UserLibraryService",
    "fetch_playlist_tracks",
]
