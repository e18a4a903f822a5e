"""
Data model for the user library index.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class Track:
    """A single playlist track; identity is ``id``."""
    id: str
    name: str


@dataclass(frozen=True)
class PlaylistRef:
    """A playlist selected by discovery."""
    id: str
    name: str


@dataclass(frozen=True)
class PlaylistMembership:
    playlist_id: str
    playlist_name: str

    def to_dict(self) -> Dict[str, str]:
        return {"playlistId": self.playlist_id, "playlistName": self.playlist_name}


@dataclass
class TrackIndexEntry:
    """
    One row of the inverted index.

    ``playlists`` keeps every occurrence in merge order, so the same playlist
    can be listed twice when the upstream returned the track twice.
    """
    track_name: str
    playlists: List[PlaylistMembership] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trackName": self.track_name,
            "playlists": [p.to_dict() for p in self.playlists],
        }


# track id -> entry
TrackIndex = Dict[str, TrackIndexEntry]


def index_to_dict(index: TrackIndex) -> Dict[str, Dict[str, Any]]:
    return {track_id: entry.to_dict() for track_id, entry in index.items()}


def serialize_index(index: TrackIndex) -> bytes:
    """Serialize an index to the UTF-8 JSON bytes stored in the cache."""
    return json.dumps(index_to_dict(index), ensure_ascii=False, separators=(",", ":")).encode("utf-8")
