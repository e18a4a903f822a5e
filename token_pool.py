"""
App-level bearer token supplier for the Spotify Web API.

The client-credentials grant and token caching are handled by spotipy; this
module only owns the lazily created manager.
"""
from __future__ import annotations

import asyncio
import logging
import os
from typing import Optional

from spotipy.oauth2 import SpotifyClientCredentials

logger = logging.getLogger(__name__)

# Lifetime of the accessToken cookie handed to callers
ACCESS_TOKEN_MAX_AGE_S = int(os.getenv("ACCESS_TOKEN_MAX_AGE_S", "3600"))

_lock = asyncio.Lock()
_credentials: Optional[SpotifyClientCredentials] = None


def _build_credentials() -> SpotifyClientCredentials:
    client_id = os.getenv("SPOTIFY_CLIENT_ID")
    client_secret = os.getenv("SPOTIFY_CLIENT_SECRET")

    if not client_id or not client_secret:
        raise RuntimeError(
            "Spotify client credentials are not set. "
            "Please set SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET."
        )
    return SpotifyClientCredentials(client_id=client_id, client_secret=client_secret)


async def get_credentials() -> SpotifyClientCredentials:
    global _credentials
    if _credentials is not None:
        return _credentials
    async with _lock:
        if _credentials is None:
            _credentials = _build_credentials()
            logger.info("[TokenPool] client credentials manager created")
        return _credentials


async def get_access_token() -> str:
    """Return a valid access token, refreshing through spotipy when it expired."""
    credentials = await get_credentials()
    # spotipy requests the token synchronously
    return await asyncio.to_thread(credentials.get_access_token, as_dict=False)
