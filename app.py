from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

# Module-level settings below read the environment at import time
load_dotenv()

import httpx
from fastapi import (
    FastAPI,
    HTTPException,
    Query,
    Request,
)
from fastapi.responses import Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.gzip import GZipMiddleware
from pydantic import BaseModel

from lib.cache_manager import (
    LIBRARY_CACHE_TTL_S,
    close_library_cache,
    get_library_cache,
)
from lib.user_library import LibraryError, UserLibraryService
from lib.user_library.cache_gate import LibraryCacheGate
from token_pool import ACCESS_TOKEN_MAX_AGE_S, get_access_token
import logging
import time

# Basic logging configuration to ensure logger outputs appear in the terminal
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn.error")
logger.setLevel(logging.INFO)

SPOTIFY_HTTP_TIMEOUT_S = float(os.getenv("SPOTIFY_HTTP_TIMEOUT_S", "30"))
ACCESS_TOKEN_COOKIE = "accessToken"


# =========================
# Pydantic models
# =========================

class PlaylistMembershipModel(BaseModel):
    playlistId: str
    playlistName: str


class TrackIndexEntryModel(BaseModel):
    trackName: str
    playlists: List[PlaylistMembershipModel]


class ErrorDetailModel(BaseModel):
    error: str
    kind: str  # "bad_request" | "upstream" | "pagination_limit" | "cache" | "internal"
    meta: Optional[Dict[str, Any]] = None


# =========================
# FastAPI app & middleware
# =========================

app = FastAPI(
    title="Spotify User Library",
    version="1.0.0",
)

# Large libraries produce large JSON indexes
app.add_middleware(GZipMiddleware, minimum_size=1000)


class AccessTokenMiddleware(BaseHTTPMiddleware):
    """Attach an app-level bearer token to /api requests that arrive without one."""

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith("/api/") or request.cookies.get(ACCESS_TOKEN_COOKIE):
            return await call_next(request)

        token: str | None = None
        try:
            token = await get_access_token()
        except Exception as e:
            # Proceed without a token; the upstream rejects the request with 401
            logger.warning(f"[AccessToken] could not obtain access token: {e}")
        request.state.access_token = token

        response = await call_next(request)
        if token:
            response.set_cookie(
                key=ACCESS_TOKEN_COOKIE,
                value=token,
                max_age=ACCESS_TOKEN_MAX_AGE_S,
                httponly=True,
            )
            logger.info("[AccessToken] no access token at time of request; issued a new one")
        return response


app.add_middleware(AccessTokenMiddleware)


@app.on_event("startup")
def _log_startup():
    logger.info("spotify-user-library: startup event triggered")


@app.on_event("startup")
async def _init_library_state():
    app.state.http_client = httpx.AsyncClient(timeout=httpx.Timeout(SPOTIFY_HTTP_TIMEOUT_S))
    service = UserLibraryService(app.state.http_client)
    app.state.library_gate = LibraryCacheGate(get_library_cache(), service.build_index)


@app.on_event("shutdown")
async def _shutdown_library_state():
    client = getattr(app.state, "http_client", None)
    if client is not None:
        await client.aclose()
    await close_library_cache()


# Default allowed origins
default_origins = [
    "http://localhost:3000",
]

# ALLOWED_ORIGINS (comma separated) takes precedence when set
env_origins = os.getenv("ALLOWED_ORIGINS")
if env_origins:
    origins = [o.strip() for o in env_origins.split(",") if o.strip()]
else:
    origins = default_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =========================
# Health check
# =========================

@app.get("/health", tags=["system"])
def health() -> Dict[str, Any]:
    return {
        "ok": True,
        "status": "ok",
        "build_commit": os.getenv("RENDER_GIT_COMMIT", "local")[:7],
        "cache_ttl_s": LIBRARY_CACHE_TTL_S,
    }


@app.get("/", tags=["system"])
def root() -> Dict[str, Any]:
    return {"ok": True, "status": "ok"}


# =========================
# Endpoints
# =========================

def _error_detail(user_id: str | None, kind: str, meta: dict | None = None) -> Dict[str, Any]:
    return {
        "error": f"Error fetching user library for {user_id}",
        "kind": kind,
        "meta": meta or {},
    }


@app.get(
    "/api/user",
    response_model=Dict[str, TrackIndexEntryModel],
    responses={
        400: {"model": ErrorDetailModel},
        502: {"model": ErrorDetailModel},
        503: {"model": ErrorDetailModel},
    },
)
async def get_user_library(
    request: Request,
    user_id: Optional[str] = Query(None, alias="userId", description="Spotify user ID"),
):
    """
    Index of every track in the user's public, self-owned, non-empty playlists:
    track id -> {trackName, playlists: [{playlistId, playlistName}]}.
    """
    if not user_id or not user_id.strip():
        raise HTTPException(status_code=400, detail=_error_detail(user_id, "bad_request"))
    user_id = user_id.strip()

    t0_total = time.time()
    token = getattr(request.state, "access_token", None) or request.cookies.get(ACCESS_TOKEN_COOKIE)
    gate: LibraryCacheGate = request.app.state.library_gate

    try:
        payload, cache_hit = await gate.get_or_compute_with_status(user_id, token)
    except LibraryError as e:
        logger.error(f"[api/user] error for user_id={user_id} kind={e.kind}: {e} meta={e.meta}")
        raise HTTPException(status_code=e.http_status, detail=_error_detail(user_id, e.kind, e.meta))
    except Exception as e:
        logger.exception(f"[api/user] unexpected error for user_id={user_id}: {e}")
        raise HTTPException(status_code=500, detail=_error_detail(user_id, "internal"))

    total_ms = (time.time() - t0_total) * 1000
    logger.info(
        f"[PERF] user_id={user_id} cache_hit={'true' if cache_hit else 'false'} "
        f"cache_ttl_s={LIBRARY_CACHE_TTL_S} bytes={len(payload)} total_api_ms={total_ms:.1f}"
    )
    return Response(
        content=payload,
        media_type="application/json",
        headers={"X-Cache": "hit" if cache_hit else "miss"},
    )
