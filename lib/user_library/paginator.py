"""
Cursor-following pagination for the Spotify Web API.

Every paging object looks like ``{"items": [...], "next": <url or null>}``.
Pages are requested one after another because each URL comes from the
previous response.
"""
from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

import httpx

from lib.user_library.errors import PaginationLimitExceeded, UpstreamFetchError

logger = logging.getLogger(__name__)

MAX_PAGES = int(os.getenv("SPOTIFY_MAX_PAGES", "200"))


def _auth_headers(token: str | None) -> Dict[str, str]:
    # A missing token still goes out; the upstream answers 401.
    return {"Authorization": f"Bearer {token or ''}"}


async def _get_page(
    client: httpx.AsyncClient,
    url: str,
    token: str | None,
    params: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    try:
        resp = await client.get(url, headers=_auth_headers(token), params=params)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise UpstreamFetchError(f"Request failed for {url}: {e}", url=url) from e

    if not resp.is_success:
        raise UpstreamFetchError(
            f"Upstream returned {resp.status_code} for {url}",
            url=url,
            status=resp.status_code,
        )

    try:
        data = resp.json()
    except ValueError as e:
        raise UpstreamFetchError(
            f"Malformed JSON body from {url}", url=url, status=resp.status_code
        ) from e

    if not isinstance(data, dict) or not isinstance(data.get("items"), list):
        raise UpstreamFetchError(
            f"Paging object without items list from {url}", url=url, status=resp.status_code
        )
    nxt = data.get("next")
    if nxt is not None and not isinstance(nxt, str):
        raise UpstreamFetchError(
            f"Paging object with invalid next {nxt!r} from {url}", url=url, status=resp.status_code
        )
    return data


async def fetch_all_pages(
    client: httpx.AsyncClient,
    url: str,
    token: str | None,
    *,
    params: Optional[Dict[str, Any]] = None,
    max_pages: int = MAX_PAGES,
) -> List[Any]:
    """
    Follow ``next`` links from ``url`` and return every page's items in page order.

    ``params`` go with the first request only; continuation links already
    carry their own query string.

    Raises:
        UpstreamFetchError: on any failed page (nothing partial is returned)
        PaginationLimitExceeded: when more than ``max_pages`` pages are linked
    """
    items: List[Any] = []
    next_url: str | None = url
    page_params = params
    pages = 0

    while next_url:
        if pages >= max_pages:
            logger.warning(f"[Paginator] page cap {max_pages} hit for {url}")
            raise PaginationLimitExceeded(url, max_pages)
        data = await _get_page(client, next_url, token, page_params)
        pages += 1
        page_params = None
        items.extend(data["items"])
        next_url = data.get("next")

    logger.debug(f"[Paginator] url={url} pages={pages} items={len(items)}")
    return items
