"""
Error kinds raised by the user library pipeline.

Each kind carries the HTTP status the front door answers with.
"""
from __future__ import annotations


class LibraryError(Exception):
    """Base error; ``meta`` carries diagnostics for logs and error bodies."""

    kind = "internal"
    http_status = 500

    def __init__(self, message: str, meta: dict | None = None):
        super().__init__(message)
        self.meta = meta or {}


class UpstreamFetchError(LibraryError):
    """Network error, non-2xx status or malformed body from the playlist API."""

    kind = "upstream"
    http_status = 502

    def __init__(self, message: str, url: str, status: int | None = None):
        super().__init__(message, meta={"url": url, "upstream_status": status})
        self.url = url
        self.status = status


class PaginationLimitExceeded(LibraryError):
    kind = "pagination_limit"
    http_status = 502

    def __init__(self, url: str, max_pages: int):
        super().__init__(
            f"Pagination exceeded {max_pages} pages starting at {url}",
            meta={"url": url, "max_pages": max_pages},
        )
        self.url = url
        self.max_pages = max_pages


class CacheStoreError(LibraryError):
    kind = "cache"
    http_status = 503
