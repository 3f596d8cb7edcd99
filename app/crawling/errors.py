"""
Typed error taxonomy for dealer crawling.
"""

from __future__ import annotations

FETCH_ERROR_KINDS = frozenset({"status", "network", "timeout", "malformed", "blocked"})


class CrawlerError(Exception):
    """Base exception for crawl pipeline failures."""


class ConfigurationError(CrawlerError):
    """Raised when a dealer configuration is missing or invalid. Fatal to the run."""


class FetchError(CrawlerError):
    """
    Raised when one URL cannot be fetched.

    `kind` is one of FETCH_ERROR_KINDS so callers can tell a missing page
    (status 404) from an unreachable site (network/timeout) or a response
    that could not be used (malformed).
    """

    def __init__(
        self,
        message: str,
        *,
        url: str,
        kind: str,
        status_code: int | None = None,
    ) -> None:
        if kind not in FETCH_ERROR_KINDS:
            raise ValueError(f"Unknown fetch error kind '{kind}'.")
        super().__init__(message)
        self.url = url
        self.kind = kind
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        if self.kind in {"network", "timeout"}:
            return True
        return self.kind == "status" and self.status_code is not None and self.status_code >= 500


class ExtractionError(CrawlerError):
    """Raised when a detail page yields neither a title nor a price."""

    def __init__(self, url: str) -> None:
        super().__init__(f"No title or price extracted from {url}")
        self.url = url


class StoreError(CrawlerError):
    """Raised when the catalog store rejects a write or read."""
