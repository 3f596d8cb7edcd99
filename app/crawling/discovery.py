"""
Detail-page link discovery for dealer listing pages.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from urllib.parse import parse_qsl, urlsplit

from bs4 import BeautifulSoup

from app.crawling.config.models import DEFAULT_DETAIL_PATH_PATTERN, DEFAULT_EXCLUDED_PATHS, DealerConfig
from app.crawling.types import CandidateURL
from app.crawling.urls import canonicalize_url, resolve_url, same_site

PAGINATION_QUERY_KEYS = frozenset({"page", "p", "pg", "pagenum", "page_no", "offset", "start"})
PAGINATION_PATH_REGEX = re.compile(r"/page/\d+$", flags=re.IGNORECASE)


class LinkDiscoverer:
    """
    Collect canonical detail-page URLs from a listing document.

    The path heuristic is deliberately broad: a non-detail page that slips
    through costs one extraction attempt, a missed detail page is a missing
    listing.
    """

    def __init__(
        self,
        *,
        detail_path_pattern: str = DEFAULT_DETAIL_PATH_PATTERN,
        excluded_paths: Iterable[str] = DEFAULT_EXCLUDED_PATHS,
        listing_paths: Iterable[str] = (),
    ) -> None:
        self._detail_regex = re.compile(detail_path_pattern, flags=re.IGNORECASE)
        self._excluded_paths = {
            self._normalize_path(path) for path in (*excluded_paths, *listing_paths) if path
        }

    @classmethod
    def for_dealer(cls, config: DealerConfig) -> "LinkDiscoverer":
        return cls(
            detail_path_pattern=config.detail_path_pattern,
            excluded_paths=config.excluded_paths,
            listing_paths=config.listing_paths,
        )

    def discover(
        self,
        document: str | BeautifulSoup,
        base_url: str,
        *,
        source_path: str = "",
    ) -> list[CandidateURL]:
        """
        Return detail-page candidates in document order, one per canonical URL.
        """

        soup = document if isinstance(document, BeautifulSoup) else BeautifulSoup(document, "html.parser")
        resolve_base = base_url
        base_tag = soup.find("base", href=True)
        if base_tag is not None:
            resolve_base = resolve_url(base_url, str(base_tag["href"])) or base_url

        found: dict[str, CandidateURL] = {}
        for anchor in soup.find_all("a", href=True):
            absolute = resolve_url(resolve_base, str(anchor["href"]))
            if absolute is None or not same_site(absolute, base_url):
                continue
            try:
                canonical = canonicalize_url(absolute)
            except ValueError:
                continue
            if canonical in found or not self.is_detail_url(canonical):
                continue
            found[canonical] = CandidateURL(url=canonical, source_path=source_path)
        return list(found.values())

    def is_detail_url(self, url: str) -> bool:
        parts = urlsplit(url)
        path = self._normalize_path(parts.path)
        if path in self._excluded_paths:
            return False
        if PAGINATION_PATH_REGEX.search(path):
            return False
        if any(key.lower() in PAGINATION_QUERY_KEYS for key, _ in parse_qsl(parts.query)):
            return False
        return self._detail_regex.search(path) is not None

    @staticmethod
    def _normalize_path(path: str) -> str:
        normalized = "/" + path.strip().strip("/").lower()
        return normalized
