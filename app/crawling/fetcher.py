"""
Polite HTTP fetcher with bounded retry, backoff and per-host pacing.
"""

from __future__ import annotations

import logging
import random
import re
import time
from collections.abc import Callable, Mapping

import requests
from bs4.dammit import EncodingDetector

from app.crawling.config.models import CrawlerSettings
from app.crawling.errors import FetchError
from app.crawling.logging_utils import log_event
from app.crawling.rate_limiter import HostRateLimiter
from app.crawling.robots import RobotsPolicyManager
from app.crawling.types import FetchedPage

logger = logging.getLogger(__name__)

ACCEPT_HEADER = "text/html,application/xhtml+xml;q=0.9,*/*;q=0.5"
DOCUMENT_CONTENT_TYPES = ("text/html", "application/xhtml+xml", "text/plain", "application/xml", "text/xml")
_CHARSET_PATTERN = re.compile(r"charset\s*=\s*([\"']?[\w.:-]+[\"']?)", re.IGNORECASE)


class PageFetcher:
    """
    Fetch documents for the crawl pipeline.

    Retries connection errors, timeouts and 5xx responses; 4xx responses
    fail immediately. Every attempt, retries included, goes through the
    shared host rate limiter. Failures always surface as FetchError.
    """

    def __init__(
        self,
        *,
        session: requests.Session,
        rate_limiter: HostRateLimiter,
        user_agent: str,
        timeout_seconds: float = 15.0,
        max_retries: int = 3,
        backoff_initial_seconds: float = 0.5,
        backoff_multiplier: float = 2.0,
        backoff_jitter_ratio: float = 0.25,
        robots_policy: RobotsPolicyManager | None = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self._session = session
        self._rate_limiter = rate_limiter
        self._user_agent = user_agent
        self._timeout_seconds = timeout_seconds
        self._max_retries = max(0, max_retries)
        self._backoff_initial_seconds = backoff_initial_seconds
        self._backoff_multiplier = backoff_multiplier
        self._backoff_jitter_ratio = backoff_jitter_ratio
        self._robots_policy = robots_policy
        self._sleep = sleep
        self._rng = rng or random.Random()

    @classmethod
    def from_settings(
        cls,
        *,
        settings: CrawlerSettings,
        session: requests.Session,
        rate_limiter: HostRateLimiter,
        robots_policy: RobotsPolicyManager | None = None,
    ) -> "PageFetcher":
        return cls(
            session=session,
            rate_limiter=rate_limiter,
            user_agent=settings.default_user_agent,
            timeout_seconds=settings.timeout_seconds,
            max_retries=settings.max_retries,
            backoff_initial_seconds=settings.backoff_initial_seconds,
            backoff_multiplier=settings.backoff_multiplier,
            backoff_jitter_ratio=settings.backoff_jitter_ratio,
            robots_policy=robots_policy,
        )

    def fetch(
        self,
        url: str,
        *,
        user_agent: str | None = None,
        headers: Mapping[str, str] | None = None,
        min_interval_seconds: float | None = None,
    ) -> FetchedPage:
        agent = user_agent or self._user_agent
        request_headers = {"User-Agent": agent, "Accept": ACCEPT_HEADER, **(headers or {})}

        crawl_delay: float | None = None
        if self._robots_policy is not None:
            if not self._robots_policy.can_fetch(url=url, user_agent=agent):
                raise FetchError(f"Blocked by robots.txt: {url}", url=url, kind="blocked")
            crawl_delay = self._robots_policy.crawl_delay(url=url, user_agent=agent)

        last_error: FetchError | None = None
        attempts = self._max_retries + 1
        for attempt in range(attempts):
            self._rate_limiter.wait(
                url=url,
                min_interval_seconds=min_interval_seconds,
                crawl_delay_seconds=crawl_delay,
            )
            try:
                response = self._session.get(
                    url,
                    headers=request_headers,
                    timeout=self._timeout_seconds,
                    allow_redirects=True,
                )
            except requests.Timeout as exc:
                last_error = FetchError(f"Timed out fetching {url}: {exc}", url=url, kind="timeout")
            except requests.ConnectionError as exc:
                last_error = FetchError(f"Network error fetching {url}: {exc}", url=url, kind="network")
            except requests.RequestException as exc:
                raise FetchError(f"Request for {url} failed: {exc}", url=url, kind="malformed") from exc
            else:
                if response.status_code >= 500:
                    last_error = FetchError(
                        f"Server error status={response.status_code} url={url}",
                        url=url,
                        kind="status",
                        status_code=response.status_code,
                    )
                elif response.status_code >= 400:
                    raise FetchError(
                        f"Client error status={response.status_code} url={url}",
                        url=url,
                        kind="status",
                        status_code=response.status_code,
                    )
                else:
                    return self._to_page(url, response)

            if attempt >= self._max_retries:
                break

            backoff_seconds = self._backoff_seconds(attempt)
            log_event(
                logger,
                logging.WARNING,
                "fetch_retry",
                url=url,
                attempt=attempt + 1,
                max_retries=self._max_retries,
                wait_seconds=round(backoff_seconds, 3),
                kind=last_error.kind,
                status_code=last_error.status_code,
            )
            self._sleep(backoff_seconds)

        raise FetchError(
            f"{last_error} (gave up after {attempts} attempts)",
            url=url,
            kind=last_error.kind,
            status_code=last_error.status_code,
        ) from last_error

    def _backoff_seconds(self, attempt: int) -> float:
        base = self._backoff_initial_seconds * (self._backoff_multiplier**attempt)
        jitter = self._rng.uniform(0.0, base * self._backoff_jitter_ratio) if base > 0 else 0.0
        return base + jitter

    @staticmethod
    def _to_page(url: str, response: requests.Response) -> FetchedPage:
        content_type = response.headers.get("Content-Type")
        media_type = (content_type or "").split(";", 1)[0].strip().lower()
        if media_type and not media_type.startswith(DOCUMENT_CONTENT_TYPES):
            raise FetchError(
                f"Unexpected content type '{media_type}' for {url}",
                url=url,
                kind="malformed",
                status_code=response.status_code,
            )
        if not response.content:
            raise FetchError(
                f"Empty response body for {url}",
                url=url,
                kind="malformed",
                status_code=response.status_code,
            )
        return FetchedPage(
            url=url,
            final_url=response.url or url,
            status_code=response.status_code,
            text=_decode_body(url, response, content_type),
            content_type=content_type,
        )


def _decode_body(url: str, response: requests.Response, content_type: str | None) -> str:
    """
    Decode with the declared charset: the Content-Type header first, then a
    <meta> declaration in the document. Undeclared bodies try UTF-8 and then
    the detected encoding. A declared charset that does not decode is malformed.
    """

    body = response.content
    declared = _header_charset(content_type) or EncodingDetector.find_declared_encoding(body, is_html=True)
    if declared:
        candidates = [declared]
    else:
        candidates = ["utf-8", response.apparent_encoding or "windows-1252"]

    for encoding in candidates:
        try:
            return body.decode(encoding)
        except (LookupError, UnicodeDecodeError):
            continue
    raise FetchError(
        f"Undecodable body for {url} (tried {', '.join(candidates)})",
        url=url,
        kind="malformed",
        status_code=response.status_code,
    )


def _header_charset(content_type: str | None) -> str | None:
    match = _CHARSET_PATTERN.search(content_type or "")
    return match.group(1).strip("\"'").lower() if match else None
