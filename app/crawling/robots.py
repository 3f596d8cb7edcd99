"""
robots.txt policy helper for crawler politeness.
"""

from __future__ import annotations

import logging
import threading
from urllib.parse import urlsplit
from urllib.robotparser import RobotFileParser

import requests

from app.crawling.logging_utils import log_event
from app.crawling.rate_limiter import HostRateLimiter

logger = logging.getLogger(__name__)


class RobotsPolicyManager:
    """
    Caches robots.txt rules per origin.

    Each origin is downloaded once, under its own lock, so a slow robots.txt
    only holds up workers bound for that origin. The download is paced by
    the shared host rate limiter when one is given.
    """

    def __init__(
        self,
        *,
        session: requests.Session,
        timeout_seconds: float = 10.0,
        allow_when_unreachable: bool = True,
        user_agent: str | None = None,
        rate_limiter: HostRateLimiter | None = None,
    ) -> None:
        self._session = session
        self._timeout_seconds = timeout_seconds
        self._allow_when_unreachable = allow_when_unreachable
        self._user_agent = user_agent
        self._rate_limiter = rate_limiter
        self._cache: dict[str, RobotFileParser] = {}
        self._origin_locks: dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

    def can_fetch(self, *, url: str, user_agent: str) -> bool:
        return self._get_parser(url).can_fetch(user_agent, url)

    def crawl_delay(self, *, url: str, user_agent: str) -> float | None:
        parser = self._get_parser(url)
        delay = parser.crawl_delay(user_agent)
        if delay is None:
            delay = parser.crawl_delay("*")
        return float(delay) if delay is not None else None

    def _get_parser(self, url: str) -> RobotFileParser:
        origin = self._origin(url)
        with self._lock:
            cached = self._cache.get(origin)
            if cached is not None:
                return cached
            origin_lock = self._origin_locks.setdefault(origin, threading.Lock())

        with origin_lock:
            with self._lock:
                cached = self._cache.get(origin)
            if cached is not None:
                return cached
            parser = self._load(origin)
            with self._lock:
                self._cache[origin] = parser
            return parser

    def _load(self, origin: str) -> RobotFileParser:
        parser = RobotFileParser()
        robots_url = f"{origin}/robots.txt"
        headers = {"User-Agent": self._user_agent} if self._user_agent else None
        if self._rate_limiter is not None:
            self._rate_limiter.wait(url=robots_url)
        try:
            response = self._session.get(robots_url, headers=headers, timeout=self._timeout_seconds)
        except requests.RequestException as exc:
            self._apply_fallback_policy(parser)
            log_event(
                logger,
                logging.WARNING,
                "robots_fetch_failed",
                origin=origin,
                fallback_allow=self._allow_when_unreachable,
                error=str(exc),
            )
            return parser

        if response.ok:
            parser.set_url(robots_url)
            parser.parse(response.text.splitlines())
            log_event(logger, logging.INFO, "robots_loaded", origin=origin)
        elif 400 <= response.status_code < 500:
            # A missing robots.txt means no restrictions.
            parser.parse(["User-agent: *", "Allow: /"])
            log_event(
                logger,
                logging.INFO,
                "robots_absent",
                origin=origin,
                status_code=response.status_code,
            )
        else:
            self._apply_fallback_policy(parser)
            log_event(
                logger,
                logging.WARNING,
                "robots_unavailable",
                origin=origin,
                status_code=response.status_code,
                fallback_allow=self._allow_when_unreachable,
            )
        return parser

    def _apply_fallback_policy(self, parser: RobotFileParser) -> None:
        if self._allow_when_unreachable:
            parser.parse(["User-agent: *", "Allow: /"])
        else:
            parser.parse(["User-agent: *", "Disallow: /"])

    @staticmethod
    def _origin(url: str) -> str:
        parts = urlsplit(url)
        scheme = (parts.scheme or "https").lower()
        return f"{scheme}://{parts.netloc.lower()}"
