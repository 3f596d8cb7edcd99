"""
app/services/dealer_crawl_service.py

Service orchestration for dealer inventory crawling and catalog reads.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from functools import lru_cache

import requests
from sqlalchemy.orm import Session

from app.crawling.config import (
    CrawlerSettings,
    DealerConfigProvider,
    JSONDealerConfigProvider,
    SQLAlchemyDealerConfigProvider,
    get_crawler_settings,
)
from app.crawling.engine import DealerCrawlEngine
from app.crawling.errors import ConfigurationError, StoreError
from app.crawling.fetcher import PageFetcher
from app.crawling.logging_utils import log_event
from app.crawling.rate_limiter import HostRateLimiter
from app.crawling.robots import RobotsPolicyManager
from app.crawling.storage import SQLAlchemyCatalogStore
from app.domain.crawl import CrawlSummary
from app.domain.vehicle import CatalogEntry, VehicleQuery

logger = logging.getLogger(__name__)


class DealerCrawlService:
    """
    Owns the process-wide HTTP session, rate limiter and fetcher, and
    builds a crawl engine per database session.
    """

    def __init__(
        self,
        *,
        settings: CrawlerSettings | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._settings = settings or get_crawler_settings()
        self._http = session or requests.Session()
        self._rate_limiter = HostRateLimiter(
            default_min_interval_seconds=self._settings.min_request_interval_seconds
        )
        robots_policy = None
        if self._settings.respect_robots:
            robots_policy = RobotsPolicyManager(
                session=self._http,
                timeout_seconds=self._settings.timeout_seconds,
                allow_when_unreachable=self._settings.allow_when_robots_unreachable,
                user_agent=self._settings.default_user_agent,
                rate_limiter=self._rate_limiter,
            )
        self._fetcher = PageFetcher.from_settings(
            settings=self._settings,
            session=self._http,
            rate_limiter=self._rate_limiter,
            robots_policy=robots_policy,
        )
        self._json_provider: JSONDealerConfigProvider | None = None
        if self._settings.dealer_config_source == "json":
            self._json_provider = JSONDealerConfigProvider(config_path=self._settings.dealer_config_path)

    def crawl(self, *, db: Session, dealer_id: str) -> CrawlSummary:
        """
        Crawl one dealer. Raises ConfigurationError when the dealer cannot be crawled at all.
        """

        engine = DealerCrawlEngine(
            settings=self._settings,
            fetcher=self._fetcher,
            store=SQLAlchemyCatalogStore(session=db),
            config_provider=self._config_provider(db),
        )
        return engine.run(dealer_id)

    def crawl_many(self, *, db: Session, dealer_ids: Sequence[str] | None = None) -> list[CrawlSummary]:
        """
        Crawl several dealers; one dealer's failure does not stop the others.
        """

        selected = list(dealer_ids) if dealer_ids else self._config_provider(db).dealer_ids()
        summaries: list[CrawlSummary] = []
        for dealer_id in selected:
            try:
                summaries.append(self.crawl(db=db, dealer_id=dealer_id))
            except (ConfigurationError, StoreError) as exc:
                message = str(exc)
                summaries.append(
                    CrawlSummary(
                        dealer_id=dealer_id,
                        discovered=0,
                        extracted=0,
                        dropped=0,
                        upserted=0,
                        inserted=0,
                        updated=0,
                        unchanged=0,
                        errors=1,
                        status="not_run",
                        error_messages=[message],
                    )
                )
                log_event(
                    logger,
                    logging.ERROR,
                    "dealer_crawl_not_run",
                    dealer_id=dealer_id,
                    error_type=type(exc).__name__,
                    error=message,
                )
        return summaries

    def search(self, *, db: Session, query: VehicleQuery) -> list[CatalogEntry]:
        return SQLAlchemyCatalogStore(session=db).search(query)

    def _config_provider(self, db: Session) -> DealerConfigProvider:
        if self._json_provider is not None:
            return self._json_provider
        return SQLAlchemyDealerConfigProvider(session=db)


@lru_cache(maxsize=1)
def get_dealer_crawl_service() -> DealerCrawlService:
    """
    Build and cache the dealer crawl service.
    """

    return DealerCrawlService()
