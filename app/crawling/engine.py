"""
Dealer crawl engine: discover, extract, normalize, reconcile.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeoutError
from datetime import datetime, timezone
from urllib.parse import urljoin

from app.crawling.config.models import CrawlerSettings, DealerConfig
from app.crawling.config.providers import DealerConfigProvider
from app.crawling.discovery import LinkDiscoverer
from app.crawling.errors import ExtractionError, FetchError, StoreError
from app.crawling.fetcher import PageFetcher
from app.crawling.logging_utils import log_event
from app.crawling.normalization import VehicleNormalizer
from app.crawling.parsing import AttributeExtractor
from app.crawling.reconciler import Reconciler
from app.crawling.storage.base import CatalogStore
from app.crawling.types import CandidateURL, DetailOutcome
from app.domain.crawl import CrawlSummary
from app.domain.vehicle import VehicleRecord

logger = logging.getLogger(__name__)


class DealerCrawlEngine:
    """
    Orchestrates one dealer crawl run.

    The fetcher, store and config provider are built once by the caller
    and passed in. Per-URL failures are counted, never raised; only
    ConfigurationError escapes `run`.
    """

    def __init__(
        self,
        *,
        settings: CrawlerSettings,
        fetcher: PageFetcher,
        store: CatalogStore,
        config_provider: DealerConfigProvider,
        normalizer: VehicleNormalizer | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings
        self._fetcher = fetcher
        self._config_provider = config_provider
        self._normalizer = normalizer or VehicleNormalizer()
        self._reconciler = Reconciler(store=store, batch_size=settings.store_batch_size)
        self._clock = clock

    def run(self, dealer_id: str, *, timeout_seconds: float | None = None) -> CrawlSummary:
        config = self._config_provider.get(dealer_id)
        started_at = datetime.now(timezone.utc)
        deadline = self._clock() + (timeout_seconds or self._settings.run_timeout_seconds)
        errors: list[str] = []

        log_event(
            logger,
            logging.INFO,
            "dealer_crawl_started",
            dealer_id=config.id,
            listing_paths=len(config.listing_paths),
        )

        candidates, discovery_failures, discovery_timed_out = self._discover(config, deadline, errors)
        outcomes, detail_timed_out = self._crawl_details(config, candidates, deadline)
        timed_out = discovery_timed_out or detail_timed_out

        dropped = 0
        raw_records: list[VehicleRecord] = []
        for outcome in sorted(outcomes, key=lambda item: item.index):
            if outcome.error is not None:
                errors.append(outcome.error)
            elif outcome.dropped:
                dropped += 1
            elif outcome.record is not None:
                raw_records.append(outcome.record)

        if candidates and not raw_records:
            log_event(
                logger,
                logging.WARNING,
                "extraction_yield_zero",
                dealer_id=config.id,
                discovered=len(candidates),
                dropped=dropped,
            )

        records = self._normalizer.normalize(raw_records)
        result = self._reconciler.reconcile(config.id, records, seen_at=started_at)
        errors.extend(result.errors)

        stale_marked = 0
        stale_failures = 0
        complete = not timed_out and discovery_failures == 0 and result.failed == 0
        if self._settings.mark_stale and complete:
            try:
                stale_marked = self._reconciler.mark_stale(
                    config.id,
                    seen_before=started_at,
                    seen_urls=[candidate.url for candidate in candidates],
                )
            except StoreError as exc:
                stale_failures = 1
                errors.append(f"mark_stale error={exc}")
                log_event(logger, logging.ERROR, "stale_mark_failed", dealer_id=config.id, error=str(exc))

        detail_failures = sum(1 for outcome in outcomes if outcome.error is not None)
        error_count = discovery_failures + detail_failures + result.failed + stale_failures
        summary = CrawlSummary(
            dealer_id=config.id,
            discovered=len(candidates),
            extracted=len(raw_records),
            dropped=dropped,
            upserted=result.upserted,
            inserted=result.inserted,
            updated=result.updated,
            unchanged=result.unchanged,
            errors=error_count,
            status=self._status(error_count=error_count, upserted=result.upserted, timed_out=timed_out),
            timed_out=timed_out,
            stale_marked=stale_marked,
            error_messages=errors,
        )
        log_event(
            logger,
            logging.INFO,
            "dealer_crawl_completed",
            dealer_id=summary.dealer_id,
            discovered=summary.discovered,
            extracted=summary.extracted,
            dropped=summary.dropped,
            upserted=summary.upserted,
            inserted=summary.inserted,
            updated=summary.updated,
            unchanged=summary.unchanged,
            errors=summary.errors,
            status=summary.status,
            timed_out=summary.timed_out,
        )
        return summary

    def _discover(
        self,
        config: DealerConfig,
        deadline: float,
        errors: list[str],
    ) -> tuple[list[CandidateURL], int, bool]:
        discoverer = LinkDiscoverer.for_dealer(config)
        candidates: dict[str, CandidateURL] = {}
        failures = 0

        for path in config.listing_paths:
            if self._clock() >= deadline:
                log_event(logger, logging.WARNING, "discovery_deadline_reached", dealer_id=config.id)
                return list(candidates.values()), failures, True

            listing_url = urljoin(f"{config.site_base_url.rstrip('/')}/", path.lstrip("/"))
            try:
                page = self._fetcher.fetch(
                    listing_url,
                    user_agent=config.user_agent,
                    headers=config.headers,
                    min_interval_seconds=config.min_request_interval_seconds,
                )
            except FetchError as exc:
                failures += 1
                errors.append(f"listing={path} url={listing_url} kind={exc.kind} error={exc}")
                log_event(
                    logger,
                    logging.WARNING,
                    "listing_fetch_failed",
                    dealer_id=config.id,
                    listing_path=path,
                    url=listing_url,
                    kind=exc.kind,
                    status_code=exc.status_code,
                )
                continue

            found = discoverer.discover(page.text, page.final_url, source_path=path)
            for candidate in found:
                # Later listing path wins the tag; first position is kept.
                candidates[candidate.url] = candidate
            log_event(
                logger,
                logging.INFO,
                "listing_fetched",
                dealer_id=config.id,
                listing_path=path,
                candidates=len(found),
            )

        return list(candidates.values()), failures, False

    def _crawl_details(
        self,
        config: DealerConfig,
        candidates: list[CandidateURL],
        deadline: float,
    ) -> tuple[list[DetailOutcome], bool]:
        if not candidates:
            return [], False

        extractor = AttributeExtractor.for_dealer(config)
        abandon = threading.Event()
        outcomes: list[DetailOutcome] = []
        timed_out = False

        executor = ThreadPoolExecutor(
            max_workers=self._settings.max_workers,
            thread_name_prefix=f"crawl-{config.id}",
        )
        try:
            futures = [
                executor.submit(self._crawl_detail, config, extractor, candidate, index, abandon)
                for index, candidate in enumerate(candidates)
            ]
            remaining = max(0.0, deadline - self._clock())
            for future in as_completed(futures, timeout=remaining):
                outcome = future.result()
                if outcome is not None:
                    outcomes.append(outcome)
        except FuturesTimeoutError:
            timed_out = True
            abandon.set()
            log_event(
                logger,
                logging.WARNING,
                "detail_deadline_reached",
                dealer_id=config.id,
                completed=len(outcomes),
                pending=len(candidates) - len(outcomes),
            )
        finally:
            executor.shutdown(wait=not timed_out, cancel_futures=True)
        return outcomes, timed_out

    def _crawl_detail(
        self,
        config: DealerConfig,
        extractor: AttributeExtractor,
        candidate: CandidateURL,
        index: int,
        abandon: threading.Event,
    ) -> DetailOutcome | None:
        if abandon.is_set():
            return None
        try:
            page = self._fetcher.fetch(
                candidate.url,
                user_agent=config.user_agent,
                headers=config.headers,
                min_interval_seconds=config.min_request_interval_seconds,
            )
        except FetchError as exc:
            log_event(
                logger,
                logging.WARNING,
                "detail_fetch_failed",
                dealer_id=config.id,
                url=candidate.url,
                kind=exc.kind,
                status_code=exc.status_code,
            )
            return DetailOutcome(
                index=index,
                candidate=candidate,
                error=f"url={candidate.url} kind={exc.kind} error={exc}",
            )

        try:
            record = extractor.extract(page.text, candidate.url, source_path=candidate.source_path)
            if record is None:
                raise ExtractionError(candidate.url)
        except ExtractionError:
            log_event(logger, logging.INFO, "candidate_dropped", dealer_id=config.id, url=candidate.url)
            return DetailOutcome(index=index, candidate=candidate, dropped=True)
        except Exception as exc:  # noqa: BLE001
            log_event(
                logger,
                logging.ERROR,
                "detail_extract_failed",
                dealer_id=config.id,
                url=candidate.url,
                error=str(exc),
            )
            return DetailOutcome(
                index=index,
                candidate=candidate,
                error=f"url={candidate.url} kind=extraction error={exc}",
            )
        return DetailOutcome(index=index, candidate=candidate, record=record)

    @staticmethod
    def _status(*, error_count: int, upserted: int, timed_out: bool) -> str:
        if error_count == 0 and not timed_out:
            return "success"
        if upserted > 0:
            return "partial_success"
        return "failed"
