"""
Reconciliation of normalized records against the catalog store.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timezone

from app.crawling.errors import StoreError
from app.crawling.logging_utils import log_event
from app.crawling.storage.base import CatalogStore
from app.domain.crawl import ReconcileResult
from app.domain.vehicle import CatalogEntry, VehicleRecord

logger = logging.getLogger(__name__)


class Reconciler:
    """
    Diff records against stored entries and upsert them in bounded chunks.

    Every record is written so last_seen moves even when nothing changed.
    A chunk that fails twice is reported as failed; chunks committed before
    it stay committed. Nothing is ever deleted.
    """

    def __init__(
        self,
        *,
        store: CatalogStore,
        batch_size: int = 200,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._batch_size = max(1, batch_size)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def reconcile(
        self,
        dealer_id: str,
        records: Sequence[VehicleRecord],
        *,
        seen_at: datetime | None = None,
    ) -> ReconcileResult:
        seen = seen_at or self._clock()
        inserted = updated = unchanged = failed = 0
        errors: list[str] = []

        for start in range(0, len(records), self._batch_size):
            chunk = list(records[start : start + self._batch_size])
            try:
                chunk_counts = self._reconcile_chunk(dealer_id, chunk, seen)
            except StoreError as exc:
                failed += len(chunk)
                message = f"batch_start={start} size={len(chunk)} error={exc}"
                errors.append(message)
                log_event(
                    logger,
                    logging.ERROR,
                    "store_batch_failed",
                    dealer_id=dealer_id,
                    batch_start=start,
                    batch_size=len(chunk),
                    error=str(exc),
                )
                continue
            inserted += chunk_counts[0]
            updated += chunk_counts[1]
            unchanged += chunk_counts[2]

        result = ReconcileResult(
            inserted=inserted,
            updated=updated,
            unchanged=unchanged,
            failed=failed,
            errors=errors,
        )
        log_event(
            logger,
            logging.INFO,
            "reconcile_completed",
            dealer_id=dealer_id,
            inserted=inserted,
            updated=updated,
            unchanged=unchanged,
            failed=failed,
        )
        return result

    def mark_stale(
        self,
        dealer_id: str,
        *,
        seen_before: datetime,
        seen_urls: Sequence[str] = (),
    ) -> int:
        """
        Flag entries a complete crawl did not re-observe. Separate from reconcile.

        `seen_urls` holds every URL the run discovered; those are never
        flagged, even when their detail page failed or was dropped.
        """

        flagged = self._store.mark_stale(dealer_id=dealer_id, seen_before=seen_before, seen_urls=seen_urls)
        log_event(logger, logging.INFO, "stale_marked", dealer_id=dealer_id, flagged=flagged)
        return flagged

    def _reconcile_chunk(
        self,
        dealer_id: str,
        chunk: list[VehicleRecord],
        seen_at: datetime,
    ) -> tuple[int, int, int]:
        last_error: StoreError | None = None
        for attempt in range(2):
            try:
                existing = self._store.existing(
                    dealer_id=dealer_id,
                    canonical_urls=[record.canonical_url for record in chunk],
                )
                self._store.upsert(chunk, seen_at=seen_at)
            except StoreError as exc:
                last_error = exc
                log_event(
                    logger,
                    logging.WARNING,
                    "store_batch_retry" if attempt == 0 else "store_batch_retry_exhausted",
                    dealer_id=dealer_id,
                    batch_size=len(chunk),
                    error=str(exc),
                )
                continue
            return self._classify(chunk, existing)
        raise StoreError(str(last_error)) from last_error

    @staticmethod
    def _classify(
        chunk: list[VehicleRecord],
        existing: dict[str, CatalogEntry],
    ) -> tuple[int, int, int]:
        inserted = updated = unchanged = 0
        for record in chunk:
            stored = existing.get(record.canonical_url)
            if stored is None:
                inserted += 1
            elif stored.extracted_fields() != record.extracted_fields():
                updated += 1
            else:
                unchanged += 1
        return inserted, updated, unchanged
