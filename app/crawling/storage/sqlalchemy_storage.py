"""
SQLAlchemy-backed catalog store.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.crawling.errors import StoreError
from app.crawling.storage.base import CatalogStore
from app.domain.vehicle import CatalogEntry, VehicleQuery, VehicleRecord
from app.repositories.vehicle_repository import VehicleRepository
from db.models.vehicle import Vehicle


class SQLAlchemyCatalogStore(CatalogStore):
    """
    Persist catalog entries through the repository and DB session.

    Each upsert call commits on its own so a later failing batch never
    rolls back earlier ones.
    """

    def __init__(self, *, session: Session) -> None:
        self._session = session
        self._repository = VehicleRepository(session)

    def existing(self, *, dealer_id: str, canonical_urls: Sequence[str]) -> dict[str, CatalogEntry]:
        try:
            rows = self._repository.find_by_urls(dealer_id=dealer_id, canonical_urls=canonical_urls)
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise StoreError(f"Catalog lookup failed for dealer={dealer_id}: {exc}") from exc
        return {row.canonical_url: _to_entry(row) for row in rows}

    def upsert(self, records: Sequence[VehicleRecord], *, seen_at: datetime) -> int:
        if not records:
            return 0
        try:
            written = self._repository.upsert(records, seen_at=seen_at)
            self._session.commit()
            return written
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise StoreError(f"Catalog upsert of {len(records)} records failed: {exc}") from exc

    def mark_stale(
        self,
        *,
        dealer_id: str,
        seen_before: datetime,
        seen_urls: Sequence[str] = (),
    ) -> int:
        try:
            flagged = self._repository.mark_stale(
                dealer_id=dealer_id,
                seen_before=seen_before,
                seen_urls=seen_urls,
            )
            self._session.commit()
            return flagged
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise StoreError(f"Stale marking failed for dealer={dealer_id}: {exc}") from exc

    def search(self, query: VehicleQuery) -> list[CatalogEntry]:
        try:
            return [_to_entry(row) for row in self._repository.search(query)]
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise StoreError(f"Catalog search failed: {exc}") from exc


def _to_entry(row: Vehicle) -> CatalogEntry:
    return CatalogEntry(
        dealer_id=row.dealer_id,
        canonical_url=row.canonical_url,
        title=row.title,
        price=row.price,
        attributes=dict(row.attributes or {}),
        first_seen=row.first_seen,
        last_seen=row.last_seen,
        updated_at=row.updated_at,
        is_stale=bool(row.is_stale),
    )
