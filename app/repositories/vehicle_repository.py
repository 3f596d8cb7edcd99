"""
app/repositories/vehicle_repository.py

Persistence layer for the vehicle catalog.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import Select, Update, case, false, or_, select, update
from sqlalchemy.dialects.postgresql import Insert, insert
from sqlalchemy.orm import Session

from app.domain.vehicle import (
    ATTRIBUTE_FUEL,
    ATTRIBUTE_TRANSMISSION,
    ATTRIBUTE_ULEZ_COMPLIANT,
    VehicleQuery,
    VehicleRecord,
)
from db.models.vehicle import VEHICLE_IDENTITY_CONSTRAINT, Vehicle

_MAX_SEARCH_LIMIT = 50


class VehicleRepository:
    """
    Repository for keyed upserts and filtered reads of vehicle listings.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def find_by_urls(self, *, dealer_id: str, canonical_urls: Sequence[str]) -> list[Vehicle]:
        if not canonical_urls:
            return []
        stmt = select(Vehicle).where(
            Vehicle.dealer_id == dealer_id,
            Vehicle.canonical_url.in_(list(canonical_urls)),
        )
        return list(self._session.scalars(stmt).all())

    def upsert(self, records: Sequence[VehicleRecord], *, seen_at: datetime) -> int:
        """
        Insert or replace extracted fields for each record, returning rows written.
        """

        if not records:
            return 0
        stmt = self.build_upsert_statement(self._payloads(records, seen_at=seen_at))
        return len(self._session.scalars(stmt).all())

    @staticmethod
    def build_upsert_statement(payloads: Sequence[dict[str, Any]]) -> Insert:
        """
        INSERT ... ON CONFLICT (dealer_id, canonical_url) DO UPDATE.

        first_seen is never part of the update set. updated_at only moves
        when an extracted field is distinct from the stored value.
        """

        stmt = insert(Vehicle).values(list(payloads))
        excluded = stmt.excluded
        changed = or_(
            Vehicle.title.is_distinct_from(excluded.title),
            Vehicle.price.is_distinct_from(excluded.price),
            Vehicle.attributes.is_distinct_from(excluded.attributes),
        )
        return stmt.on_conflict_do_update(
            constraint=VEHICLE_IDENTITY_CONSTRAINT,
            set_={
                "title": excluded.title,
                "price": excluded.price,
                "attributes": excluded.attributes,
                "last_seen": excluded.last_seen,
                "is_stale": false(),
                "updated_at": case((changed, excluded.updated_at), else_=Vehicle.updated_at),
            },
        ).returning(Vehicle.id)

    def mark_stale(
        self,
        *,
        dealer_id: str,
        seen_before: datetime,
        seen_urls: Sequence[str] = (),
    ) -> int:
        stmt = self.build_mark_stale_statement(
            dealer_id=dealer_id,
            seen_before=seen_before,
            seen_urls=seen_urls,
        )
        result = self._session.execute(stmt)
        return int(result.rowcount or 0)

    @staticmethod
    def build_mark_stale_statement(
        *,
        dealer_id: str,
        seen_before: datetime,
        seen_urls: Sequence[str] = (),
    ) -> Update:
        """
        Flag rows last seen before the run started, skipping URLs the run
        discovered even when their detail page could not be stored.
        """

        stmt = update(Vehicle).where(
            Vehicle.dealer_id == dealer_id,
            Vehicle.last_seen < seen_before,
            Vehicle.is_stale.is_(False),
        )
        if seen_urls:
            stmt = stmt.where(Vehicle.canonical_url.not_in(list(seen_urls)))
        return stmt.values(is_stale=True).execution_options(synchronize_session=False)

    def search(self, query: VehicleQuery) -> list[Vehicle]:
        return list(self._session.scalars(self.build_search_statement(query)).all())

    @staticmethod
    def build_search_statement(query: VehicleQuery) -> Select:
        stmt = select(Vehicle)
        if query.dealer_id:
            stmt = stmt.where(Vehicle.dealer_id == query.dealer_id)
        if not query.include_stale:
            stmt = stmt.where(Vehicle.is_stale.is_(False))
        if query.price_max is not None:
            stmt = stmt.where(Vehicle.price <= query.price_max)
        for term in query.title_terms:
            if term.strip():
                stmt = stmt.where(Vehicle.title.ilike(f"%{_escape_like(term.strip())}%", escape="\\"))
        if query.fuel:
            stmt = stmt.where(
                Vehicle.attributes[ATTRIBUTE_FUEL].astext.ilike(
                    f"%{_escape_like(query.fuel.strip())}%", escape="\\"
                )
            )
        if query.transmission:
            stmt = stmt.where(
                Vehicle.attributes[ATTRIBUTE_TRANSMISSION].astext.ilike(
                    f"%{_escape_like(query.transmission.strip())}%", escape="\\"
                )
            )
        if query.ulez_compliant is not None:
            stmt = stmt.where(
                Vehicle.attributes[ATTRIBUTE_ULEZ_COMPLIANT].astext
                == ("true" if query.ulez_compliant else "false")
            )
        limit = min(_MAX_SEARCH_LIMIT, max(1, query.limit))
        return stmt.order_by(Vehicle.price.asc().nulls_last(), Vehicle.canonical_url).limit(limit)

    @staticmethod
    def _payloads(records: Sequence[VehicleRecord], *, seen_at: datetime) -> list[dict[str, Any]]:
        # One statement cannot touch the same conflict key twice; last record wins.
        by_key: dict[tuple[str, str], dict[str, Any]] = {}
        for record in records:
            by_key[(record.dealer_id, record.canonical_url)] = {
                "dealer_id": record.dealer_id,
                "canonical_url": record.canonical_url,
                "title": record.title,
                "price": record.price,
                "attributes": dict(record.attributes),
                "first_seen": seen_at,
                "last_seen": seen_at,
                "updated_at": seen_at,
                "is_stale": False,
            }
        return list(by_key.values())


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
