"""
Storage layer interfaces for the vehicle catalog.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import datetime

from app.domain.vehicle import CatalogEntry, VehicleQuery, VehicleRecord


class CatalogStore(ABC):
    """
    Catalog abstraction keyed by (dealer_id, canonical_url).

    Implementations raise StoreError for any backend failure and provide
    atomicity per `upsert` call.
    """

    @abstractmethod
    def existing(self, *, dealer_id: str, canonical_urls: Sequence[str]) -> dict[str, CatalogEntry]:
        """
        Return stored entries for the given URLs, keyed by canonical URL.
        """

    @abstractmethod
    def upsert(self, records: Sequence[VehicleRecord], *, seen_at: datetime) -> int:
        """
        Insert or conflict-replace extracted fields; never touches first_seen.
        """

    @abstractmethod
    def mark_stale(
        self,
        *,
        dealer_id: str,
        seen_before: datetime,
        seen_urls: Sequence[str] = (),
    ) -> int:
        """
        Flag the dealer's entries last seen before `seen_before`, except
        those whose canonical URL is in `seen_urls`.
        """

    @abstractmethod
    def search(self, query: VehicleQuery) -> list[CatalogEntry]:
        """
        Filtered read ordered by price ascending.
        """
