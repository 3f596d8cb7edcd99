"""
app/domain/vehicle.py

Domain models for extracted and persisted vehicle listings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

ATTRIBUTE_FUEL = "fuel"
ATTRIBUTE_TRANSMISSION = "transmission"
ATTRIBUTE_MILEAGE = "mileage"
ATTRIBUTE_ULEZ_COMPLIANT = "ulez_compliant"


@dataclass(frozen=True)
class VehicleRecord:
    """
    One extracted vehicle listing keyed by (dealer_id, canonical_url).

    `price` is a whole number of currency units. `attributes` is an open
    map; absent attributes are simply missing keys.
    """

    dealer_id: str
    canonical_url: str
    title: str | None = None
    price: int | None = None
    attributes: dict[str, Any] = field(default_factory=dict)
    source_path: str | None = None

    @property
    def is_usable(self) -> bool:
        return bool(self.title) or self.price is not None

    def extracted_fields(self) -> dict[str, Any]:
        """
        Fields owned by the crawler, used for change detection and writes.
        """

        return {
            "title": self.title,
            "price": self.price,
            "attributes": dict(self.attributes),
        }


@dataclass(frozen=True)
class CatalogEntry:
    """
    Persisted vehicle listing with store-managed lifecycle metadata.
    """

    dealer_id: str
    canonical_url: str
    title: str | None
    price: int | None
    attributes: dict[str, Any]
    first_seen: datetime
    last_seen: datetime
    updated_at: datetime
    is_stale: bool = False

    def extracted_fields(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "price": self.price,
            "attributes": dict(self.attributes or {}),
        }


@dataclass(frozen=True)
class VehicleQuery:
    """
    Read-side filter for catalog search, ordered by price ascending.
    """

    dealer_id: str | None = None
    price_max: int | None = None
    title_terms: tuple[str, ...] = ()
    fuel: str | None = None
    transmission: str | None = None
    ulez_compliant: bool | None = None
    include_stale: bool = False
    limit: int = 24
