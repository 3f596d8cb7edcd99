"""
app/schemas/inventory.py

Response schemas for catalog search.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from app.domain.vehicle import (
    ATTRIBUTE_FUEL,
    ATTRIBUTE_MILEAGE,
    ATTRIBUTE_TRANSMISSION,
    ATTRIBUTE_ULEZ_COMPLIANT,
    CatalogEntry,
)


class InventoryItemResponse(BaseModel):
    dealer_id: str
    url: str
    title: str | None = None
    price: int | None = None
    fuel: str | None = None
    transmission: str | None = None
    mileage: int | None = None
    ulez_compliant: bool | None = None
    attributes: dict[str, Any] = Field(default_factory=dict)
    first_seen: datetime
    last_seen: datetime
    is_stale: bool = False

    @classmethod
    def from_entry(cls, entry: CatalogEntry) -> "InventoryItemResponse":
        attributes = entry.attributes or {}
        return cls(
            dealer_id=entry.dealer_id,
            url=entry.canonical_url,
            title=entry.title,
            price=entry.price,
            fuel=attributes.get(ATTRIBUTE_FUEL),
            transmission=attributes.get(ATTRIBUTE_TRANSMISSION),
            mileage=attributes.get(ATTRIBUTE_MILEAGE),
            ulez_compliant=attributes.get(ATTRIBUTE_ULEZ_COMPLIANT),
            attributes=dict(attributes),
            first_seen=entry.first_seen,
            last_seen=entry.last_seen,
            is_stale=entry.is_stale,
        )


class InventorySearchResponse(BaseModel):
    results: list[InventoryItemResponse] = Field(default_factory=list)
