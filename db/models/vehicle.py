"""
db/models/vehicle.py

Catalog of vehicle listings discovered on dealer websites.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import Boolean, Index, Integer, String, Text, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, CrawlTimestampMixin

VEHICLE_IDENTITY_CONSTRAINT = "uq_vehicles_dealer_canonical_url"


class Vehicle(Base, CrawlTimestampMixin):
    """
    One listing keyed by (dealer_id, canonical_url).

    Timestamps follow CrawlTimestampMixin. Rows are never deleted by the
    crawler; is_stale flags listings a complete crawl no longer found.
    """

    __tablename__ = "vehicles"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    dealer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    canonical_url: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    price: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        comment="Whole currency units",
    )
    attributes: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        server_default=text("'{}'::jsonb"),
        comment="Open attribute bag: fuel, transmission, mileage, ulez_compliant, ...",
    )
    is_stale: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    __table_args__ = (
        UniqueConstraint("dealer_id", "canonical_url", name=VEHICLE_IDENTITY_CONSTRAINT),
        Index("ix_vehicles_dealer_price", "dealer_id", "price"),
        Index("ix_vehicles_dealer_title", "dealer_id", "title"),
        Index("ix_vehicles_dealer_is_stale", "dealer_id", "is_stale"),
    )
