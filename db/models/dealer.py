"""
db/models/dealer.py

Dealer crawl target configuration, one row per dealer website.
"""

from __future__ import annotations

from sqlalchemy import Boolean, Float, Index, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, EditedTimestampMixin


class Dealer(Base, EditedTimestampMixin):
    """
    Read-only input for the crawler; the crawler never writes this table.
    """

    __tablename__ = "dealers"

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        comment="Stable lowercase dealer identifier",
    )
    site_url: Mapped[str] = mapped_column(Text, nullable=False)
    list_paths: Mapped[list[str]] = mapped_column(
        JSONB,
        nullable=False,
        comment="Ordered listing-page paths relative to site_url",
    )
    detail_path_pattern: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Regex matched against candidate detail-page paths",
    )
    excluded_paths: Mapped[list[str] | None] = mapped_column(JSONB, nullable=True)
    price_selectors: Mapped[list[str] | None] = mapped_column(JSONB, nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(255), nullable=True)
    min_request_interval_seconds: Mapped[float | None] = mapped_column(Float, nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=text("true"),
    )

    __table_args__ = (Index("ix_dealers_is_active", "is_active"),)
