"""
db/base.py

Declarative base and the two timestamp schemes used by the catalog.

Configuration rows (dealers) are edited by operators, so the ORM refreshes
their updated_at on every UPDATE. Crawled rows (vehicles) are written only
through the conflict-replace upsert, which sets every timestamp itself:
nothing there may be refreshed implicitly.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class EditedTimestampMixin:
    """
    created_at / updated_at for operator-maintained rows.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=utc_now,
    )


class CrawlTimestampMixin:
    """
    Observation timestamps for crawled rows.

    first_seen is written on insert only. last_seen moves on every crawl
    that re-observes the row. updated_at moves only when an extracted field
    changes; it has no onupdate hook.
    """

    first_seen: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    last_seen: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
