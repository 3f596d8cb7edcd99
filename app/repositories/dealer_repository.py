"""
app/repositories/dealer_repository.py

Read access to dealer crawl configuration rows.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.dealer import Dealer


class DealerRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get_active(self, dealer_id: str) -> dict[str, Any] | None:
        """
        Return the raw config mapping for an active dealer, or None.
        """

        row = self._session.scalar(
            select(Dealer).where(Dealer.id == dealer_id, Dealer.is_active.is_(True))
        )
        if row is None:
            return None
        return {
            "id": row.id,
            "site_url": row.site_url,
            "list_paths": row.list_paths,
            "detail_path_pattern": row.detail_path_pattern,
            "excluded_paths": row.excluded_paths,
            "price_selectors": row.price_selectors,
            "user_agent": row.user_agent,
            "min_request_interval_seconds": row.min_request_interval_seconds,
        }

    def list_active_ids(self) -> list[str]:
        stmt = select(Dealer.id).where(Dealer.is_active.is_(True)).order_by(Dealer.id)
        return list(self._session.scalars(stmt).all())
