"""
Normalization and deduplication of extracted vehicle records.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace

from app.crawling.logging_utils import log_event
from app.crawling.normalization.values import coerce_int, plausible_mileage, plausible_price
from app.crawling.urls import canonicalize_url
from app.domain.vehicle import ATTRIBUTE_MILEAGE, VehicleRecord

logger = logging.getLogger(__name__)


class VehicleNormalizer:
    """
    Canonicalize, sanity-check and deduplicate raw records.

    Input order is the processing order (listing paths in configured order,
    URLs in document order). For a repeated canonical URL the later record
    wins and takes the position of the first occurrence.
    """

    def normalize(self, raw_records: Iterable[VehicleRecord]) -> list[VehicleRecord]:
        by_url: dict[str, VehicleRecord] = {}
        for raw in raw_records:
            record = self._normalize_one(raw)
            if record is None:
                continue
            by_url[record.canonical_url] = record
        return list(by_url.values())

    def _normalize_one(self, record: VehicleRecord) -> VehicleRecord | None:
        try:
            canonical_url = canonicalize_url(record.canonical_url)
        except ValueError:
            log_event(
                logger,
                logging.WARNING,
                "record_url_invalid",
                dealer_id=record.dealer_id,
                url=record.canonical_url,
            )
            return None

        title = " ".join(record.title.split()) if record.title else None
        price = plausible_price(coerce_int(record.price))
        if record.price is not None and price is None:
            log_event(
                logger,
                logging.INFO,
                "implausible_price_discarded",
                dealer_id=record.dealer_id,
                url=canonical_url,
                price=record.price,
            )

        attributes = dict(record.attributes)
        if ATTRIBUTE_MILEAGE in attributes:
            mileage = plausible_mileage(coerce_int(attributes[ATTRIBUTE_MILEAGE]))
            if mileage is None:
                attributes.pop(ATTRIBUTE_MILEAGE)
            else:
                attributes[ATTRIBUTE_MILEAGE] = mileage

        normalized = replace(
            record,
            canonical_url=canonical_url,
            title=title or None,
            price=price,
            attributes=attributes,
        )
        if not normalized.is_usable:
            return None
        return normalized
