"""
Strategy-chain attribute extraction for vehicle detail pages.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from app.crawling.config.models import DEFAULT_PRICE_SELECTORS, DealerConfig
from app.crawling.logging_utils import log_event
from app.crawling.parsing import strategies
from app.crawling.parsing.document import ParsedDocument
from app.crawling.parsing.strategies import Strategy
from app.crawling.urls import canonicalize_url
from app.domain.vehicle import (
    ATTRIBUTE_FUEL,
    ATTRIBUTE_MILEAGE,
    ATTRIBUTE_TRANSMISSION,
    ATTRIBUTE_ULEZ_COMPLIANT,
    VehicleRecord,
)

logger = logging.getLogger(__name__)

FIELD_TITLE = "title"
FIELD_PRICE = "price"
ATTRIBUTE_FIELDS = (ATTRIBUTE_FUEL, ATTRIBUTE_TRANSMISSION, ATTRIBUTE_MILEAGE, ATTRIBUTE_ULEZ_COMPLIANT)


class AttributeExtractor:
    """
    Extract a VehicleRecord from one detail page.

    Every field is resolved independently through its own ordered chain;
    the first strategy returning a value wins. A failing strategy counts
    as no match, so one field can never abort the others.
    """

    def __init__(
        self,
        *,
        dealer_id: str,
        price_selectors: Sequence[str] = DEFAULT_PRICE_SELECTORS,
    ) -> None:
        self._dealer_id = dealer_id
        self._chains: dict[str, list[Strategy]] = {
            FIELD_TITLE: [
                strategies.title_from_heading,
                strategies.title_from_social_meta,
                strategies.title_from_document_title,
            ],
            FIELD_PRICE: [
                strategies.price_from_structured_metadata,
                strategies.price_from_selectors(price_selectors),
                strategies.price_from_text,
            ],
            ATTRIBUTE_MILEAGE: [strategies.mileage_from_labels, strategies.mileage_from_text],
            ATTRIBUTE_FUEL: [strategies.fuel_from_labels, strategies.fuel_from_text],
            ATTRIBUTE_TRANSMISSION: [
                strategies.transmission_from_labels,
                strategies.transmission_from_text,
            ],
            ATTRIBUTE_ULEZ_COMPLIANT: [strategies.ulez_from_labels, strategies.ulez_from_text],
        }

    @classmethod
    def for_dealer(cls, config: DealerConfig) -> "AttributeExtractor":
        return cls(dealer_id=config.id, price_selectors=config.price_selectors)

    def register_strategy(self, field: str, strategy: Strategy, *, first: bool = True) -> None:
        """
        Add a dealer-specific strategy to a field chain, new fields included.
        """

        chain = self._chains.setdefault(field, [])
        if first:
            chain.insert(0, strategy)
        else:
            chain.append(strategy)

    def extract(
        self,
        document: str,
        url: str,
        *,
        source_path: str | None = None,
    ) -> VehicleRecord | None:
        """
        Return the extracted record, or None when neither title nor price is found.
        """

        parsed = ParsedDocument(document, url)
        title = self.resolve(FIELD_TITLE, parsed)
        price = self.resolve(FIELD_PRICE, parsed)
        if not title and price is None:
            return None

        attributes: dict[str, Any] = {}
        for field in self._chains:
            if field in (FIELD_TITLE, FIELD_PRICE):
                continue
            value = self.resolve(field, parsed)
            if value is not None:
                attributes[field] = value

        return VehicleRecord(
            dealer_id=self._dealer_id,
            canonical_url=canonicalize_url(url),
            title=title or None,
            price=price,
            attributes=attributes,
            source_path=source_path,
        )

    def resolve(self, field: str, document: ParsedDocument) -> Any:
        for strategy in self._chains.get(field, []):
            try:
                value = strategy(document)
            except Exception as exc:  # noqa: BLE001
                log_event(
                    logger,
                    logging.WARNING,
                    "extraction_strategy_failed",
                    field=field,
                    strategy=getattr(strategy, "__name__", repr(strategy)),
                    url=document.url,
                    error=str(exc),
                )
                continue
            if value is not None and value != "":
                return value
        return None
