"""
Field extraction strategies for vehicle detail pages.

Each strategy takes a ParsedDocument and returns a value or None. Chains
of strategies are evaluated in priority order by AttributeExtractor.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from app.crawling.normalization.values import coerce_int, plausible_mileage, plausible_price
from app.crawling.parsing.document import ParsedDocument, clean_text

T = TypeVar("T")
Strategy = Callable[[ParsedDocument], Any]

CURRENCY_PRICE_REGEX = re.compile(
    r"(?:£|GBP\s?|\$|€|EUR\s?)\s?(\d{1,3}(?:,\d{3})+|\d{3,})(?:\.\d{1,2})?",
    flags=re.IGNORECASE,
)
FINANCE_SUFFIX_REGEX = re.compile(
    r"^\s*(?:/\s*m(?:o|th|onth)?\b|p/?m\b|per\s+month|a\s+month|monthly|deposit)",
    flags=re.IGNORECASE,
)
MILEAGE_REGEX = re.compile(r"(\d{1,3}(?:,\d{3})+|\d+)\s*miles?\b", flags=re.IGNORECASE)

FUEL_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("Petrol", re.compile(r"\b(?:petrol|gasoline|unleaded)\b", flags=re.IGNORECASE)),
    ("Diesel", re.compile(r"\bdiesel\b", flags=re.IGNORECASE)),
    ("Hybrid", re.compile(r"\b(?:hybrid|phev|mhev)\b", flags=re.IGNORECASE)),
    (
        "Electric",
        re.compile(
            r"\b(?:electric|bev)\b(?!\s+(?:windows?|mirrors?|seats?|sunroof|tailgate|"
            r"parking\s+brake|handbrake|boot|folding))",
            flags=re.IGNORECASE,
        ),
    ),
)
TRANSMISSION_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    (
        "Automatic",
        re.compile(
            r"\b(?:automatic|semi[-\s]?auto(?:matic)?|auto|dsg|cvt|tiptronic|s[-\s]?tronic|steptronic|powershift)\b"
            r"(?![-\s]+(?:trader|lights?|headlights?|headlamps?|wipers?|climate|air[-\s]?con(?:ditioning)?|"
            r"dimming|hold|express|emergency|high[-\s]?beam|parking|start|tailgate|boot|windows?|folding|locking))",
            flags=re.IGNORECASE,
        ),
    ),
    (
        "Manual",
        re.compile(
            r"(?<!owner's )(?<!owners )\bmanual\b(?!\s+(?:air|climate|seats?|handbook))",
            flags=re.IGNORECASE,
        ),
    ),
)

ULEZ_REGEX = re.compile(r"\bulez\b", flags=re.IGNORECASE)
ULEZ_NEGATION_REGEX = re.compile(
    r"\bnon[-\s]?(?:ulez[-\s]?)?compliant\b"
    r"|\bnot\s+(?:ulez[-\s]+)?compliant\b"
    r"|\bnon[-\s]?ulez\b"
    r"|\bnot\s+ulez\b"
    r"|\bfails?\s+ulez\b"
    r"|\bulez\s*(?::\s*)?(?:no|non)\b",
    flags=re.IGNORECASE,
)
ULEZ_QUALIFIER_REGEX = re.compile(
    r"\b(?:complian(?:t|ce)|friendly|exempt|ok|yes)\b|[✓✔]",
    flags=re.IGNORECASE,
)
ULEZ_WINDOW = 40

_AFFIRMATIVE = frozenset({"yes", "y", "true", "compliant", "ulez compliant", "✓", "✔"})
_NEGATIVE = frozenset({"no", "n", "false", "non-compliant", "non compliant", "not compliant", "✗", "✘"})


def first_keyword(text: str, patterns: Sequence[tuple[str, re.Pattern[str]]]) -> str | None:
    """
    Canonical value of the keyword occurring earliest in `text`.
    """

    best: tuple[int, str] | None = None
    for canonical, pattern in patterns:
        match = pattern.search(text)
        if match is not None and (best is None or match.start() < best[0]):
            best = (match.start(), canonical)
    return best[1] if best is not None else None


# Title


def title_from_heading(document: ParsedDocument) -> str | None:
    heading = document.soup.find("h1")
    if heading is None:
        return None
    return clean_text(heading.get_text(" ", strip=True)) or None


def title_from_social_meta(document: ParsedDocument) -> str | None:
    return document.meta_content("og:title", "twitter:title")


def title_from_document_title(document: ParsedDocument) -> str | None:
    node = document.soup.find("title")
    if node is None:
        return None
    return clean_text(node.get_text(" ", strip=True)) or None


# Price


def price_from_structured_metadata(document: ParsedDocument) -> int | None:
    for node in document.soup.find_all(attrs={"itemprop": "price"}):
        raw = node.get("content") or node.get_text(" ", strip=True)
        price = plausible_price(coerce_int(raw))
        if price is not None:
            return price

    meta = document.meta_content("product:price:amount", "og:price:amount")
    price = plausible_price(coerce_int(meta))
    if price is not None:
        return price

    for item in document.json_ld_objects():
        for offer in _json_ld_offers(item):
            price = plausible_price(coerce_int(offer.get("price")))
            if price is not None:
                return price
    return None


def price_from_selectors(selectors: Sequence[str]) -> Strategy:
    """
    Strategy reading the first price-styled element that holds a plausible price.
    """

    frozen = tuple(selectors)

    def _strategy(document: ParsedDocument) -> int | None:
        for selector in frozen:
            for node in document.soup.select(selector)[:50]:
                raw = node.get("content") or node.get("data-price") or node.get_text(" ", strip=True)
                price = _price_in_text(str(raw)) or plausible_price(_bare_number(str(raw)))
                if price is not None:
                    return price
        return None

    _strategy.__name__ = "price_from_selectors"
    return _strategy


def price_from_text(document: ParsedDocument) -> int | None:
    return _price_in_text(document.visible_text)


def _price_in_text(text: str) -> int | None:
    for match in CURRENCY_PRICE_REGEX.finditer(text):
        if FINANCE_SUFFIX_REGEX.match(text[match.end() : match.end() + 20]):
            continue
        price = plausible_price(coerce_int(match.group(1)))
        if price is not None:
            return price
    return None


def _bare_number(text: str) -> int | None:
    stripped = text.strip()
    if not re.fullmatch(r"\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?|\d{3,}(?:\.\d{1,2})?", stripped):
        return None
    return coerce_int(stripped)


def _json_ld_offers(item: dict[str, Any]) -> list[dict[str, Any]]:
    item_type = item.get("@type")
    types = {str(value).lower() for value in (item_type if isinstance(item_type, list) else [item_type])}
    if types & {"offer", "aggregateoffer"}:
        return [item]
    offers = item.get("offers")
    if isinstance(offers, dict):
        return [offers]
    if isinstance(offers, list):
        return [offer for offer in offers if isinstance(offer, dict)]
    return []


# Mileage


def mileage_from_labels(document: ParsedDocument) -> int | None:
    value = document.labelled_value("mileage", "odometer")
    if value is None:
        return None
    return plausible_mileage(coerce_int(value))


def mileage_from_text(document: ParsedDocument) -> int | None:
    for match in MILEAGE_REGEX.finditer(document.visible_text):
        mileage = plausible_mileage(coerce_int(match.group(1)))
        if mileage is not None:
            return mileage
    return None


# Fuel


def fuel_from_labels(document: ParsedDocument) -> str | None:
    value = document.labelled_value("fuel")
    return first_keyword(value, FUEL_PATTERNS) if value else None


def fuel_from_text(document: ParsedDocument) -> str | None:
    return first_keyword(document.visible_text, FUEL_PATTERNS)


# Transmission


def transmission_from_labels(document: ParsedDocument) -> str | None:
    value = document.labelled_value("transmission", "gearbox")
    return first_keyword(value, TRANSMISSION_PATTERNS) if value else None


def transmission_from_text(document: ParsedDocument) -> str | None:
    return first_keyword(document.visible_text, TRANSMISSION_PATTERNS)


# ULEZ compliance


def ulez_from_labels(document: ParsedDocument) -> bool | None:
    value = document.labelled_value("ulez")
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized in _NEGATIVE or ULEZ_NEGATION_REGEX.search(normalized):
        return False
    if normalized in _AFFIRMATIVE or ULEZ_QUALIFIER_REGEX.search(normalized):
        return True
    return None


def ulez_from_text(document: ParsedDocument) -> bool | None:
    """
    A negation anywhere near a ULEZ mention wins over any positive mention.
    """

    text = document.visible_text
    qualified = False
    for match in ULEZ_REGEX.finditer(text):
        window = text[max(0, match.start() - ULEZ_WINDOW) : match.end() + ULEZ_WINDOW]
        if ULEZ_NEGATION_REGEX.search(window):
            return False
        if ULEZ_QUALIFIER_REGEX.search(window):
            qualified = True
    return True if qualified else None
