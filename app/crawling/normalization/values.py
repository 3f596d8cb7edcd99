"""
Numeric coercion and plausibility bands for extracted values.
"""

from __future__ import annotations

import re

PRICE_MIN = 500
PRICE_MAX = 500_000
MILEAGE_MIN = 0
MILEAGE_MAX = 500_000

_NUMBER_REGEX = re.compile(r"\d[\d,\s]*(?:\.\d+)?")


def coerce_int(value: object) -> int | None:
    """
    Coerce numeric text such as "12,995.00" or "34 000" into an int.
    """

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(round(value))
    if not isinstance(value, str):
        return None
    match = _NUMBER_REGEX.search(value)
    if match is None:
        return None
    digits = re.sub(r"[,\s]", "", match.group(0))
    try:
        return int(round(float(digits)))
    except ValueError:
        return None


def plausible_price(value: int | None) -> int | None:
    if value is None or not PRICE_MIN <= value <= PRICE_MAX:
        return None
    return value


def plausible_mileage(value: int | None) -> int | None:
    if value is None or not MILEAGE_MIN <= value <= MILEAGE_MAX:
        return None
    return value
