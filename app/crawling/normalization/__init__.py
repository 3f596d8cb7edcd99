"""
Normalization layer exports.
"""

from app.crawling.normalization.values import (
    MILEAGE_MAX,
    MILEAGE_MIN,
    PRICE_MAX,
    PRICE_MIN,
    coerce_int,
    plausible_mileage,
    plausible_price,
)
from app.crawling.normalization.vehicle_normalizer import VehicleNormalizer

__all__ = [
    "MILEAGE_MAX",
    "MILEAGE_MIN",
    "PRICE_MAX",
    "PRICE_MIN",
    "VehicleNormalizer",
    "coerce_int",
    "plausible_mileage",
    "plausible_price",
]
