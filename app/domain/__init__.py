"""
app/domain package marker.
"""

from app.domain.crawl import CrawlSummary, ReconcileResult
from app.domain.vehicle import CatalogEntry, VehicleQuery, VehicleRecord

__all__ = [
    "CatalogEntry",
    "CrawlSummary",
    "ReconcileResult",
    "VehicleQuery",
    "VehicleRecord",
]
