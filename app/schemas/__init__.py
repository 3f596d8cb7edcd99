"""
app/schemas package marker.
"""

from app.schemas.crawl import CrawlSummaryResponse
from app.schemas.inventory import InventoryItemResponse, InventorySearchResponse

__all__ = [
    "CrawlSummaryResponse",
    "InventoryItemResponse",
    "InventorySearchResponse",
]
