"""
app/services package marker.
"""

from app.services.dealer_crawl_service import DealerCrawlService, get_dealer_crawl_service

__all__ = [
    "DealerCrawlService",
    "get_dealer_crawl_service",
]
