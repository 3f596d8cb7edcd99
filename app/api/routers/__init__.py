"""
app/api/routers package marker.
"""

from app.api.routers.crawl import router as crawl_router
from app.api.routers.inventory import router as inventory_router

__all__ = [
    "crawl_router",
    "inventory_router",
]
