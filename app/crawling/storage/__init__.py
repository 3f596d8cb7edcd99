"""
Storage layer exports.
"""

from app.crawling.storage.base import CatalogStore
from app.crawling.storage.sqlalchemy_storage import SQLAlchemyCatalogStore

__all__ = ["CatalogStore", "SQLAlchemyCatalogStore"]
