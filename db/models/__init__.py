"""
Model package exports.

Importing this package registers every table on Base.metadata for Alembic.
"""

from db.models.dealer import Dealer
from db.models.vehicle import Vehicle

__all__ = ["Dealer", "Vehicle"]
