"""
app/repositories package marker.
"""

from app.repositories.dealer_repository import DealerRepository
from app.repositories.vehicle_repository import VehicleRepository

__all__ = [
    "DealerRepository",
    "VehicleRepository",
]
