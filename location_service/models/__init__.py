"""
Location Service Models Package

SQLAlchemy models for location observations.
"""

from location_service.models.location import (
    Location,
    LocationType,
)

__all__ = [
    'Location',
    'LocationType',
]
