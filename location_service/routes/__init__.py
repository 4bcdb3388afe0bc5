"""
Location Service Routes Package

Blueprint registration for all API route modules:
- Locations: CRUD and proximity search
- Data: Statistics and bulk import/export
"""

# Import Locations blueprint from its module
from location_service.routes.locations import locations_bp

# Import Data blueprint from its module
from location_service.routes.data import data_bp


__all__ = [
    'locations_bp',
    'data_bp',
]
