"""
Location Service - REST API for plant and litter observations

This package provides the backend for the location tracker:
- Identifier-keyed upsert of location records
- Listing, partial update and deletion
- Nearby search (bounding box + great-circle ranking)
- Aggregate statistics and bulk import/export
"""

__version__ = "1.0.0"
