"""
Location Repository - storage layer for location records.

This module provides the LocationRepository class, the only code that talks
to the ``locations`` table. It handles:
- Identifier-keyed upsert (INSERT ... ON CONFLICT DO UPDATE)
- Partial updates expressed as a LocationUpdate mapping
- Listing, deletion and aggregate statistics
- Nearby search: bounding-box pre-filter plus great-circle ranking
- Bulk import that skips identifiers already stored

Every statement is parameterized; identifiers and values are never
concatenated into query text.

Example:
    from location_service.services.location_repository import LocationRepository

    repo = LocationRepository()
    location = repo.upsert(parse_location_payload(request.get_json()))
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import case, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from location_service.extensions import db
from location_service.models.location import Location, isoformat
from location_service.services import NotFoundError, ServerError, ValidationError
from location_service.services.validation import parse_address, parse_location_payload, parse_note


logger = logging.getLogger(__name__)


# Meters per degree of latitude; also applied to longitude
METERS_PER_DEGREE = 111320

# Mean Earth radius in meters
EARTH_RADIUS_METERS = 6371000

# Hard cap on nearby search results
NEARBY_LIMIT = 50

# Columns overwritten when an upsert hits an existing id
UPSERT_COLUMNS = ('type', 'note', 'latitude', 'longitude', 'timestamp', 'address')


def great_circle_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Distance in meters between two points on a sphere (haversine).

    Args:
        lat1, lng1: First point in degrees
        lat2, lng2: Second point in degrees

    Returns:
        Distance in meters
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    # Clamp against rounding drift just above 1.0
    a = min(1.0, max(0.0, a))
    return 2 * EARTH_RADIUS_METERS * math.asin(math.sqrt(a))


class LocationUpdate:
    """
    Partial update of a stored location.

    Holds a mapping of updatable field name to new value. Only fields that
    were present in the request are included, so ``{"address": null}``
    clears the address while an absent key leaves it alone.
    """

    UPDATABLE_FIELDS = ('note', 'address')

    def __init__(self, fields: Optional[Dict[str, Any]] = None):
        self.fields: Dict[str, Any] = dict(fields or {})

        unknown = set(self.fields) - set(self.UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError('Only note and address can be updated', {'fields': sorted(unknown)})

    @classmethod
    def from_payload(cls, data: Any) -> 'LocationUpdate':
        """
        Build an update from a PUT body, validating each present field.

        Keys other than note/address are ignored, as the endpoint only
        ever touched those two columns.
        """
        if not isinstance(data, dict):
            return cls()

        fields = {}
        if 'note' in data:
            fields['note'] = parse_note(data['note'])
        if 'address' in data:
            fields['address'] = parse_address(data['address'])
        return cls(fields)

    @property
    def is_empty(self) -> bool:
        return not self.fields

    def __repr__(self) -> str:
        return f"LocationUpdate({self.fields!r})"


class LocationRepository:
    """
    Storage operations for the ``locations`` table.

    Attributes:
        session: SQLAlchemy session (defaults to the Flask-SQLAlchemy session)
    """

    def __init__(self, session=None):
        self.session = session or db.session

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _dialect_insert(self):
        """Return the dialect-specific insert() supporting ON CONFLICT."""
        dialect = self.session.get_bind().dialect.name
        if dialect == 'postgresql':
            return postgresql.insert
        if dialect == 'sqlite':
            return sqlite.insert
        raise ServerError('Unsupported database dialect', {'dialect': dialect})

    def _commit(self, action: str) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Database error while {action}: {e}")
            raise ServerError(f'Failed to {action}')

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, location_id: int) -> Location:
        """
        Fetch one location.

        Raises:
            NotFoundError: If no location has this id
        """
        location = self.session.get(Location, location_id)
        if location is None:
            raise NotFoundError('Location not found', {'id': location_id})
        return location

    def list(self, location_type: Optional[str] = None, limit: int = 1000, offset: int = 0) -> List[Location]:
        """
        List locations, newest observation first.

        Args:
            location_type: Optional type filter
            limit: Maximum rows returned
            offset: Rows skipped
        """
        query = self.session.query(Location)
        if location_type:
            query = query.filter(Location.type == location_type)
        return query.order_by(Location.timestamp.desc()).limit(limit).offset(offset).all()

    def export_all(self) -> List[Dict[str, Any]]:
        """Return every location, newest first, in export form."""
        rows = self.session.query(Location).order_by(Location.timestamp.desc()).all()
        return [row.to_export_dict() for row in rows]

    def stats(self) -> Dict[str, Any]:
        """
        Aggregate counts over the table.

        Returns:
            dict with total, plants, litter, earliest and latest timestamps
        """
        total, plants, litter, earliest, latest = self.session.query(
            func.count(Location.id),
            func.count(case((Location.type == 'plant', 1))),
            func.count(case((Location.type == 'litter', 1))),
            func.min(Location.timestamp),
            func.max(Location.timestamp),
        ).one()

        return {
            'total': total,
            'plants': plants,
            'litter': litter,
            'earliest': isoformat(earliest),
            'latest': isoformat(latest),
        }

    def nearby(
        self,
        lat: float,
        lng: float,
        radius: float,
        location_type: Optional[str] = None,
        limit: int = NEARBY_LIMIT,
    ) -> List[Tuple[Location, float]]:
        """
        Find locations near a point, closest first.

        The bounding box converts the radius to degrees with a fixed
        factor for both axes, so at high latitudes the longitude span is
        narrower than the radius on the ground.

        Args:
            lat, lng: Query point in degrees
            radius: Radius in meters
            location_type: Optional type filter
            limit: Maximum results (capped at NEARBY_LIMIT)

        Returns:
            List of (Location, distance_in_meters) tuples
        """
        if radius < 0:
            raise ValidationError('radius must not be negative')

        radius_deg = radius / METERS_PER_DEGREE

        query = self.session.query(Location).filter(
            Location.latitude.between(lat - radius_deg, lat + radius_deg),
            Location.longitude.between(lng - radius_deg, lng + radius_deg),
        )
        if location_type:
            query = query.filter(Location.type == location_type)

        ranked = sorted(
            (
                (location, great_circle_distance(lat, lng, location.latitude, location.longitude))
                for location in query.all()
            ),
            key=lambda pair: pair[1],
        )
        return ranked[:min(limit, NEARBY_LIMIT)]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def upsert(self, values: Dict[str, Any]) -> Location:
        """
        Insert a location or overwrite the stored one with the same id.

        Repeating the call with the same id never creates a second row; it
        overwrites the mutable columns and bumps ``updated_at``.

        Args:
            values: Validated column values (see parse_location_payload)

        Returns:
            The stored Location
        """
        now = datetime.now(timezone.utc)
        insert = self._dialect_insert()

        stmt = insert(Location.__table__).values(
            **values,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[Location.__table__.c.id],
            set_={
                **{column: getattr(stmt.excluded, column) for column in UPSERT_COLUMNS},
                'updated_at': now,
            },
        )

        try:
            self.session.execute(stmt)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Error saving location {values.get('id')}: {e}")
            raise ServerError('Failed to save location')
        self._commit('save location')

        location = self.session.get(Location, values['id'], populate_existing=True)
        logger.info(
            f"Location saved: {location.type} at {location.latitude}, {location.longitude}"
        )
        return location

    def update(self, location_id: int, update: LocationUpdate) -> Location:
        """
        Apply a partial update.

        Raises:
            NotFoundError: If no location has this id
            ValidationError: If the update carries no fields
        """
        location = self.get(location_id)

        if update.is_empty:
            raise ValidationError('No fields to update')

        for field, value in update.fields.items():
            setattr(location, field, value)
        location.updated_at = datetime.now(timezone.utc)

        self._commit('update location')
        logger.info(f"Location updated: ID {location_id}")
        return location

    def delete(self, location_id: int) -> int:
        """
        Delete one location.

        Returns:
            The deleted id

        Raises:
            NotFoundError: If no location has this id
        """
        location = self.get(location_id)
        self.session.delete(location)
        self._commit('delete location')
        logger.info(f"Location deleted: ID {location_id}")
        return location_id

    def delete_all(self) -> int:
        """Delete every location and return how many were removed."""
        count = self.session.query(Location).delete()
        self._commit('delete locations')
        logger.info(f"All locations deleted: {count} records")
        return count

    def import_many(self, items: List[Any]) -> Dict[str, int]:
        """
        Bulk insert exported locations, skipping ids already stored.

        Each item is validated and committed on its own, so one bad item
        never aborts the batch.

        Args:
            items: Location dicts using ``lat``/``lng`` keys

        Returns:
            dict with imported, skipped, failed and total counts
        """
        insert = self._dialect_insert()
        imported = skipped = failed = 0

        for item in items:
            item_id = item.get('id') if isinstance(item, dict) else None
            try:
                values = parse_location_payload(item, lat_key='lat', lng_key='lng')
            except ValidationError as e:
                failed += 1
                logger.warning(f"Failed to import location {item_id}: {e}")
                continue

            now = datetime.now(timezone.utc)
            stmt = insert(Location.__table__).values(
                **values,
                created_at=now,
                updated_at=now,
            ).on_conflict_do_nothing(index_elements=[Location.__table__.c.id])

            try:
                result = self.session.execute(stmt)
                self.session.commit()
            except SQLAlchemyError as e:
                self.session.rollback()
                failed += 1
                logger.error(f"Failed to import location {item_id}: {e}")
                continue

            if result.rowcount:
                imported += 1
            else:
                skipped += 1

        logger.info(f"Data imported: {imported} successful, {skipped} skipped, {failed} failed")
        return {
            'imported': imported,
            'skipped': skipped,
            'failed': failed,
            'total': len(items),
        }


__all__ = [
    'LocationRepository',
    'LocationUpdate',
    'great_circle_distance',
]
