"""
Location Model

SQLAlchemy model for plant and litter observations. Rows are keyed by the
client-generated identifier (millisecond epoch) so that repeated uploads of
the same record upsert instead of duplicating.
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Index

from location_service.extensions import db


class LocationType(enum.Enum):
    """Closed set of observation types."""
    PLANT = 'plant'
    LITTER = 'litter'

    @classmethod
    def values(cls):
        return [member.value for member in cls]


def utcnow():
    return datetime.now(timezone.utc)


def as_utc(value):
    """Attach UTC to naive datetimes read back from SQLite."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def isoformat(value):
    value = as_utc(value)
    return value.isoformat().replace('+00:00', 'Z') if value else None


class Location(db.Model):
    """A single geotagged observation.

    Attributes:
        id: Client-generated identifier, also the upsert key
        type: Observation type (plant/litter)
        note: Free-text note, never empty
        latitude, longitude: Coordinates in degrees
        timestamp: When the observation was made on the device
        address: Reverse-geocoded address, optional
        created_at, updated_at: Server-side audit timestamps
    """
    __tablename__ = 'locations'

    id = db.Column(db.BigInteger, primary_key=True, autoincrement=False)

    type = db.Column(db.String(20), nullable=False)
    note = db.Column(db.Text, nullable=False)

    latitude = db.Column(db.Float, nullable=False)
    longitude = db.Column(db.Float, nullable=False)

    # Observation time (device clock)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False)

    address = db.Column(db.Text, nullable=True)

    # Audit timestamps
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "type IN ('plant', 'litter')",
            name='check_location_type'
        ),
        Index('idx_locations_coords', 'latitude', 'longitude'),
        Index('idx_locations_timestamp', 'timestamp'),
        Index('idx_locations_type', 'type'),
    )

    def to_dict(self, distance=None):
        """Serialize to the wire shape consumed by the client.

        Args:
            distance: Optional distance from a query point in meters

        Returns:
            dict: Location data with ``lat``/``lng`` keys
        """
        data = {
            'id': self.id,
            'type': self.type,
            'note': self.note,
            'lat': self.latitude,
            'lng': self.longitude,
            'timestamp': isoformat(self.timestamp),
            'address': self.address,
            'synced': True,
        }
        if distance is not None:
            data['distance'] = int(round(distance))
        return data

    def to_export_dict(self):
        """Serialize for export files (no sync flag)."""
        data = self.to_dict()
        data.pop('synced')
        return data

    def __repr__(self):
        return f"<Location id={self.id} type={self.type} ({self.latitude}, {self.longitude})>"
