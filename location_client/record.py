"""
LocationRecord - the client's data model for a single observation.

Records are created on the device, live in the LocalStore, and are mirrored
to the location service keyed by ``id``.
"""

import enum
import math
import threading
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .errors import ValidationError


class LocationType(str, enum.Enum):
    """Closed set of observation types."""
    PLANT = 'plant'
    LITTER = 'litter'

    @classmethod
    def values(cls):
        return [member.value for member in cls]


_id_lock = threading.Lock()
_last_id = 0


def new_record_id() -> int:
    """
    Generate a record id from the current millisecond epoch.

    Ids are strictly increasing within the process, so two records created
    in the same millisecond never collide.
    """
    global _last_id

    with _id_lock:
        candidate = int(time.time() * 1000)
        if candidate <= _last_id:
            candidate = _last_id + 1
        _last_id = candidate
        return candidate


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def validate_coordinate(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f'{name} must be a number', {name: value})
    value = float(value)
    if not math.isfinite(value):
        raise ValidationError(f'{name} must be a finite number', {name: value})
    return value


@dataclass
class LocationRecord:
    """
    A single geotagged plant or litter observation.

    Attributes:
        id: Millisecond-epoch identifier, also the remote upsert key
        type: 'plant' or 'litter'
        note: Free-text note, never empty
        lat, lng: Coordinates in degrees
        timestamp: ISO-8601 observation time
        address: Reverse-geocoded address, None until (and unless) resolved
        synced: True once the service has accepted an upsert
    """

    id: int
    type: str
    note: str
    lat: float
    lng: float
    timestamp: str = field(default_factory=utc_now_iso)
    address: Optional[str] = None
    synced: bool = False

    @classmethod
    def create(
        cls,
        location_type: str,
        note: str,
        lat: float,
        lng: float,
        address: Optional[str] = None,
    ) -> 'LocationRecord':
        """Build a new, validated, unsynced record stamped with the current time."""
        record = cls(
            id=new_record_id(),
            type=location_type,
            note=note,
            lat=lat,
            lng=lng,
            address=address,
        )
        record.validate()
        return record

    def validate(self) -> None:
        """
        Check the record against the data model invariants.

        Raises:
            ValidationError: On an unknown type, empty note, non-finite
                coordinates, bad id or unparseable timestamp
        """
        if isinstance(self.id, bool) or not isinstance(self.id, int) or self.id < 1:
            raise ValidationError('id must be a positive integer', {'id': self.id})

        if isinstance(self.type, LocationType):
            self.type = self.type.value
        if self.type not in LocationType.values():
            raise ValidationError('type must be "plant" or "litter"', {'type': self.type})

        if not isinstance(self.note, str) or not self.note.strip():
            raise ValidationError('note must not be empty')

        self.lat = validate_coordinate(self.lat, 'lat')
        self.lng = validate_coordinate(self.lng, 'lng')

        if not isinstance(self.timestamp, str):
            raise ValidationError('timestamp must be an ISO-8601 string')
        try:
            parse_timestamp(self.timestamp)
        except ValueError:
            raise ValidationError('timestamp must be an ISO-8601 string', {'timestamp': self.timestamp})

        if self.address is not None and not isinstance(self.address, str):
            raise ValidationError('address must be a string')

    @property
    def observed_at(self) -> datetime:
        """Observation time as an aware datetime."""
        return parse_timestamp(self.timestamp)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for local persistence and export files."""
        return asdict(self)

    def to_api_payload(self) -> Dict[str, Any]:
        """Body for ``POST /api/locations``."""
        return {
            'id': self.id,
            'type': self.type,
            'note': self.note,
            'latitude': self.lat,
            'longitude': self.lng,
            'timestamp': self.timestamp,
            'address': self.address,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LocationRecord':
        """
        Build a record from persisted or imported data.

        Raises:
            ValidationError: If required keys are missing or invalid
        """
        if not isinstance(data, dict):
            raise ValidationError('record must be an object')

        missing = [key for key in ('id', 'type', 'note', 'lat', 'lng', 'timestamp') if key not in data]
        if missing:
            raise ValidationError('record is missing fields', {'missing': missing})

        record = cls(
            id=data['id'],
            type=data['type'],
            note=data['note'],
            lat=data['lat'],
            lng=data['lng'],
            timestamp=data['timestamp'],
            address=data.get('address'),
            synced=bool(data.get('synced', False)),
        )
        record.validate()
        return record
