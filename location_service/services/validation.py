"""
Request payload validation for the Location Service.

Every field is checked before it reaches the storage layer; failures raise
ValidationError, which routes report as HTTP 400.
"""

import math
import re
from datetime import datetime, timezone

from location_service.models.location import LocationType
from location_service.services import ValidationError


# Largest identifier a BIGINT column can hold
MAX_LOCATION_ID = 2 ** 63 - 1

# Upsert payloads carry these; address is optional
REQUIRED_FIELDS = ('id', 'type', 'note', 'timestamp')

# ASCII decimal digits only
_INTEGER_RE = re.compile(r'-?[0-9]+')


def parse_location_id(value):
    """Parse a location identifier from JSON or a URL segment.

    Args:
        value: int or decimal string

    Returns:
        int identifier

    Raises:
        ValidationError: If the value is not a positive 64-bit integer
    """
    if isinstance(value, bool):
        raise ValidationError('id must be an integer')

    if isinstance(value, str) and _INTEGER_RE.fullmatch(value.strip()):
        value = int(value.strip())

    if not isinstance(value, int):
        raise ValidationError('id must be an integer')

    if value < 1 or value > MAX_LOCATION_ID:
        raise ValidationError('id must be a positive 64-bit integer')

    return value


def parse_type(value):
    """Validate the observation type against the closed set."""
    if value not in LocationType.values():
        raise ValidationError('Invalid type. Must be "plant" or "litter"')
    return value


def parse_note(value):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError('note must be a non-empty string')
    return value


def parse_coordinate(value, name):
    """Validate a latitude/longitude value from a JSON body.

    Booleans are rejected even though Python treats them as integers.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError('Latitude and longitude must be numbers', {'field': name})

    value = float(value)
    if not math.isfinite(value):
        raise ValidationError('Latitude and longitude must be finite numbers', {'field': name})

    return value


def parse_timestamp(value):
    """Parse an ISO-8601 timestamp and normalize it to UTC.

    Naive timestamps are taken to be UTC already.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            # Handle ISO format with Z suffix
            parsed = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
        except ValueError:
            raise ValidationError('timestamp must be an ISO-8601 datetime', {'value': value})
    else:
        raise ValidationError('timestamp must be an ISO-8601 datetime')

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_address(value):
    if value is not None and not isinstance(value, str):
        raise ValidationError('address must be a string')
    return value


def parse_location_payload(data, lat_key='latitude', lng_key='longitude'):
    """Validate a full location payload.

    Upserts send ``latitude``/``longitude``; import files carry the client's
    ``lat``/``lng`` keys, selected with ``lat_key``/``lng_key``.

    Args:
        data: Decoded JSON object
        lat_key: Key holding the latitude
        lng_key: Key holding the longitude

    Returns:
        dict of column values ready for the repository

    Raises:
        ValidationError: On any missing or invalid field
    """
    if not isinstance(data, dict):
        raise ValidationError('Location must be an object')

    missing = [
        field for field in REQUIRED_FIELDS + (lat_key, lng_key)
        if data.get(field) is None or data.get(field) == ''
    ]
    if missing:
        raise ValidationError('Missing required fields', {'missing': missing})

    return {
        'id': parse_location_id(data['id']),
        'type': parse_type(data['type']),
        'note': parse_note(data['note']),
        'latitude': parse_coordinate(data[lat_key], lat_key),
        'longitude': parse_coordinate(data[lng_key], lng_key),
        'timestamp': parse_timestamp(data['timestamp']),
        'address': parse_address(data.get('address')),
    }


def parse_float_param(value, name, default=None):
    """Parse a float from a query string or URL segment.

    Raises:
        ValidationError: If the value is present but not a finite number
    """
    if value is None or value == '':
        if default is None:
            raise ValidationError(f'{name} is required')
        return float(default)

    try:
        parsed = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{name} must be a number', {'value': value})

    if not math.isfinite(parsed):
        raise ValidationError(f'{name} must be a finite number', {'value': value})

    return parsed


def parse_int_param(value, name, default, minimum=0):
    if value is None or value == '':
        return default

    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{name} must be an integer', {'value': value})

    if parsed < minimum:
        raise ValidationError(f'{name} must be >= {minimum}', {'value': value})

    return parsed
