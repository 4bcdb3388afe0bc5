"""
Locations Routes Blueprint

REST API endpoints for location records.

Endpoints:
- GET /api/locations - List locations (optional type/limit/offset)
- GET /api/locations/<id> - Get single location
- POST /api/locations - Create or overwrite a location (upsert by id)
- PUT /api/locations/<id> - Partial update (note/address only)
- DELETE /api/locations/<id> - Delete one location
- DELETE /api/locations - Delete every location
- GET /api/locations/nearby/<lat>/<lng> - Proximity search

Service errors (ValidationError, NotFoundError, ServerError) propagate to
the JSON error handlers registered by the app factory.
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from location_service.auth import api_key_required
from location_service.models.location import LocationType
from location_service.services import ValidationError
from location_service.services.location_repository import LocationRepository, LocationUpdate
from location_service.services.validation import (
    parse_float_param,
    parse_int_param,
    parse_location_id,
    parse_location_payload,
)

logger = logging.getLogger(__name__)

# Create the Locations blueprint
locations_bp = Blueprint('locations', __name__, url_prefix='/api/locations')


def _type_filter(value):
    """Return the type filter, ignoring anything outside the closed set."""
    return value if value in LocationType.values() else None


@locations_bp.route('', methods=['GET'])
@api_key_required
def list_locations():
    """
    List locations, newest observation first.

    Query Parameters:
        type: plant or litter (other values are ignored)
        limit: Maximum rows (default 1000)
        offset: Rows to skip (default 0)

    Returns:
        200: {"success": true, "count": n, "locations": [...]}
    """
    location_type = _type_filter(request.args.get('type'))
    limit = parse_int_param(
        request.args.get('limit'), 'limit', current_app.config['DEFAULT_LIST_LIMIT']
    )
    offset = parse_int_param(request.args.get('offset'), 'offset', 0)

    locations = LocationRepository().list(location_type, limit=limit, offset=offset)

    return jsonify({
        'success': True,
        'count': len(locations),
        'locations': [location.to_dict() for location in locations],
    })


@locations_bp.route('/<location_id>', methods=['GET'])
@api_key_required
def get_location(location_id):
    """
    Get a single location.

    Returns:
        200: {"success": true, "location": {...}}
        404: Location not found
    """
    location = LocationRepository().get(parse_location_id(location_id))
    return jsonify({'success': True, 'location': location.to_dict()})


@locations_bp.route('', methods=['POST'])
@api_key_required
def create_location():
    """
    Create a location, or overwrite the one stored under the same id.

    Request Body:
        {
            "id": 1700000000000,
            "type": "plant",
            "note": "kudzu",
            "latitude": 38.84,
            "longitude": -77.18,
            "timestamp": "2023-11-14T22:13:20Z",
            "address": "optional"
        }

    Returns:
        201: {"success": true, "message": "...", "location": {...}}
        400: Missing or invalid fields
    """
    data = request.get_json(silent=True)
    if not data:
        raise ValidationError('Request body is required')

    location = LocationRepository().upsert(parse_location_payload(data))

    return jsonify({
        'success': True,
        'message': 'Location saved successfully',
        'location': location.to_dict(),
    }), 201


@locations_bp.route('/<location_id>', methods=['PUT'])
@api_key_required
def update_location(location_id):
    """
    Update the note and/or address of a location.

    Request Body:
        {"note": "...", "address": "..."}  (both optional, at least one)

    Returns:
        200: {"success": true, "message": "...", "location": {...}}
        400: No fields to update
        404: Location not found
    """
    location_id = parse_location_id(location_id)
    update = LocationUpdate.from_payload(request.get_json(silent=True))

    location = LocationRepository().update(location_id, update)

    return jsonify({
        'success': True,
        'message': 'Location updated successfully',
        'location': location.to_dict(),
    })


@locations_bp.route('/<location_id>', methods=['DELETE'])
@api_key_required
def delete_location(location_id):
    """
    Delete one location.

    Returns:
        200: {"success": true, "message": "...", "id": 123}
        404: Location not found
    """
    deleted_id = LocationRepository().delete(parse_location_id(location_id))

    return jsonify({
        'success': True,
        'message': 'Location deleted successfully',
        'id': deleted_id,
    })


@locations_bp.route('', methods=['DELETE'])
@api_key_required
def delete_all_locations():
    """
    Delete every location.

    Returns:
        200: {"success": true, "message": "...", "count": n}
    """
    count = LocationRepository().delete_all()

    return jsonify({
        'success': True,
        'message': 'All locations deleted',
        'count': count,
    })


@locations_bp.route('/nearby/<lat>/<lng>', methods=['GET'])
@api_key_required
def nearby_locations(lat, lng):
    """
    Find locations within a radius of a point, closest first (max 50).

    Query Parameters:
        radius: Radius in meters (default 1000)
        type: plant or litter (other values are ignored)

    Returns:
        200: {"success": true, "count": n, "center": {...}, "radius": r,
              "locations": [{..., "distance": meters}]}
        400: Non-numeric coordinates or radius
    """
    latitude = parse_float_param(lat, 'lat')
    longitude = parse_float_param(lng, 'lng')
    radius = parse_float_param(
        request.args.get('radius'), 'radius', current_app.config['DEFAULT_NEARBY_RADIUS']
    )
    location_type = _type_filter(request.args.get('type'))

    results = LocationRepository().nearby(
        latitude,
        longitude,
        radius,
        location_type=location_type,
        limit=current_app.config['NEARBY_RESULT_CAP'],
    )

    return jsonify({
        'success': True,
        'count': len(results),
        'center': {'lat': latitude, 'lng': longitude},
        'radius': radius,
        'locations': [location.to_dict(distance=distance) for location, distance in results],
    })
