"""
Data Routes Blueprint

Aggregate and bulk endpoints.

Endpoints:
- GET /api/stats - Counts by type and observation time range
- GET /api/export - Download every location as a JSON file
- POST /api/import - Bulk insert, skipping ids already stored
"""

import json
import logging
import time

from flask import Blueprint, Response, jsonify, request

from location_service.auth import api_key_required
from location_service.services import ValidationError
from location_service.services.location_repository import LocationRepository

logger = logging.getLogger(__name__)

# Create the Data blueprint
data_bp = Blueprint('data', __name__, url_prefix='/api')


@data_bp.route('/stats', methods=['GET'])
@api_key_required
def get_stats():
    """
    Aggregate statistics.

    Returns:
        200: {"success": true, "stats": {"total", "plants", "litter",
              "earliest", "latest"}}
    """
    return jsonify({'success': True, 'stats': LocationRepository().stats()})


@data_bp.route('/export', methods=['GET'])
@api_key_required
def export_locations():
    """
    Export every location as a downloadable JSON array.

    Returns:
        200: JSON array with Content-Disposition attachment header
    """
    data = LocationRepository().export_all()
    filename = f'locations-export-{int(time.time() * 1000)}.json'

    logger.info(f"Data exported: {len(data)} locations")
    return Response(
        json.dumps(data),
        mimetype='application/json',
        headers={'Content-Disposition': f'attachment; filename="{filename}"'},
    )


@data_bp.route('/import', methods=['POST'])
@api_key_required
def import_locations():
    """
    Bulk import locations.

    Items that fail validation or storage are counted and skipped; the
    batch is never aborted part-way.

    Request Body:
        {"locations": [{"id", "type", "note", "lat", "lng", "timestamp", "address"}, ...]}

    Returns:
        200: {"success": true, "message": "Import completed", "imported",
              "skipped", "failed", "total"}
        400: locations is not an array
    """
    data = request.get_json(silent=True) or {}
    locations = data.get('locations') if isinstance(data, dict) else None

    if not isinstance(locations, list):
        raise ValidationError('Locations must be an array')

    result = LocationRepository().import_many(locations)

    return jsonify({
        'success': True,
        'message': 'Import completed',
        **result,
    })
