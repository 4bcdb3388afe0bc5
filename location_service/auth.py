"""
API key authentication for the Location Service.

Clients send the key in the ``X-API-Key`` header. The check only applies
outside development and only when API_KEY is configured; otherwise every
request is accepted.
"""

import hmac
import logging
from functools import wraps

from flask import current_app, jsonify, request

logger = logging.getLogger(__name__)

API_KEY_HEADER = 'X-API-Key'


def auth_enabled():
    """Return True when requests must carry a valid API key."""
    return (
        current_app.config.get('ENV_NAME') != 'development'
        and bool(current_app.config.get('API_KEY'))
    )


def api_key_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not auth_enabled():
            return fn(*args, **kwargs)

        api_key = request.headers.get(API_KEY_HEADER, '')
        expected = current_app.config['API_KEY']
        if api_key and hmac.compare_digest(api_key.encode(), expected.encode()):
            return fn(*args, **kwargs)

        logger.warning(f"Rejected unauthenticated request: {request.method} {request.path}")
        return jsonify({'success': False, 'error': 'Unauthorized'}), 401

    return wrapper
