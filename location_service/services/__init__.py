"""
Service layer for the Location Service.

This module provides:
- Validation of incoming location payloads
- The LocationRepository storage layer (upsert, partial update, nearby)

Base exception classes are defined here for consistent error handling
across routes and services.

Example:
    from location_service.services import NotFoundError
    from location_service.services.location_repository import LocationRepository

    try:
        location = LocationRepository().get(location_id)
    except NotFoundError:
        return jsonify({'success': False, 'error': 'Location not found'}), 404
"""


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    All service-specific exceptions inherit from this class so that routes
    can catch any service error with a single except clause.
    """

    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ValidationError(ServiceError):
    """
    Raised when a request is missing fields or carries invalid values.

    Reported to the caller as HTTP 400.
    """

    status_code = 400


class NotFoundError(ServiceError):
    """
    Raised when no location exists for the requested identifier.

    Reported to the caller as HTTP 404.
    """

    status_code = 404


class ServerError(ServiceError):
    """
    Raised on an unexpected storage failure.

    Reported to the caller as HTTP 500 after the session is rolled back.
    """

    status_code = 500


__all__ = [
    'ServiceError',
    'ValidationError',
    'NotFoundError',
    'ServerError',
]
