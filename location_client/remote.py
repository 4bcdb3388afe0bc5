"""
Location Service Client - HTTP access to the remote location service.

This module provides the LocationServiceClient class for all communication
with the location service REST API. It handles:
- Session pooling for connection reuse
- X-API-Key authentication
- Timeout handling with proper error types
- Conversion of non-2xx responses into ConnectivityError subclasses

Automatic retries are disabled: the sync engine retries on its own fixed
interval, so the adapter never backs off or repeats a request.

Example:
    from location_client.remote import LocationServiceClient

    client = LocationServiceClient('http://localhost:3000', api_key='...')
    if client.health():
        client.upsert(record)
"""

import logging
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from requests.exceptions import (
    ConnectionError as RequestsConnectionError,
    RequestException,
    Timeout,
)
from urllib3.util.retry import Retry

from .errors import (
    ConnectivityError,
    NotFoundError,
    RemoteAuthenticationError,
    RemoteResponseError,
    RemoteTimeoutError,
    ServerError,
    ValidationError,
)
from .record import LocationRecord


logger = logging.getLogger(__name__)


# Default configuration
DEFAULT_TIMEOUT = 10  # seconds
HEALTH_CHECK_TIMEOUT = 5  # seconds


class LocationServiceClient:
    """
    Client for the location service REST API.

    Attributes:
        base_url: Service base URL
        timeout: Request timeout in seconds
        session: Requests session for connection pooling
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: int = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the service client.

        Args:
            base_url: Service base URL (e.g., 'http://localhost:3000')
            api_key: Optional API key sent as X-API-Key
            timeout: Request timeout in seconds (default: 10)
            session: Optional pre-built session (tests pass a fake transport)
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

        if session is None:
            session = requests.Session()

            # No transport-level retries; the sync engine owns retry cadence
            adapter = HTTPAdapter(
                max_retries=Retry(total=0, raise_on_status=False),
                pool_connections=4,
                pool_maxsize=4,
            )
            session.mount('http://', adapter)
            session.mount('https://', adapter)

        self.session = session

        # Set default headers
        self.session.headers.update({
            'Content-Type': 'application/json',
            'Accept': 'application/json',
            'User-Agent': 'LocationTracker/1.0',
        })

        self.set_api_key(api_key)

        logger.info(f"Location service client initialized with base URL: {self.base_url}")

    def set_api_key(self, api_key: Optional[str]) -> None:
        """
        Set, update or clear the API key header.

        Args:
            api_key: Key for the X-API-Key header; empty clears it
        """
        if api_key:
            self.session.headers['X-API-Key'] = api_key
        else:
            self.session.headers.pop('X-API-Key', None)

    def set_base_url(self, base_url: str) -> None:
        self.base_url = base_url.rstrip('/')

    def _build_url(self, endpoint: str) -> str:
        endpoint = endpoint.lstrip('/')
        return f"{self.base_url}/{endpoint}"

    def _handle_response(self, response: requests.Response, endpoint: str) -> Any:
        """
        Convert an HTTP response into parsed JSON or an exception.

        Raises:
            RemoteAuthenticationError: On 401/403
            NotFoundError: On 404
            ValidationError: On 400
            ServerError: On 5xx
            RemoteResponseError: On any other non-2xx status
        """
        status = response.status_code

        if status in (401, 403):
            logger.error(f"Authentication failed for {endpoint}: {status}")
            raise RemoteAuthenticationError(
                message=f"Authentication failed for {endpoint}",
                status_code=status,
                response_body=response.text,
            )

        if status == 404:
            raise NotFoundError(f"Not found: {endpoint}", {'status_code': status})

        if status == 400:
            raise ValidationError(
                f"Service rejected request for {endpoint}",
                {'status_code': status, 'body': response.text},
            )

        if status >= 500:
            logger.error(f"Service error for {endpoint}: {status}")
            raise ServerError(
                message=f"Service error for {endpoint}",
                status_code=status,
                response_body=response.text,
            )

        if not response.ok:
            logger.error(f"Request failed for {endpoint}: {status}")
            raise RemoteResponseError(
                message=f"Request failed for {endpoint}",
                status_code=status,
                response_body=response.text,
            )

        try:
            return response.json()
        except ValueError:
            # Response was successful but not JSON
            return {'status': 'ok', 'raw': response.text}

    def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Any] = None,
        timeout: Optional[float] = None,
        expect_object: bool = True,
    ) -> Any:
        """
        Make a request and translate transport failures.

        Args:
            expect_object: Require the 2xx body to be a JSON object

        Raises:
            RemoteTimeoutError: When the request times out
            ConnectivityError: When the connection fails
            RemoteResponseError: When expect_object is set and the body
                is not a JSON object
            plus anything raised by _handle_response
        """
        url = self._build_url(endpoint)

        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=data,
                timeout=timeout or self.timeout,
            )
        except Timeout as e:
            logger.warning(f"Request timeout for {method} {endpoint}: {e}")
            raise RemoteTimeoutError(
                message=f"Request timed out for {endpoint}",
                details={'timeout': timeout or self.timeout},
            )
        except RequestsConnectionError as e:
            logger.warning(f"Connection failed for {method} {endpoint}: {e}")
            raise ConnectivityError(
                message=f"Connection failed for {endpoint}",
                details={'error': str(e)},
            )
        except RequestException as e:
            logger.warning(f"Request error for {method} {endpoint}: {e}")
            raise ConnectivityError(
                message=f"Request error for {endpoint}",
                details={'error': str(e)},
            )

        body = self._handle_response(response, endpoint)

        if expect_object and not isinstance(body, dict):
            logger.error(f"Unexpected response body for {method} {endpoint}: {type(body).__name__}")
            raise RemoteResponseError(
                message=f"Unexpected response body for {endpoint}",
                status_code=response.status_code,
                response_body=response.text,
            )

        return body

    # ------------------------------------------------------------------
    # API methods
    # ------------------------------------------------------------------

    def health(self) -> Dict[str, Any]:
        """
        Probe ``GET /api/health``.

        Returns:
            Health payload ({status, database, version, timestamp})
        """
        return self._request('GET', '/api/health', timeout=HEALTH_CHECK_TIMEOUT)

    def upsert(self, record: LocationRecord) -> Dict[str, Any]:
        """
        Create or overwrite a record on the service.

        Returns:
            The stored location as returned by the service
        """
        response = self._request('POST', '/api/locations', data=record.to_api_payload())
        return response.get('location', {})

    def get_location(self, record_id: int) -> Dict[str, Any]:
        response = self._request('GET', f'/api/locations/{record_id}')
        return response.get('location', {})

    def list_locations(
        self,
        location_type: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """List stored locations, newest first."""
        params = {}
        if location_type:
            params['type'] = location_type
        if limit is not None:
            params['limit'] = limit
        if offset is not None:
            params['offset'] = offset

        response = self._request('GET', '/api/locations', params=params or None)
        return response.get('locations', [])

    def update_location(
        self,
        record_id: int,
        note: Optional[str] = None,
        address: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Partially update note and/or address."""
        data = {}
        if note is not None:
            data['note'] = note
        if address is not None:
            data['address'] = address

        response = self._request('PUT', f'/api/locations/{record_id}', data=data)
        return response.get('location', {})

    def delete(self, record_id: int) -> Dict[str, Any]:
        return self._request('DELETE', f'/api/locations/{record_id}')

    def delete_all(self) -> int:
        response = self._request('DELETE', '/api/locations')
        return response.get('count', 0)

    def nearby(
        self,
        lat: float,
        lng: float,
        radius: Optional[float] = None,
        location_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Proximity search around a point.

        Returns:
            Full response ({count, center, radius, locations})
        """
        params = {}
        if radius is not None:
            params['radius'] = radius
        if location_type:
            params['type'] = location_type

        return self._request('GET', f'/api/locations/nearby/{lat}/{lng}', params=params or None)

    def stats(self) -> Dict[str, Any]:
        response = self._request('GET', '/api/stats')
        return response.get('stats', {})

    def export(self) -> List[Dict[str, Any]]:
        return self._request('GET', '/api/export', expect_object=False)

    def import_locations(self, locations: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Bulk import records on the service.

        Returns:
            Counts ({imported, skipped, failed, total})
        """
        return self._request('POST', '/api/import', data={'locations': locations})

    def close(self) -> None:
        """Close the underlying session."""
        self.session.close()

    def __repr__(self) -> str:
        return f"LocationServiceClient(base_url={self.base_url})"
