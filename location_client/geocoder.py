"""
Reverse geocoding of saved records.

Lookups go to a Nominatim-compatible ``/reverse`` endpoint on a small thread
pool. Each lookup is an explicit Future; the address is written back only if
the record is still in the store when the lookup completes.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

import requests

from .record import LocationRecord
from .store import LocalStore

logger = logging.getLogger(__name__)

DEFAULT_GEOCODER_URL = 'https://nominatim.openstreetmap.org'
GEOCODE_TIMEOUT = 10  # seconds


class ReverseGeocoder:
    """
    Resolves coordinates to a display address in the background.

    Attributes:
        base_url: Geocoder base URL
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        store: LocalStore,
        base_url: str = DEFAULT_GEOCODER_URL,
        timeout: int = GEOCODE_TIMEOUT,
        max_workers: int = 2,
        session: Optional[requests.Session] = None,
    ):
        self._store = store
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

        self.session = session or requests.Session()
        # Nominatim refuses requests without an identifying agent
        self.session.headers.update({
            'User-Agent': 'LocationTracker/1.0',
            'Accept': 'application/json',
        })

        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix='geocoder',
        )
        self._closed = False

    def lookup(self, lat: float, lng: float) -> Optional[str]:
        """
        Resolve one coordinate pair synchronously.

        Returns:
            The display name, or None if the service had no answer

        Raises:
            requests.RequestException: On network or HTTP failure
            ValueError: If the response is not JSON
        """
        response = self.session.get(
            f"{self.base_url}/reverse",
            params={'lat': lat, 'lon': lng, 'format': 'json'},
            timeout=self.timeout,
        )
        response.raise_for_status()
        data = response.json()
        return data.get('display_name') if isinstance(data, dict) else None

    def submit(self, record: LocationRecord) -> Optional[Future]:
        """
        Schedule a lookup for a record.

        Returns:
            Future resolving to the address (or None), or None if the
            geocoder has been shut down
        """
        if self._closed:
            logger.debug("Geocoder closed, skipping location %s", record.id)
            return None
        return self._executor.submit(self._resolve, record.id, record.lat, record.lng)

    def _resolve(self, record_id: int, lat: float, lng: float) -> Optional[str]:
        try:
            address = self.lookup(lat, lng)
        except (requests.RequestException, ValueError) as e:
            logger.warning("Reverse geocoding failed for location %s: %s", record_id, e)
            return None

        if not address:
            return None

        if not self._store.set_address(record_id, address):
            logger.debug("Location %s removed before geocoding finished", record_id)
            return None

        self._store.persist()
        logger.debug("Location %s resolved to %s", record_id, address)
        return address

    def shutdown(self, wait: bool = False) -> None:
        """Stop accepting lookups and cancel the ones not yet started."""
        self._closed = True
        self._executor.shutdown(wait=wait, cancel_futures=True)
