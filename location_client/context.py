"""
AppContext - composition root for the location tracker client.

Builds the storage, configuration, local store, service client, sync engine
and geocoder, and exposes the user-level operations of the tracker: saving
observations at the current position, deleting, syncing, import/export and
configuration.

User-visible notices go to the optional ``on_notice(message, level)``
callback and to the logger.
"""

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import requests

from .config import ClientConfig
from .connectivity import ConnectionState, ConnectivityTracker
from .errors import StorageError, ValidationError
from .geocoder import DEFAULT_GEOCODER_URL, ReverseGeocoder
from .record import LocationRecord, LocationType, validate_coordinate
from .remote import LocationServiceClient
from .storage import KeyValueStorage
from .store import LocalStore
from .sync_engine import SyncEngine, SyncResult

logger = logging.getLogger(__name__)

MANUAL_NOTE = 'Manual test entry'
MANUAL_ADDRESS = 'Manually added'

_NOTICE_LEVELS = {
    'success': logging.INFO,
    'info': logging.INFO,
    'error': logging.WARNING,
}


class AppContext:
    """
    Owns every client component and wires them together.

    Usage:
        with AppContext(data_dir='/tmp/tracker') as app:
            app.update_position(38.84, -77.18)
            app.save_location('plant', 'kudzu')
    """

    def __init__(
        self,
        data_dir: Optional[str] = None,
        storage: Optional[KeyValueStorage] = None,
        session: Optional[requests.Session] = None,
        geocoder_session: Optional[requests.Session] = None,
        geocoder_url: str = DEFAULT_GEOCODER_URL,
        on_notice: Optional[Callable[[str, str], None]] = None,
    ):
        """
        Args:
            data_dir: Directory for the persisted blobs
            storage: Pre-built storage (overrides data_dir)
            session: HTTP session for the location service
            geocoder_session: HTTP session for reverse geocoding
            geocoder_url: Nominatim-compatible base URL
            on_notice: Callback(message, level) for user-visible notices
        """
        self._on_notice = on_notice

        self.storage = storage or KeyValueStorage(data_dir)
        self.config = ClientConfig(self.storage)
        self.store = LocalStore(self.storage)
        self.client = LocationServiceClient(
            self.config.server_url,
            api_key=self.config.api_key,
            session=session,
        )
        self.connectivity = ConnectivityTracker(on_state_changed=self._on_connection_changed)
        self.sync_engine = SyncEngine(
            self.store,
            self.config,
            self.client,
            connectivity=self.connectivity,
        )
        self.geocoder = ReverseGeocoder(
            self.store,
            base_url=geocoder_url,
            session=geocoder_session,
        )

        self._position: Optional[Dict[str, float]] = None
        self._started = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, auto_sync: bool = True) -> None:
        """Restore local state, probe the service and start auto-sync."""
        count = self.store.restore()
        logger.info("Loaded %d locations", count)

        self.sync_engine.check_connection()
        if auto_sync:
            self.sync_engine.start()
        self._started = True

    def shutdown(self) -> None:
        """Stop background work and persist state."""
        self.sync_engine.stop()
        self.geocoder.shutdown()
        self.store.persist()
        self.config.save()
        self.client.close()
        self._started = False
        logger.info("Location tracker shut down")

    def __enter__(self) -> 'AppContext':
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()

    def notify(self, message: str, level: str = 'success') -> None:
        logger.log(_NOTICE_LEVELS.get(level, logging.INFO), message)
        if self._on_notice:
            try:
                self._on_notice(message, level)
            except Exception as e:
                logger.error("Notice callback error: %s", e)

    def _on_connection_changed(self, state: ConnectionState) -> None:
        logger.debug("Connection indicator: %s", state.value)

    # ------------------------------------------------------------------
    # Position and records
    # ------------------------------------------------------------------

    @property
    def current_position(self) -> Optional[Dict[str, float]]:
        return dict(self._position) if self._position else None

    def update_position(self, lat: float, lng: float) -> None:
        """Record the device's current position."""
        self._position = {
            'lat': validate_coordinate(lat, 'lat'),
            'lng': validate_coordinate(lng, 'lng'),
        }

    def save_location(self, location_type: str, note: str) -> LocationRecord:
        """
        Save an observation at the current position.

        The record is stored and persisted first, then geocoded in the
        background and pushed to the service.

        Raises:
            ValidationError: If the note is empty, the type unknown, or no
                position is known yet
        """
        note = (note or '').strip()
        if not note:
            self.notify('Please enter a note', 'error')
            raise ValidationError('note must not be empty')

        if self._position is None:
            self.notify('Location not available', 'error')
            raise ValidationError('Current position is not available')

        record = LocationRecord.create(
            location_type,
            note,
            self._position['lat'],
            self._position['lng'],
        )
        self.store.add(record)
        self.store.persist()

        self.geocoder.submit(record)
        self.sync_engine.push_one(record)

        self.notify('Location saved!', 'success')
        return record

    def add_manual_location(
        self,
        lat: float,
        lng: float,
        location_type: str = LocationType.PLANT.value,
        note: str = MANUAL_NOTE,
    ) -> LocationRecord:
        """Add a record at explicit coordinates; it syncs on the next sweep."""
        record = LocationRecord.create(
            location_type or LocationType.PLANT.value,
            note or MANUAL_NOTE,
            lat,
            lng,
            address=MANUAL_ADDRESS,
        )
        self.store.add(record)
        self.store.persist()

        self.notify('Manual location added', 'success')
        logger.info("Manual location added: %s, %s", lat, lng)
        return record

    def delete_location(self, record_id: int) -> bool:
        """
        Delete a record locally, and on the service if it had been synced.

        Returns:
            False if no record had this id
        """
        record = self.store.remove(record_id)
        if record is None:
            return False

        self.store.persist()
        if record.synced:
            self.sync_engine.delete_remote(record_id)

        self.notify('Location deleted', 'success')
        return True

    def clear_all(self) -> int:
        """Remove all local records. The service is not touched."""
        count = self.store.clear()
        self.store.persist()
        self.notify('All data cleared', 'success')
        return count

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    def sync_now(self) -> SyncResult:
        """Run a manual sweep and report the outcome as a notice."""
        result = self.sync_engine.sync_all()

        if result.already_running:
            self.notify('Sync already in progress', 'error')
        elif result.attempted == 0:
            self.notify('All locations already synced', 'success')
        elif result.failed == 0:
            self.notify(f'Synced {result.succeeded} locations', 'success')
        else:
            self.notify(f'Synced {result.succeeded}, failed {result.failed}', 'error')
        return result

    def test_connection(self) -> bool:
        """Probe the service and report the outcome as a notice."""
        if self.sync_engine.check_connection():
            self.notify('Connected to server', 'success')
            return True

        self.notify('Cannot connect to server', 'error')
        return False

    def configure(
        self,
        server_url: Optional[str] = None,
        api_key: Optional[str] = None,
        sync_interval: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Update and persist the client configuration.

        Args:
            server_url: Location service base URL
            api_key: API key; an empty string clears it
            sync_interval: Auto-sync interval in seconds

        Raises:
            ValidationError: If sync_interval is not positive
        """
        if sync_interval is not None:
            try:
                self.config.sync_interval_ms = int(round(sync_interval * 1000))
            except (TypeError, ValueError) as e:
                raise ValidationError(str(e), {'sync_interval': sync_interval})

        if server_url is not None:
            self.config.server_url = server_url
            self.client.set_base_url(self.config.server_url)

        if api_key is not None:
            self.config.api_key = api_key
            self.client.set_api_key(self.config.api_key)

        self.config.save()
        logger.info("Configuration saved")
        return self.config.to_dict()

    # ------------------------------------------------------------------
    # Import / export
    # ------------------------------------------------------------------

    def export_data(self, path: str) -> int:
        """
        Write every local record to a JSON file.

        Returns:
            Number of records exported

        Raises:
            StorageError: If the file cannot be written
        """
        records = self.store.export_records()
        try:
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(records, f, indent=2)
        except OSError as e:
            raise StorageError('Could not write export file', {'path': str(path), 'error': str(e)})

        self.notify('Data exported', 'success')
        logger.info("Exported %d locations to %s", len(records), path)
        return len(records)

    def import_data(self, path: str) -> int:
        """
        Merge records from an exported JSON file, skipping known ids.

        Returns:
            Number of new records

        Raises:
            ValidationError: If the file is unreadable or not a JSON list
        """
        try:
            data = json.loads(Path(path).read_text(encoding='utf-8'))
        except (OSError, ValueError) as e:
            self.notify('Import failed: Invalid file', 'error')
            raise ValidationError('Invalid import file', {'path': str(path), 'error': str(e)})

        if not isinstance(data, list):
            self.notify('Import failed: Invalid file', 'error')
            raise ValidationError('Invalid data format', {'path': str(path)})

        count = self.store.import_records(data)
        self.store.persist()

        self.notify(f'Imported {count} new locations', 'success')
        return count

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def stats(self) -> Dict[str, Any]:
        """Local counts plus sync status."""
        stats = self.store.counts()
        stats['sync'] = self.sync_engine.get_status()
        return stats

    def __repr__(self) -> str:
        return f"AppContext(store={self.store!r}, sync={self.sync_engine!r})"
