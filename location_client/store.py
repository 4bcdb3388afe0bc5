"""
LocalStore - the client's authoritative working set of location records.

Records live here first and independently of the location service; the
service is a mirror. The set is persisted to the ``tracker_locations`` blob
and restored on startup, tolerating a missing or corrupt blob.

Mutations are serialized with an internal lock so the background sync loop
and geocoder threads can share the store with the foreground caller.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

from .errors import StorageError, ValidationError
from .record import LocationRecord, LocationType
from .storage import LOCATIONS_KEY, KeyValueStorage

logger = logging.getLogger(__name__)


def _sort_key(record: LocationRecord) -> datetime:
    try:
        return record.observed_at
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)


class RecordView:
    """
    Lazy, restartable view over the store.

    Nothing is read until iteration starts, and every iteration takes a
    fresh snapshot sorted by timestamp (newest first), so the view can be
    iterated any number of times and always reflects the current store.
    """

    def __init__(self, store: 'LocalStore', location_type: Optional[str] = None):
        self._store = store
        self._type = location_type

    def __iter__(self) -> Iterator[LocationRecord]:
        records = self._store._snapshot()
        if self._type is not None:
            records = [r for r in records if r.type == self._type]
        return iter(sorted(records, key=_sort_key, reverse=True))

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __repr__(self) -> str:
        return f"RecordView(type={self._type})"


class LocalStore:
    """
    In-memory record collection backed by durable keyed-blob storage.

    Attributes:
        storage: KeyValueStorage holding ``tracker_locations``
    """

    def __init__(self, storage: KeyValueStorage):
        self.storage = storage
        self._records: Dict[int, LocationRecord] = {}
        self._lock = threading.RLock()

    def _snapshot(self) -> List[LocationRecord]:
        with self._lock:
            return list(self._records.values())

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, record: LocationRecord) -> LocationRecord:
        """
        Add a record.

        Raises:
            ValidationError: If the record is invalid or its id is taken
        """
        record.validate()

        with self._lock:
            if record.id in self._records:
                raise ValidationError('A record with this id already exists', {'id': record.id})
            self._records[record.id] = record

        logger.info(
            "Location added: %s at %.6f, %.6f", record.type, record.lat, record.lng
        )
        return record

    def remove(self, record_id: int) -> Optional[LocationRecord]:
        """
        Remove a record by id.

        Returns:
            The removed record, or None if no record had this id
        """
        with self._lock:
            record = self._records.pop(record_id, None)

        if record is None:
            logger.debug("Remove ignored, location %s not found", record_id)
        return record

    def clear(self) -> int:
        """Remove every record and return how many were removed."""
        with self._lock:
            count = len(self._records)
            self._records.clear()
        return count

    def mark_synced(self, record_id: int, synced: bool = True) -> bool:
        """Flip the sync flag; returns False if the record is gone."""
        with self._lock:
            record = self._records.get(record_id)
            if record is None:
                return False
            record.synced = synced
            return True

    def set_address(self, record_id: int, address: Optional[str]) -> bool:
        """Attach a geocoded address; returns False if the record is gone."""
        with self._lock:
            record = self._records.get(record_id)
            if record is None:
                return False
            record.address = address
            return True

    def import_records(self, items: List[Any]) -> int:
        """
        Merge exported records, skipping ids already present.

        Imported records are marked pending so they reach the service.

        Invalid items are skipped with a warning.

        Returns:
            Number of records added
        """
        added = 0
        for item in items:
            try:
                record = LocationRecord.from_dict(item)
            except ValidationError as e:
                logger.warning("Skipping invalid imported location: %s", e)
                continue
            record.synced = False

            with self._lock:
                if record.id in self._records:
                    continue
                self._records[record.id] = record
            added += 1

        logger.info("Imported %d locations", added)
        return added

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, record_id: int) -> Optional[LocationRecord]:
        with self._lock:
            return self._records.get(record_id)

    def __contains__(self, record_id: int) -> bool:
        with self._lock:
            return record_id in self._records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def list(self, location_type: Optional[str] = None) -> RecordView:
        """
        View of records, newest first, optionally filtered by type.

        Raises:
            ValidationError: If the filter is not 'plant' or 'litter'
        """
        if isinstance(location_type, LocationType):
            location_type = location_type.value
        if location_type is not None and location_type not in LocationType.values():
            raise ValidationError('type must be "plant" or "litter"', {'type': location_type})
        return RecordView(self, location_type)

    def pending(self) -> List[LocationRecord]:
        """Records the service has not yet accepted."""
        return [r for r in self._snapshot() if not r.synced]

    def counts(self) -> Dict[str, int]:
        records = self._snapshot()
        synced = sum(1 for r in records if r.synced)
        return {
            'total': len(records),
            'plant': sum(1 for r in records if r.type == LocationType.PLANT.value),
            'litter': sum(1 for r in records if r.type == LocationType.LITTER.value),
            'synced': synced,
            'pending': len(records) - synced,
        }

    def export_records(self) -> List[Dict[str, Any]]:
        return [record.to_dict() for record in self.list()]

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def persist(self) -> bool:
        """
        Write the record list to durable storage.

        Returns:
            True on success; failures are logged, never raised
        """
        data = [record.to_dict() for record in self._snapshot()]
        try:
            self.storage.save(LOCATIONS_KEY, data)
        except StorageError as e:
            logger.error("Failed to save locations: %s", e)
            return False

        logger.debug("Saved %d locations", len(data))
        return True

    def restore(self) -> int:
        """
        Replace the in-memory set with the persisted one.

        A missing blob yields an empty set. A corrupt blob also yields an
        empty set and logs a warning; entries that fail validation are
        skipped individually.

        Returns:
            Number of records restored
        """
        try:
            stored = self.storage.load(LOCATIONS_KEY)
        except StorageError as e:
            logger.warning("Stored locations unreadable, starting empty: %s", e)
            stored = None

        if stored is not None and not isinstance(stored, list):
            logger.warning("Stored locations are not a list, starting empty")
            stored = None

        records: Dict[int, LocationRecord] = {}
        for item in stored or []:
            try:
                record = LocationRecord.from_dict(item)
            except ValidationError as e:
                logger.warning("Skipping invalid stored location: %s", e)
                continue
            records[record.id] = record

        with self._lock:
            self._records = records

        if records:
            logger.info("Loaded %d locations from storage", len(records))
        return len(records)

    def __repr__(self) -> str:
        return f"LocalStore(records={len(self)})"
