"""
Sync Engine for the location tracker client.

Pushes unsynced records from the LocalStore to the location service and
keeps the connectivity state current. The service is a mirror: every remote
failure is absorbed here, logged, and turned into pending/offline state.

Operations:
- push_one: immediate upsert after a record is created
- sync_all: single-flight sweep of every pending record
- auto_sync: one tick of the fixed-interval background loop
- check_connection: health probe that drives the offline flag
- delete_remote: best-effort delete, attempted at most once
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from .config import ClientConfig
from .connectivity import ConnectivityTracker
from .errors import NotFoundError, TrackerError
from .record import LocationRecord
from .remote import LocationServiceClient
from .store import LocalStore

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Outcome of one ``sync_all`` sweep."""
    succeeded: int = 0
    failed: int = 0
    already_running: bool = False

    @property
    def attempted(self) -> int:
        return self.succeeded + self.failed

    @property
    def ok(self) -> bool:
        return not self.already_running and self.failed == 0


class SyncEngine:
    """
    Background sync of local records to the location service.

    The sweep interval comes from ``ClientConfig.sync_interval`` and is read
    on every cycle, so configuration changes apply from the next tick.
    """

    def __init__(
        self,
        store: LocalStore,
        config: ClientConfig,
        client: LocationServiceClient,
        connectivity: Optional[ConnectivityTracker] = None,
        on_sync_complete: Optional[Callable[[SyncResult], None]] = None,
    ):
        """
        Initialize the sync engine.

        Args:
            store: Local record store
            config: Client configuration (interval and offline flag)
            client: Location service client
            connectivity: State tracker (a private one is created if None)
            on_sync_complete: Callback after each sweep that attempted records
        """
        self._store = store
        self._config = config
        self._client = client
        self.connectivity = connectivity or ConnectivityTracker()
        self._on_sync_complete = on_sync_complete

        # Single-flight guard for sync_all
        self._sync_lock = threading.Lock()

        # Background thread state
        self._thread: Optional[threading.Thread] = None
        self._running = False
        self._stop_event = threading.Event()

        self._last_sync: Optional[datetime] = None

    @property
    def is_syncing(self) -> bool:
        return self._sync_lock.locked()

    @property
    def is_running(self) -> bool:
        """Check if the auto-sync loop is running."""
        return self._running

    @property
    def last_sync(self) -> Optional[datetime]:
        """Time the last sweep finished."""
        return self._last_sync

    # ------------------------------------------------------------------
    # Sync operations
    # ------------------------------------------------------------------

    def push_one(self, record: LocationRecord) -> bool:
        """
        Upsert a single freshly created record.

        Failures leave the record pending for the next sweep.

        Returns:
            True if the service accepted the record
        """
        if self._config.offline_mode:
            logger.debug("Offline mode, deferring location %s", record.id)
            return False

        try:
            self._client.upsert(record)
        except TrackerError as e:
            logger.warning("Failed to sync location %s: %s", record.id, e)
            return False
        except Exception as e:
            logger.error("Unexpected error syncing location %s: %s", record.id, e)
            return False

        if self._store.mark_synced(record.id):
            self._store.persist()
        logger.info("Location %s synced to server", record.id)
        return True

    def sync_all(self) -> SyncResult:
        """
        Push every pending record, one at a time.

        Only one sweep runs at a time; a concurrent call returns immediately
        with ``already_running`` set.

        Returns:
            SyncResult with success and failure counts
        """
        if not self._sync_lock.acquire(blocking=False):
            logger.info("Sync already in progress")
            return SyncResult(already_running=True)

        result = SyncResult()
        try:
            pending = self._store.pending()
            if not pending:
                logger.debug("Nothing to sync")
                self.connectivity.set_online(True)
                return result

            logger.info("Syncing %d locations...", len(pending))
            self.connectivity.begin_sync()

            for record in pending:
                try:
                    self._client.upsert(record)
                except TrackerError as e:
                    logger.warning("Failed to sync location %s: %s", record.id, e)
                    result.failed += 1
                    continue
                except Exception as e:
                    logger.error("Unexpected error syncing location %s: %s", record.id, e)
                    result.failed += 1
                    continue

                self._store.mark_synced(record.id)
                result.succeeded += 1

            online = result.failed == 0
            self.connectivity.set_online(online)
            if online:
                self._config.offline_mode = False

            self._store.persist()
            self._last_sync = datetime.now(timezone.utc)

            logger.info(
                "Sync finished: %d succeeded, %d failed",
                result.succeeded, result.failed,
            )
        finally:
            if self.connectivity.is_syncing:
                self.connectivity.set_online(False)
            self._sync_lock.release()

        if self._on_sync_complete:
            try:
                self._on_sync_complete(result)
            except Exception as e:
                logger.error("Sync complete callback error: %s", e)

        return result

    def auto_sync(self) -> Optional[SyncResult]:
        """
        One tick of the recurring timer.

        While the offline flag is set the tick only probes the service, so
        the engine recovers once the service is reachable again.

        Returns:
            SyncResult if a sweep ran, otherwise None
        """
        if self._config.offline_mode:
            logger.debug("Offline mode, probing instead of syncing")
            self.check_connection()
            return None

        if self.is_syncing:
            return None

        if not self._store.pending():
            return None

        return self.sync_all()

    def check_connection(self) -> bool:
        """
        Probe the service health endpoint.

        Sets the connectivity state and the offline flag; record data is
        never touched.

        Returns:
            True if the service is reachable and healthy
        """
        try:
            self._client.health()
            reachable = True
        except TrackerError as e:
            logger.warning("Server connection failed: %s", e)
            reachable = False
        except Exception as e:
            logger.error("Unexpected error probing server: %s", e)
            reachable = False

        self.connectivity.set_online(reachable)
        self._config.offline_mode = not reachable
        return reachable

    def delete_remote(self, record_id: int) -> bool:
        """
        Delete a record on the service, best effort.

        Skipped when the offline flag is set. Failures are logged and never
        retried.

        Returns:
            True if the service no longer has the record
        """
        if self._config.offline_mode:
            logger.info("Offline mode, not deleting location %s on server", record_id)
            return False

        try:
            self._client.delete(record_id)
        except NotFoundError:
            logger.info("Location %s was not on the server", record_id)
            return True
        except TrackerError as e:
            logger.warning("Failed to delete location %s from server: %s", record_id, e)
            return False
        except Exception as e:
            logger.error("Unexpected error deleting location %s from server: %s", record_id, e)
            return False

        logger.info("Location %s deleted from server", record_id)
        return True

    # ------------------------------------------------------------------
    # Background loop
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the background auto-sync thread."""
        if self._running:
            logger.warning("Auto-sync already running")
            return

        self._running = True
        self._stop_event.clear()

        self._thread = threading.Thread(
            target=self._sync_loop,
            name="AutoSync",
            daemon=True
        )
        self._thread.start()

        logger.info("Auto-sync started - interval: %.1fs", self._config.sync_interval)

    def stop(self) -> None:
        """Stop the background auto-sync thread."""
        if not self._running:
            return

        logger.info("Stopping auto-sync...")
        self._running = False
        self._stop_event.set()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5)
        self._thread = None

        logger.info("Auto-sync stopped")

    def _sync_loop(self) -> None:
        while self._running:
            # Wait for interval or stop signal
            if self._stop_event.wait(timeout=self._config.sync_interval):
                break

            if self._running:
                try:
                    self.auto_sync()
                except Exception as e:
                    logger.error("Auto-sync tick failed: %s", e)

        logger.debug("Auto-sync loop ended")

    def get_status(self) -> Dict[str, Any]:
        """
        Get sync status for reporting.

        Returns:
            Dictionary with sync status information
        """
        return {
            'running': self._running,
            'syncing': self.is_syncing,
            'connection': self.connectivity.state.value,
            'offline_mode': self._config.offline_mode,
            'last_sync': self._last_sync.isoformat() if self._last_sync else None,
            'pending': len(self._store.pending()),
            'sync_interval': self._config.sync_interval,
        }

    def __repr__(self) -> str:
        return (
            f"SyncEngine(running={self._running}, "
            f"connection={self.connectivity.state.value})"
        )
