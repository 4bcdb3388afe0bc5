"""
Connectivity tracking for the location tracker client.

Holds the derived online/offline/syncing state that the sync engine drives
from probe and sync outcomes, and lets the UI layer subscribe to changes.

Features:
- Mutually exclusive states; ``syncing`` always resolves to online/offline
- Callback notification when state changes
- Thread-safe access from the sync loop and the foreground caller
"""

import enum
import logging
import threading
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class ConnectionState(str, enum.Enum):
    ONLINE = 'online'
    OFFLINE = 'offline'
    SYNCING = 'syncing'


class ConnectivityTracker:
    """
    Tracks the current connectivity state.

    Usage:
        tracker = ConnectivityTracker(on_state_changed=print)
        tracker.begin_sync()
        tracker.set_online(True)
    """

    def __init__(
        self,
        on_state_changed: Optional[Callable[[ConnectionState], None]] = None,
    ):
        """
        Args:
            on_state_changed: Callback(state) when state changes
        """
        self._on_state_changed = on_state_changed

        # State (thread-safe via lock)
        self._lock = threading.Lock()
        self._state = ConnectionState.OFFLINE
        self._last_change_time: Optional[float] = None

    @property
    def state(self) -> ConnectionState:
        with self._lock:
            return self._state

    @property
    def is_online(self) -> bool:
        """Check if the last probe or sync succeeded. Thread-safe."""
        return self.state == ConnectionState.ONLINE

    @property
    def is_syncing(self) -> bool:
        return self.state == ConnectionState.SYNCING

    def begin_sync(self) -> None:
        self._transition(ConnectionState.SYNCING)

    def set_online(self, online: bool) -> None:
        """Resolve to online or offline from a probe or sync outcome."""
        self._transition(ConnectionState.ONLINE if online else ConnectionState.OFFLINE)

    def _transition(self, new_state: ConnectionState) -> None:
        with self._lock:
            if self._state == new_state:
                return
            old_state = self._state
            self._state = new_state
            self._last_change_time = time.time()

        if new_state == ConnectionState.OFFLINE:
            logger.warning("Connection state: %s -> %s", old_state.value, new_state.value)
        else:
            logger.info("Connection state: %s -> %s", old_state.value, new_state.value)

        # Fire callback outside lock
        if self._on_state_changed:
            try:
                self._on_state_changed(new_state)
            except Exception as e:
                logger.error("Connection state callback error: %s", e)

    def get_status(self) -> dict:
        """Get connectivity status for diagnostics."""
        with self._lock:
            return {
                'state': self._state.value,
                'last_change_time': self._last_change_time,
            }

    def __repr__(self) -> str:
        return f"ConnectivityTracker(state={self.state.value})"
