"""
Location Tracker client - local-first plant and litter observations.

Records are saved to a durable local store first and mirrored to the
location service by the sync engine whenever it is reachable.
"""

from .context import AppContext
from .errors import (
    ConnectivityError,
    NotFoundError,
    StorageError,
    TrackerError,
    ValidationError,
)
from .record import LocationRecord, LocationType
from .store import LocalStore
from .sync_engine import SyncEngine, SyncResult

__version__ = "1.0.0"

__all__ = [
    'AppContext',
    'ConnectivityError',
    'LocalStore',
    'LocationRecord',
    'LocationType',
    'NotFoundError',
    'StorageError',
    'SyncEngine',
    'SyncResult',
    'TrackerError',
    'ValidationError',
]
