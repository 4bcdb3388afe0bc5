"""
Client configuration for the location tracker.

The configuration is one JSON blob (``tracker_config``) with camelCase keys:
``serverUrl``, ``apiKey``, ``syncInterval`` (in milliseconds) and
``offlineMode``.
"""

import logging
import os
from typing import Any, Dict, Optional

from .errors import StorageError
from .storage import CONFIG_KEY, KeyValueStorage

logger = logging.getLogger(__name__)


DEFAULT_CONFIG = {
    'serverUrl': 'http://localhost:3000',
    'apiKey': '',
    'syncInterval': 30000,  # 30 seconds
    'offlineMode': False,
}


class ClientConfig:
    """Manages the persisted client configuration blob."""

    def __init__(self, storage: KeyValueStorage):
        """
        Initialize configuration manager.

        Args:
            storage: Keyed blob storage holding ``tracker_config``
        """
        self._storage = storage
        self._config: Dict[str, Any] = dict(DEFAULT_CONFIG)
        self.load()

    def load(self) -> None:
        """Load the stored blob over the defaults; corrupt blobs are ignored."""
        self._config = dict(DEFAULT_CONFIG)

        try:
            stored = self._storage.load(CONFIG_KEY)
        except StorageError as e:
            logger.warning("Failed to load config, using defaults: %s", e)
            stored = None

        if isinstance(stored, dict):
            self._config.update({k: v for k, v in stored.items() if k in DEFAULT_CONFIG})
        elif stored is not None:
            logger.warning("Ignoring config blob of unexpected type %s", type(stored).__name__)

        # Apply environment variable overrides
        self._apply_env_overrides()

    def _apply_env_overrides(self) -> None:
        """Override config values from environment variables."""
        if 'TRACKER_SERVER_URL' in os.environ:
            self._config['serverUrl'] = os.environ['TRACKER_SERVER_URL']

        if 'TRACKER_API_KEY' in os.environ:
            self._config['apiKey'] = os.environ['TRACKER_API_KEY']

    def save(self) -> None:
        """Persist the configuration blob. Failures are logged, not raised."""
        try:
            self._storage.save(CONFIG_KEY, self._config)
        except StorageError as e:
            logger.error("Failed to save config: %s", e)

    def save_offline_mode(self) -> None:
        """Persist only the offline flag, leaving other stored keys as they are."""
        try:
            stored = self._storage.load(CONFIG_KEY)
        except StorageError as e:
            logger.warning("Failed to load config, rewriting offline flag only: %s", e)
            stored = None

        blob = dict(DEFAULT_CONFIG)
        if isinstance(stored, dict):
            blob.update({k: v for k, v in stored.items() if k in DEFAULT_CONFIG})
        blob['offlineMode'] = self.offline_mode

        try:
            self._storage.save(CONFIG_KEY, blob)
        except StorageError as e:
            logger.error("Failed to save offline flag: %s", e)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._config)

    @property
    def server_url(self) -> str:
        """Get the location service base URL."""
        return self._config.get('serverUrl') or DEFAULT_CONFIG['serverUrl']

    @server_url.setter
    def server_url(self, value: str) -> None:
        self._config['serverUrl'] = value.rstrip('/')

    @property
    def api_key(self) -> str:
        """Get the API key sent as X-API-Key."""
        return self._config.get('apiKey') or ''

    @api_key.setter
    def api_key(self, value: Optional[str]) -> None:
        self._config['apiKey'] = value or ''

    @property
    def sync_interval_ms(self) -> int:
        """Get the auto-sync interval in milliseconds."""
        value = self._config.get('syncInterval')
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            return DEFAULT_CONFIG['syncInterval']
        return int(value)

    @sync_interval_ms.setter
    def sync_interval_ms(self, value: int) -> None:
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ValueError("syncInterval must be a positive number of milliseconds")
        self._config['syncInterval'] = value

    @property
    def sync_interval(self) -> float:
        """Get the auto-sync interval in seconds."""
        return self.sync_interval_ms / 1000.0

    @property
    def offline_mode(self) -> bool:
        """Whether remote calls are currently suppressed."""
        return bool(self._config.get('offlineMode', False))

    @offline_mode.setter
    def offline_mode(self, value: bool) -> None:
        self._config['offlineMode'] = bool(value)

    def __repr__(self) -> str:
        return f"ClientConfig(server_url={self.server_url}, offline_mode={self.offline_mode})"
