"""
Durable keyed-blob storage for the client.

Each key maps to one JSON file in the data directory, mirroring the two
blobs the client keeps: ``tracker_locations`` (the record list) and
``tracker_config`` (server URL, API key, sync interval, offline flag).
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from .errors import StorageError

logger = logging.getLogger(__name__)

LOCATIONS_KEY = 'tracker_locations'
CONFIG_KEY = 'tracker_config'


class KeyValueStorage:
    """Stores JSON blobs as ``<data_dir>/<key>.json``."""

    # Default data directory for the client
    DEFAULT_DATA_DIR = os.path.join(Path.home(), '.location-tracker')

    def __init__(self, data_dir: Optional[str] = None):
        """
        Args:
            data_dir: Directory holding the blobs. If None, uses
                TRACKER_DATA_DIR or DEFAULT_DATA_DIR
        """
        if data_dir is None:
            data_dir = os.environ.get('TRACKER_DATA_DIR', self.DEFAULT_DATA_DIR)
        self.data_dir = Path(data_dir)

    def _path(self, key: str) -> Path:
        return self.data_dir / f'{key}.json'

    def load(self, key: str) -> Optional[Any]:
        """
        Load and decode a blob.

        Returns:
            Decoded JSON, or None if the blob does not exist

        Raises:
            StorageError: If the blob exists but cannot be read or decoded
        """
        path = self._path(key)
        if not path.exists():
            return None

        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            raise StorageError(f'Could not read {key}', {'path': str(path), 'error': str(e)})

    def save(self, key: str, data: Any) -> None:
        """
        Encode and write a blob atomically.

        Raises:
            StorageError: If the blob cannot be written
        """
        path = self._path(key)
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.data_dir, prefix=f'.{key}.', suffix='.tmp')
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2)
                os.replace(tmp_path, path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f'Could not write {key}', {'path': str(path), 'error': str(e)})

        logger.debug("Saved %s to %s", key, path)

    def delete(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()

    def __repr__(self) -> str:
        return f"KeyValueStorage(data_dir={self.data_dir})"
