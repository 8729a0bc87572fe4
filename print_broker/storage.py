"""
Persistent Storage
==================

Small file-backed key-value store. Each key lives in its own JSON file,
named by the sha256 of the key, holding ``{"key": ..., "value": ...}``.
Values must be JSON serializable. There is no expiry.
"""

import hashlib
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, List, Union

from .errors import StorageError

logger = logging.getLogger(__name__)


class KeyValueStore:
    """JSON key-value store rooted at ``directory``."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)
        self._lock = threading.Lock()

    def init(self) -> 'KeyValueStore':
        """Create the store directory and verify every entry parses."""
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create store directory {self.directory}: {e}") from e
        for path in self.directory.glob('*.json'):
            self._read(path)
        logger.debug("Store %s ready with %d key(s)", self.directory, len(self.keys()))
        return self

    def _path(self, key: str) -> Path:
        if not isinstance(key, str):
            raise TypeError(f'store keys must be strings (got {type(key).__name__})')
        digest = hashlib.sha256(key.encode('utf-8')).hexdigest()
        return self.directory / f'{digest}.json'

    def _read(self, path: Path) -> dict:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupted store entry {path.name}: {e}") from e
        if not isinstance(data, dict) or 'key' not in data or 'value' not in data:
            raise StorageError(f"Malformed store entry {path.name}")
        return data

    def get(self, key: str, default: Any = None) -> Any:
        """Value for ``key``, or ``default`` when absent."""
        path = self._path(key)
        try:
            return self._read(path)['value']
        except FileNotFoundError:
            return default

    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        path = self._path(key)
        try:
            body = json.dumps({'key': key, 'value': value})
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for {key!r} is not JSON serializable: {e}") from e

        with self._lock:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=str(self.directory), suffix='.tmp')
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    f.write(body)
                os.replace(tmp, path)
            except OSError:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise

    def remove(self, key: str) -> bool:
        """Delete ``key``. Returns False if it was not stored."""
        with self._lock:
            try:
                self._path(key).unlink()
                return True
            except FileNotFoundError:
                return False

    def keys(self) -> List[str]:
        return sorted(self._read(p)['key'] for p in self.directory.glob('*.json'))

