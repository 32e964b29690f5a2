"""
Session Storage Adapters

Implementations of the SessionStorage protocol. The draft queue persists its
whole draft list through one of these under a single scoped key.

Adapters defined:
- MemoryStorage: dict-backed, lives as long as the process
- FileStorage: one text file per key inside a session directory
- DatabaseStorage: key/value rows in the SQL Server session table
"""

import os
import re
from typing import Dict, Optional

from config import settings
from utils.exceptions import StorageError
from utils.helpers import ensure_dir_exists
from utils.logger import get_logger

logger = get_logger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r'[^A-Za-z0-9._-]')


class MemoryStorage:
    """In-process storage; nothing survives a restart."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})

    def persist(self, key: str, serialized_value: str) -> None:
        self._values[key] = serialized_value

    def load(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def remove(self, key: str) -> None:
        self._values.pop(key, None)


class FileStorage:
    """
    Storage backed by a directory of files, one file per key.

    Keys are sanitised into file names, so "fomo-drafts" is stored as
    "<directory>/fomo-drafts.json".
    """

    def __init__(self, directory: Optional[str] = None):
        self.directory = str(directory or settings.SESSION_STORAGE_DIR)

    def _path_for(self, key: str) -> str:
        if not key:
            raise StorageError("Storage key must not be empty")
        return os.path.join(self.directory, _UNSAFE_KEY_CHARS.sub('_', key) + ".json")

    def persist(self, key: str, serialized_value: str) -> None:
        path = self._path_for(key)
        tmp_path = path + ".tmp"
        try:
            ensure_dir_exists(self.directory)
            with open(tmp_path, 'w', encoding='utf-8') as f:
                f.write(serialized_value)
            os.replace(tmp_path, path)
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}") from e

    def load(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        if not os.path.exists(path):
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return f.read()
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

    def remove(self, key: str) -> None:
        path = self._path_for(key)
        try:
            if os.path.exists(path):
                os.remove(path)
        except OSError as e:
            raise StorageError(f"Failed to remove {path}: {e}") from e


class DatabaseStorage:
    """Storage backed by the SQL Server session table."""

    def __init__(self, connection=None):
        if connection is None:
            # pyodbc is only required by the database backend
            from data.database import DatabaseConnection
            connection = DatabaseConnection()
        self.connection = connection

    def persist(self, key: str, serialized_value: str) -> None:
        if not self.connection.set_session_value(key, serialized_value):
            raise StorageError(f"Failed to write session value for key: {key}")

    def load(self, key: str) -> Optional[str]:
        rows = self.connection.get_session_value(key)
        if rows is None:
            raise StorageError(f"Failed to read session value for key: {key}")
        if not rows:
            return None
        return rows[0]['Storage_Value']

    def remove(self, key: str) -> None:
        if not self.connection.delete_session_value(key):
            raise StorageError(f"Failed to delete session value for key: {key}")


def create_storage(backend: Optional[str] = None):
    """
    Build the storage adapter named by the configuration.

    Args:
        backend: "file", "database" or "memory"; defaults to settings.STORAGE_BACKEND.

    Returns:
        A SessionStorage implementation.

    Raises:
        StorageError: If the backend name is unknown.
    """
    backend = (backend or settings.STORAGE_BACKEND).lower()
    if backend == "file":
        return FileStorage()
    if backend == "database":
        return DatabaseStorage()
    if backend == "memory":
        return MemoryStorage()
    raise StorageError(f"Unknown storage backend: {backend}")
