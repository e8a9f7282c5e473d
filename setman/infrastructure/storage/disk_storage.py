"""Durable setting store on top of `diskcache`.

diskcache keeps entries in a SQLite-backed directory, so settings survive
process restarts and can be shared by processes on the same host. Entries
are written without expiry; the store is the source of truth.
"""

import logging
import sqlite3
from pathlib import Path
from typing import Union

import diskcache as dc

from setman.domain.interfaces.storage import SettingStorage
from setman.domain.models.common import RawValue, SettingKey
from setman.domain.models.errors import SettingNotFoundError, StorageOperationError

logger = logging.getLogger(__name__)

DEFAULT_STORE_DIR = Path.home() / ".setman" / "store"
DEFAULT_TIMEOUT_SECONDS = 1

_MISSING = object()


class DiskSettingStorage(SettingStorage):
    """SettingStorage implementation persisting to a diskcache directory."""

    def __init__(self, directory: Union[str, Path] = DEFAULT_STORE_DIR, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        """Opens (or creates) the store directory.

        Args:
            directory: Where diskcache keeps its database files.
            timeout: SQLite busy timeout in seconds.

        Raises:
            StorageOperationError: If the directory cannot be opened.
        """
        self.directory = Path(directory)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            self._disk = dc.Cache(str(self.directory), timeout=timeout)
        except (OSError, sqlite3.Error) as e:
            logger.error(f"Failed to open setting store at {self.directory}: {e}")
            raise StorageOperationError(f"cannot open store at {self.directory}: {e}") from e
        logger.info(f"DiskSettingStorage opened at: {self._disk.directory}")

    def get(self, key: SettingKey) -> RawValue:
        try:
            value = self._disk.get(key, default=_MISSING, retry=True)
        except (dc.Timeout, sqlite3.Error, OSError) as e:
            logger.error(f"Error reading key '{key}' from store: {e}", exc_info=True)
            raise StorageOperationError(f"get {key!r} failed: {e}") from e
        if value is _MISSING:
            raise SettingNotFoundError(key)
        return RawValue(value)

    def set(self, key: SettingKey, value: RawValue) -> None:
        try:
            self._disk.set(key, value, retry=True)
        except (dc.Timeout, sqlite3.Error, OSError) as e:
            logger.error(f"Error writing key '{key}' to store: {e}", exc_info=True)
            raise StorageOperationError(f"set {key!r} failed: {e}") from e
        logger.debug(f"Store PUT key: {key}")

    def delete(self, key: SettingKey) -> None:
        try:
            self._disk.delete(key, retry=True)
        except (dc.Timeout, sqlite3.Error, OSError) as e:
            logger.error(f"Error deleting key '{key}' from store: {e}", exc_info=True)
            raise StorageOperationError(f"delete {key!r} failed: {e}") from e
        logger.debug(f"Store DELETE key: {key}")

    def close(self) -> None:
        self._disk.close()

    def __enter__(self) -> "DiskSettingStorage":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
