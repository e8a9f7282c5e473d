import logging
from threading import Lock
from typing import Dict, Optional

from setman.domain.interfaces.storage import SettingStorage
from setman.domain.models.common import RawValue, SettingKey
from setman.domain.models.errors import SettingNotFoundError

logger = logging.getLogger(__name__)


class InMemorySettingStorage(SettingStorage):
    """Process-local store backed by a dict. Useful for tests and ephemeral runs."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = Lock()
        logger.info(f"InMemorySettingStorage initialized with {len(self._data)} entries.")

    def get(self, key: SettingKey) -> RawValue:
        with self._lock:
            try:
                return RawValue(self._data[key])
            except KeyError:
                raise SettingNotFoundError(key) from None

    def set(self, key: SettingKey, value: RawValue) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: SettingKey) -> None:
        with self._lock:
            self._data.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
