"""Interface for the setting cache.

Defines the contract for the transient accelerator sitting in front of the
durable store. Implementations never raise; they only report hit or miss.
"""

import abc
from typing import Optional, Tuple

from setman.domain.models.common import RawValue, SettingKey


class SettingCache(abc.ABC):
    """Abstract Base Class for the in-memory setting cache."""

    @abc.abstractmethod
    def get(self, key: SettingKey) -> Tuple[Optional[RawValue], bool]:
        """Looks up a key.

        Args:
            key: The setting key.

        Returns:
            A (value, found) pair. value is None when found is False.
        """
        pass

    @abc.abstractmethod
    def set(self, key: SettingKey, value: RawValue) -> None:
        """Stores a value, evicting stale or old entries as needed."""
        pass

    @abc.abstractmethod
    def delete(self, key: SettingKey) -> None:
        """Removes a key. No-op if absent."""
        pass

    @abc.abstractmethod
    def clear(self) -> None:
        """Removes every entry."""
        pass
