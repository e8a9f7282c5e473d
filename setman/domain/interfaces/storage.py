"""Interface for durable setting storage.

Any key/value persistence engine can back the SettingManager as long as it
implements these three string operations and signals a missing key with
SettingNotFoundError.
"""

import abc

from setman.domain.models.common import RawValue, SettingKey


class SettingStorage(abc.ABC):
    """Abstract Base Class for the durable store (the source of truth)."""

    @abc.abstractmethod
    def get(self, key: SettingKey) -> RawValue:
        """Reads the stored string for a key.

        Args:
            key: The setting key.

        Returns:
            The canonical string form last written for the key.

        Raises:
            SettingNotFoundError: If the key is not stored.
            StorageOperationError: If the backend fails for any other reason.
        """
        pass

    @abc.abstractmethod
    def set(self, key: SettingKey, value: RawValue) -> None:
        """Persists the string value for a key, replacing any previous value.

        Raises:
            StorageOperationError: If the write fails.
        """
        pass

    @abc.abstractmethod
    def delete(self, key: SettingKey) -> None:
        """Removes a key. Deleting an absent key is not an error.

        Raises:
            StorageOperationError: If the removal fails.
        """
        pass
