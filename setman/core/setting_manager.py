"""Setting Manager: the single entry point for typed configuration access.

Orchestrates the Type Codec, the in-memory cache, the durable store and the
optional fallback source:

* ``set`` encodes the value, writes the cache, then writes the store.
* ``get`` reads the cache, then the store; a store miss consults the fallback
  source and persists what it finds back through ``set``.
* ``delete`` removes the key from the cache, then from the store.

Data flows one way: ``get`` may call ``set``, ``set`` never calls ``get``.

Consistency note: because ``set`` writes the cache before the store, a failed
store write leaves the attempted value readable from the cache until it
expires or is deleted. The common success path gets read-after-write
consistency in exchange.

The manager holds no lock of its own; the cache is thread-safe and the store
is responsible for its own locking.
"""

import logging
from typing import Any, Optional, Type, TypeVar

from setman.core.codec import TypeCodec
from setman.domain.interfaces.cache import SettingCache
from setman.domain.interfaces.fallback import FallbackSource
from setman.domain.interfaces.storage import SettingStorage
from setman.domain.models.common import RawValue, SettingKey
from setman.domain.models.errors import (
    SettingNotFoundError,
    SettingRequiredError,
    TypeConversionError,
)
from setman.infrastructure.cache.ttl_cache import BoundedTTLCache

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SettingManager:
    """Write-through, read-through access to settings."""

    def __init__(
        self,
        storage: SettingStorage,
        fallback: Optional[FallbackSource] = None,
        cache: Optional[SettingCache] = None,
        codec: Optional[TypeCodec] = None,
    ):
        """Initializes the SettingManager with its collaborators.

        Args:
            storage: The durable store (source of truth).
            fallback: Read-only source consulted when the store misses.
            cache: The in-memory accelerator. Defaults to a BoundedTTLCache
                holding 1000 entries for one hour.
            codec: Converts values to and from their canonical strings.
        """
        self.storage = storage
        self.fallback = fallback
        self._cache = cache if cache is not None else BoundedTTLCache()
        self.codec = codec if codec is not None else TypeCodec()
        logger.info(
            f"SettingManager initialized: storage={type(storage).__name__}, "
            f"fallback={type(fallback).__name__ if fallback else None}"
        )

    @property
    def cache(self) -> SettingCache:
        return self._cache

    def set_storage(self, storage: SettingStorage) -> None:
        """Rebinds the durable store. Cached entries are kept."""
        logger.info(f"Switching storage to {type(storage).__name__}")
        self.storage = storage

    def set(self, key: SettingKey, value: Any) -> None:
        """Encodes and writes a value to the cache and the durable store.

        Raises:
            TypeConversionError: If the value cannot be encoded.
            Exception: Whatever the store raises, unchanged.
        """
        raw = self.codec.encode(value)
        self._cache.set(key, raw)
        try:
            self.storage.set(key, raw)
        except Exception as e:
            logger.warning(f"Store write failed for key '{key}'; cache holds an uncommitted value: {e}")
            raise

    def get(self, key: SettingKey) -> Any:
        """Returns the raw value for key.

        Values from the cache or the store are canonical strings. A value
        promoted from the fallback source is returned as the fallback
        produced it.

        Raises:
            SettingNotFoundError: If neither the store nor the fallback has key.
            Exception: Any other store or fallback failure, unchanged.
        """
        cached, found = self._cache.get(key)
        if found:
            return cached

        try:
            value = self.storage.get(key)
        except SettingNotFoundError:
            if self.fallback is not None and self.fallback.is_set(key):
                result = self.fallback.get(key)
                logger.debug(f"Key '{key}' missing from store; promoting value from fallback source")
                self.set(key, result)
                return result
            raise

        self._cache.set(key, value)
        return value

    def get_as(self, key: SettingKey, type_: Type[T]) -> T:
        """Returns the value for key decoded as type_.

        Raises:
            SettingNotFoundError: If the key is absent everywhere.
            TypeConversionError: If the stored string is not a valid type_.
        """
        value = self.get(key)
        if not isinstance(value, str):
            # Fallback sources may hand back native values (YAML ints, mappings).
            value = self.codec.encode(value)
        return self.codec.decode(RawValue(value), type_)

    def must_get(self, key: SettingKey, type_: Type[T]) -> T:
        """Like get_as, for settings the caller cannot run without.

        Raises:
            SettingRequiredError: If the key is missing or cannot be decoded.
        """
        try:
            return self.get_as(key, type_)
        except (SettingNotFoundError, TypeConversionError) as e:
            logger.error(f"Required setting '{key}' unavailable: {e}")
            raise SettingRequiredError(key, e) from e

    def delete(self, key: SettingKey) -> None:
        """Removes key from the cache, then from the store.

        The cache removal is not rolled back if the store fails.
        """
        self._cache.delete(key)
        self.storage.delete(key)
