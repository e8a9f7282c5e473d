"""Bounded in-memory setting cache with sliding TTL expiration.

Entries expire a fixed time after their *last access*, so hot keys stay
resident while cold keys decay. Capacity is enforced on write: each insert
first sweeps expired entries, then evicts a single least-recently-accessed
entry if the cache is still full.
"""

import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from setman.domain.interfaces.cache import SettingCache
from setman.domain.models.common import RawValue, SettingKey

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 1000
DEFAULT_TTL_SECONDS = 60 * 60  # 1 hour


class ReadWriteLock:
    """Many concurrent readers or one writer.

    Writers are preferred: once a writer is waiting, new readers block so a
    steady stream of lookups cannot starve a refresh or an insert.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


class BoundedTTLCache(SettingCache):
    """Thread-safe string cache bounded by entry count and sliding TTL.

    Values and last-access times live in two parallel dicts that are always
    mutated together under the write lock.
    """

    def __init__(
        self,
        max_size: int = DEFAULT_MAX_SIZE,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initializes the cache.

        Args:
            max_size: Maximum number of entries held at once.
            ttl_seconds: Seconds an entry survives without being accessed.
            clock: Returns the current time in seconds. Injectable for tests.
        """
        if max_size <= 0 or ttl_seconds <= 0:
            raise ValueError("Max size and TTL must be positive.")

        self.max_size = max_size
        self.ttl = ttl_seconds
        self._clock = clock
        self._values: Dict[str, str] = {}
        self._last_access: Dict[str, float] = {}
        self._lock = ReadWriteLock()
        logger.info(f"BoundedTTLCache initialized: max={max_size} entries, ttl={ttl_seconds}s")

    def _is_stale(self, accessed_at: float, now: float) -> bool:
        return now - accessed_at > self.ttl

    def _remove(self, key: str) -> None:
        # Caller holds the write lock.
        self._values.pop(key, None)
        self._last_access.pop(key, None)

    # --- SettingCache Interface Implementation ---

    def get(self, key: SettingKey) -> Tuple[Optional[RawValue], bool]:
        """Returns (value, True) for a fresh entry and refreshes its access time."""
        with self._lock.read_locked():
            value = self._values.get(key)
            accessed_at = self._last_access.get(key)

        if value is None or accessed_at is None:
            return None, False

        if self._is_stale(accessed_at, self._clock()):
            with self._lock.write_locked():
                # A concurrent set may have refreshed the entry since the read.
                current = self._last_access.get(key)
                if current is not None and self._is_stale(current, self._clock()):
                    self._remove(key)
                    logger.debug(f"Cache EXPIRED key: {key}")
            return None, False

        with self._lock.write_locked():
            if key in self._last_access:
                self._last_access[key] = self._clock()
        logger.debug(f"Cache HIT for key: {key}")
        return RawValue(value), True

    def set(self, key: SettingKey, value: RawValue) -> None:
        """Inserts or overwrites key after sweeping expired entries.

        If the cache is still at capacity after the sweep, exactly one entry
        (the one with the oldest last access) is evicted first.
        """
        with self._lock.write_locked():
            now = self._clock()
            expired = [k for k, t in self._last_access.items() if self._is_stale(t, now)]
            for k in expired:
                self._remove(k)
            if expired:
                logger.debug(f"Cache swept {len(expired)} expired entries")

            if len(self._values) >= self.max_size:
                oldest_key = None
                oldest_time = None
                for k, t in self._last_access.items():
                    if oldest_time is None or t < oldest_time:
                        oldest_key, oldest_time = k, t
                if oldest_key is not None:
                    self._remove(oldest_key)
                    logger.debug(f"Cache EVICTED key (least recently accessed): {oldest_key}")

            self._values[key] = value
            self._last_access[key] = now

    def delete(self, key: SettingKey) -> None:
        """Removes key together with its access time."""
        with self._lock.write_locked():
            self._remove(key)

    def clear(self) -> None:
        with self._lock.write_locked():
            self._values.clear()
            self._last_access.clear()
        logger.info("Cleared setting cache.")

    # --- Introspection ---

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._values)

    def __contains__(self, key: object) -> bool:
        """True if key is resident and fresh. Does not refresh the entry."""
        with self._lock.read_locked():
            accessed_at = self._last_access.get(key)
        return accessed_at is not None and not self._is_stale(accessed_at, self._clock())

    def keys(self) -> List[str]:
        """Snapshot of resident keys, including ones that have gone stale."""
        with self._lock.read_locked():
            return list(self._values)

    def stats(self) -> Dict[str, float]:
        with self._lock.read_locked():
            size = len(self._values)
        return {"entries": size, "max_size": self.max_size, "ttl_seconds": self.ttl}
