import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List
from unittest.mock import MagicMock

import pytest

from setman.core.setting_manager import SettingManager
from setman.domain.interfaces.fallback import FallbackSource
from setman.domain.interfaces.storage import SettingStorage
from setman.domain.models.common import Float32
from setman.domain.models.errors import (
    SettingNotFoundError,
    SettingRequiredError,
    StorageOperationError,
    TypeConversionError,
)
from setman.infrastructure.cache.ttl_cache import BoundedTTLCache
from setman.infrastructure.storage.memory_storage import InMemorySettingStorage


@dataclass
class DatabaseConfig:
    host: str
    port: int


@dataclass
class ClusterConfig:
    name: str
    primary: DatabaseConfig
    replicas: List[DatabaseConfig]
    rotated_at: datetime
    lease: timedelta


@pytest.fixture
def failing_storage():
    mock = MagicMock(spec=SettingStorage)
    mock.get.side_effect = StorageOperationError("disk on fire")
    mock.set.side_effect = StorageOperationError("disk on fire")
    mock.delete.side_effect = StorageOperationError("disk on fire")
    return mock

@pytest.fixture
def mock_fallback():
    mock = MagicMock(spec=FallbackSource)
    mock.is_set.return_value = False
    return mock

# --- Raw get/set ---

def test_set_encodes_and_writes_through(manager: SettingManager, storage: InMemorySettingStorage):
    manager.set("test.int", 42)

    assert storage.get("test.int") == "42"
    assert manager.cache.get("test.int") == ("42", True)
    assert manager.get("test.int") == "42"

def test_get_after_set_is_served_from_cache(manager: SettingManager, storage, mocker):
    manager.set("test.string", "hello world")
    spy = mocker.spy(storage, "get")

    assert manager.get("test.string") == "hello world"
    spy.assert_not_called()

def test_cache_shadows_store_until_ttl_expires(manager: SettingManager, storage, clock):
    manager.set("test.key", "value")
    # Another process rewrites the durable copy.
    storage.set("test.key", "modified")

    assert manager.get("test.key") == "value"

    clock.advance(61)
    assert manager.get("test.key") == "modified"

def test_store_hit_populates_cache(manager: SettingManager, storage):
    storage.set("preloaded", "from-store")

    assert manager.get("preloaded") == "from-store"

    storage.delete("preloaded")
    assert manager.get("preloaded") == "from-store"

def test_missing_key_raises_not_found(manager: SettingManager):
    with pytest.raises(SettingNotFoundError):
        manager.get("not.exist")

def test_missing_key_without_fallback(storage, cache):
    manager = SettingManager(storage=storage, cache=cache)
    with pytest.raises(SettingNotFoundError):
        manager.get("not.exist")

# --- Fallback promotion ---

def test_fallback_value_is_promoted_to_store(manager: SettingManager, storage, fallback):
    fallback.values["app.name"] = "From Config"

    assert manager.get("app.name") == "From Config"
    # A direct store lookup now succeeds without the fallback.
    assert storage.get("app.name") == "From Config"
    assert manager.cache.get("app.name") == ("From Config", True)

def test_fallback_native_values_are_encoded(manager: SettingManager, storage, fallback):
    fallback.values["server.port"] = 8080
    fallback.values["server.tls"] = {"enabled": True}

    assert manager.get_as("server.port", int) == 8080
    assert storage.get("server.port") == "8080"
    assert manager.get_as("server.tls", dict) == {"enabled": True}
    assert storage.get("server.tls") == '{"enabled":true}'

def test_fallback_not_consulted_on_cache_or_store_hit(storage, cache, mock_fallback):
    manager = SettingManager(storage=storage, fallback=mock_fallback, cache=cache)
    storage.set("present", "x")

    manager.get("present")
    manager.get("present")

    mock_fallback.is_set.assert_not_called()
    mock_fallback.get.assert_not_called()

def test_fallback_miss_propagates_not_found(storage, cache, mock_fallback):
    manager = SettingManager(storage=storage, fallback=mock_fallback, cache=cache)

    with pytest.raises(SettingNotFoundError):
        manager.get("absent")
    mock_fallback.is_set.assert_called_once_with("absent")
    mock_fallback.get.assert_not_called()

def test_store_failure_propagates_without_fallback(failing_storage, cache, mock_fallback):
    manager = SettingManager(storage=failing_storage, fallback=mock_fallback, cache=cache)

    with pytest.raises(StorageOperationError, match="disk on fire"):
        manager.get("any.key")
    mock_fallback.is_set.assert_not_called()

def test_fallback_promotion_write_failure_propagates(cache, mock_fallback):
    storage = MagicMock(spec=SettingStorage)
    storage.get.side_effect = SettingNotFoundError("k")
    storage.set.side_effect = StorageOperationError("read-only")
    mock_fallback.is_set.return_value = True
    mock_fallback.get.return_value = "v"
    manager = SettingManager(storage=storage, fallback=mock_fallback, cache=cache)

    with pytest.raises(StorageOperationError, match="read-only"):
        manager.get("k")

# --- Write failures ---

def test_store_write_failure_is_raised_and_cache_keeps_value(failing_storage, cache):
    manager = SettingManager(storage=failing_storage, cache=cache)

    with pytest.raises(StorageOperationError):
        manager.set("k", "attempted")

    # Documented window: the uncommitted value is visible from the cache.
    assert manager.get("k") == "attempted"

def test_unencodable_value_touches_nothing(manager: SettingManager, storage):
    with pytest.raises(TypeConversionError):
        manager.set("bad", object())

    assert len(storage) == 0
    assert manager.cache.get("bad") == (None, False)

# --- Delete ---

def test_delete_removes_from_cache_and_store(manager: SettingManager, storage):
    manager.set("k", "v")
    manager.delete("k")

    with pytest.raises(SettingNotFoundError):
        manager.get("k")
    with pytest.raises(SettingNotFoundError):
        storage.get("k")

def test_delete_store_failure_is_raised_after_cache_removal(failing_storage):
    cache = BoundedTTLCache(max_size=10, ttl_seconds=60)
    cache.set("k", "v")
    manager = SettingManager(storage=failing_storage, cache=cache)

    with pytest.raises(StorageOperationError):
        manager.delete("k")
    assert cache.get("k") == (None, False)

# --- Typed access ---

@pytest.mark.parametrize("value, type_", [
    ("My Awesome App", str),
    (100, int),
    (9223372036854775807, int),
    (-12, int),
    (3.14159, float),
    (True, bool),
    (False, bool),
    (DatabaseConfig(host="localhost", port=5432), DatabaseConfig),
])
def test_scalar_and_structured_round_trip(manager: SettingManager, value, type_):
    manager.set("key", value)
    assert manager.get_as("key", type_) == value

def test_nested_structured_round_trip_through_store(manager: SettingManager, clock):
    cluster = ClusterConfig(
        name="db",
        primary=DatabaseConfig(host="primary", port=5432),
        replicas=[DatabaseConfig(host="replica", port=5433)],
        rotated_at=datetime(2024, 3, 20, tzinfo=timezone.utc),
        lease=timedelta(minutes=5),
    )
    manager.set("db.cluster", cluster)
    # Let the cached copy expire so the value is decoded from the store.
    clock.advance(120)

    decoded = manager.get_as("db.cluster", ClusterConfig)

    assert decoded == cluster
    assert isinstance(decoded.primary, DatabaseConfig)
    assert isinstance(decoded.rotated_at, datetime)

def test_float32_round_trip(manager: SettingManager, storage):
    manager.set("ratio", Float32(0.1))
    assert storage.get("ratio") == "0.1"
    assert manager.get_as("ratio", Float32) == pytest.approx(0.1, rel=1e-6)

def test_decode_failure_is_reported(manager: SettingManager):
    manager.set("test.number", "not a number")

    with pytest.raises(TypeConversionError):
        manager.get_as("test.number", int)

def test_must_get_returns_value(manager: SettingManager):
    manager.set("workers", 4)
    assert manager.must_get("workers", int) == 4

def test_must_get_escalates_missing_key(manager: SettingManager):
    with pytest.raises(SettingRequiredError) as excinfo:
        manager.must_get("absent", int)
    assert isinstance(excinfo.value.cause, SettingNotFoundError)

def test_must_get_escalates_decode_failure(manager: SettingManager):
    manager.set("workers", "many")
    with pytest.raises(SettingRequiredError) as excinfo:
        manager.must_get("workers", int)
    assert isinstance(excinfo.value.cause, TypeConversionError)

# --- Wiring ---

def test_default_cache_is_created():
    manager = SettingManager(storage=InMemorySettingStorage())
    assert isinstance(manager.cache, BoundedTTLCache)
    assert manager.cache.max_size == 1000
    assert manager.cache.ttl == 3600

def test_set_storage_rebinds_store(manager: SettingManager):
    replacement = InMemorySettingStorage()
    manager.set_storage(replacement)
    manager.set("k", "v")
    assert replacement.get("k") == "v"

def test_independent_managers_do_not_share_state():
    first = SettingManager(storage=InMemorySettingStorage())
    second = SettingManager(storage=InMemorySettingStorage())

    first.set("k", "one")
    with pytest.raises(SettingNotFoundError):
        second.get("k")

# --- Concurrency ---

def test_concurrent_writers_readers_deleters_on_disjoint_keys():
    manager = SettingManager(storage=InMemorySettingStorage())
    errors = []
    workers, operations = 10, 100

    def worker(worker_id: int) -> None:
        for j in range(operations):
            key = f"key-{worker_id}-{j}"
            try:
                manager.set(key, j)
                value = manager.get_as(key, int)
                if value != j:
                    errors.append(f"value mismatch for {key}: got {value}, want {j}")
                manager.delete(key)
                try:
                    manager.get(key)
                    errors.append(f"{key} still readable after delete")
                except SettingNotFoundError:
                    pass
            except Exception as e:
                errors.append(f"{key}: {e!r}")

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
