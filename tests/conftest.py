import pytest
from typer.testing import CliRunner

from setman.core import settings_api
from setman.core.setting_manager import SettingManager
from setman.domain.interfaces.fallback import FallbackSource
from setman.domain.models.errors import SettingNotFoundError
from setman.infrastructure.cache.ttl_cache import BoundedTTLCache
from setman.infrastructure.storage.memory_storage import InMemorySettingStorage


class FakeClock:
    """Manually advanced clock for deterministic TTL tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class DictFallback(FallbackSource):
    """Fallback source over a plain dict."""

    def __init__(self, values=None):
        self.values = dict(values or {})

    def is_set(self, key: str) -> bool:
        return key in self.values

    def get(self, key: str):
        if key not in self.values:
            raise SettingNotFoundError(key)
        return self.values[key]


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()

@pytest.fixture
def clock():
    return FakeClock()

@pytest.fixture
def storage():
    return InMemorySettingStorage()

@pytest.fixture
def fallback():
    return DictFallback()

@pytest.fixture
def cache(clock):
    return BoundedTTLCache(max_size=100, ttl_seconds=60, clock=clock)

@pytest.fixture
def manager(storage, fallback, cache):
    """SettingManager wired to in-memory collaborators and a fake clock."""
    return SettingManager(storage=storage, fallback=fallback, cache=cache)

@pytest.fixture(autouse=True)
def reset_settings_api():
    """Each test starts with the module-level API unbound."""
    settings_api.reset()
    yield
    settings_api.reset()

@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch, tmp_path):
    """Keep the user's SETMAN_* variables and .env files out of tests."""
    import os
    for name in list(os.environ):
        if name.startswith("SETMAN_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
