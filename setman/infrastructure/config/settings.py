"""Layered configuration reader and application config.

LayeredConfigSource reads a YAML file, a .env file and environment
variables and serves as the SettingManager's read-only fallback source.
AppConfig holds the settings setman itself needs at startup (cache size,
TTL, storage backend, logging), read from the same layers.

Priority order (highest to lowest):
1. Overrides set in code (tests, CLI flags)
2. Environment variables
3. .env file
4. YAML configuration file
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import dotenv_values

from setman.domain.interfaces.fallback import FallbackSource
from setman.domain.models.errors import SettingNotFoundError

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".setman"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
DEFAULT_STORE_PATH = DEFAULT_CONFIG_DIR / "store"
ENV_FILE_NAME = ".env"
DEFAULT_ENV_PREFIX = "SETMAN_"

_MISSING = object()


def find_dotenv_path(start: Optional[Path] = None) -> Optional[Path]:
    """Searches for the .env file upwards from start (default: cwd)."""
    cwd = start or Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


def env_key_for(key: str, prefix: str = DEFAULT_ENV_PREFIX) -> str:
    """Maps a dotted setting key to its environment variable name.

    ``database.host`` becomes ``SETMAN_DATABASE_HOST``.
    """
    return prefix + key.upper().replace(".", "_").replace("-", "_")


class LayeredConfigSource(FallbackSource):
    """Read-only view over overrides, environment, .env and YAML layers.

    Values from the environment and .env are returned as strings; values
    from YAML keep the type YAML gave them (int, list, mapping, ...).
    """

    def __init__(
        self,
        config_file: Optional[Path] = DEFAULT_CONFIG_FILE,
        env_file: Optional[Path] = None,
        env_prefix: str = DEFAULT_ENV_PREFIX,
        environ: Optional[Mapping[str, str]] = None,
        search_dotenv: bool = True,
    ):
        """Initializes the source and loads the file layers.

        Args:
            config_file: Path to the YAML configuration file, or None.
            env_file: Path to the .env file (searched upwards from cwd if None
                and search_dotenv is True).
            env_prefix: Prefix prepended to environment variable names.
            environ: Environment mapping to read. Defaults to os.environ.
            search_dotenv: Whether to look for a .env file when env_file is None.
        """
        self.config_file = Path(config_file) if config_file is not None else None
        self.env_file = Path(env_file) if env_file is not None else None
        self.env_prefix = env_prefix
        self._environ = environ if environ is not None else os.environ
        self._search_dotenv = search_dotenv
        self._yaml: Dict[str, Any] = {}
        self._dotenv: Dict[str, Optional[str]] = {}
        self._overrides: Dict[str, Any] = {}
        self.load()

    def load(self) -> None:
        """Loads or reloads the YAML and .env layers."""
        self._yaml = {}
        if self.config_file is not None and self.config_file.is_file():
            try:
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    yaml_config = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as e:
                logger.error(f"Failed to load or parse YAML config {self.config_file}: {e}")
                raise
            if isinstance(yaml_config, dict):
                self._yaml = yaml_config
                logger.info(f"Loaded configuration from YAML: {self.config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {self.config_file} did not contain a dictionary.")
        elif self.config_file is not None:
            logger.debug(f"YAML config file not found: {self.config_file}")

        dotenv_path = self.env_file
        if dotenv_path is None and self._search_dotenv:
            dotenv_path = find_dotenv_path()
        self._dotenv = {}
        if dotenv_path is not None and dotenv_path.is_file():
            self._dotenv = dict(dotenv_values(dotenv_path))
            logger.info(f"Loaded .env values from: {dotenv_path}")
        else:
            logger.debug("Skipping .env file loading (path not found or not specified).")

    def _lookup_yaml(self, key: str) -> Any:
        if key in self._yaml:
            node = self._yaml[key]
        else:
            node = self._yaml
            for part in key.split("."):
                if not isinstance(node, dict) or part not in node:
                    return _MISSING
                node = node[part]
        # A bare `key:` parses as null and counts as unset.
        return _MISSING if node is None else node

    def _lookup(self, key: str) -> Any:
        if key in self._overrides:
            return self._overrides[key]

        env_key = env_key_for(key, self.env_prefix)
        if env_key in self._environ:
            return self._environ[env_key]

        dotenv_value = self._dotenv.get(env_key)
        if dotenv_value is not None:
            return dotenv_value

        return self._lookup_yaml(key)

    # --- FallbackSource Interface Implementation ---

    def is_set(self, key: str) -> bool:
        return self._lookup(key) is not _MISSING

    def get(self, key: str, default: Any = _MISSING) -> Any:
        """Returns the highest-priority value for key.

        Raises:
            SettingNotFoundError: If no layer has key and no default is given.
        """
        value = self._lookup(key)
        if value is _MISSING:
            if default is _MISSING:
                raise SettingNotFoundError(key)
            logger.debug(f"Config key '{key}' not found in any layer. Returning default: {default}")
            return default
        return value

    # --- Overrides ---

    def set_override(self, key: str, value: Any) -> None:
        """Sets an in-memory value that shadows every other layer."""
        logger.debug(f"Setting config override: {key} = {value}")
        self._overrides[key] = value

    def clear_overrides(self) -> None:
        self._overrides = {}
        logger.debug("Cleared config overrides")


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


@dataclass
class AppConfig:
    """Settings setman needs to wire itself up."""
    cache_max_size: int = 1000
    cache_ttl_seconds: float = 3600.0
    storage_backend: str = 'disk'  # 'disk' or 'memory'
    storage_path: Path = DEFAULT_STORE_PATH
    fallback_enabled: bool = True
    log_level: str = 'WARNING'
    log_file: Optional[str] = None
    log_format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    @classmethod
    def from_source(cls, source: LayeredConfigSource) -> "AppConfig":
        """Builds the config from a layered source, applying defaults.

        Raises:
            ValueError: If a numeric setting is not a number.
        """
        defaults = cls()
        try:
            max_size = int(source.get('cache.max_size', defaults.cache_max_size))
            ttl = float(source.get('cache.ttl_seconds', defaults.cache_ttl_seconds))
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid cache configuration: {e}") from e

        backend = str(source.get('storage.backend', defaults.storage_backend)).lower()
        if backend not in ('disk', 'memory'):
            raise ValueError(f"Unknown storage backend '{backend}'. Use 'disk' or 'memory'.")

        log_file = source.get('logging.file', None)
        return cls(
            cache_max_size=max_size,
            cache_ttl_seconds=ttl,
            storage_backend=backend,
            storage_path=Path(str(source.get('storage.path', defaults.storage_path))).expanduser(),
            fallback_enabled=_as_bool(source.get('fallback.enabled', True)),
            log_level=str(source.get('logging.level', defaults.log_level)).upper(),
            log_file=str(log_file) if log_file else None,
            log_format=str(source.get('logging.format', defaults.log_format)),
        )
