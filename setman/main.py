"""Main entry point for the setman application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the SettingManager.
"""

import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from typing_extensions import Annotated

from setman.core import settings_api
from setman.core.setting_manager import SettingManager
from setman.domain.models.common import Float32
from setman.domain.models.errors import SettingError
from setman.infrastructure.cache.ttl_cache import BoundedTTLCache
from setman.infrastructure.cli.display import ConsoleDisplay
from setman.infrastructure.config.settings import DEFAULT_CONFIG_FILE, AppConfig, LayeredConfigSource
from setman.infrastructure.monitoring.logger_setup import setup_logging
from setman.infrastructure.storage.disk_storage import DiskSettingStorage
from setman.infrastructure.storage.memory_storage import InMemorySettingStorage

logger = logging.getLogger(__name__)

# Names accepted by --type, mapped to the codec's target types.
VALUE_TYPES: Dict[str, Any] = {
    'str': str,
    'int': int,
    'float': float,
    'float32': Float32,
    'bool': bool,
    'datetime': datetime,
    'duration': timedelta,
    'json': object,
}

# --- Dependency Injection Container (Manual) ---

def create_dependencies(
    config_file: Optional[Path] = DEFAULT_CONFIG_FILE,
    env_file: Optional[Path] = None,
    backend: Optional[str] = None,
    store_path: Optional[Path] = None,
    verbose: bool = False,
) -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root: configuration first, then logging,
    then storage, fallback, cache, manager and display.
    """
    dependencies: Dict[str, Any] = {}

    # 1. Load Configuration First
    source = LayeredConfigSource(config_file=config_file, env_file=env_file)
    if backend:
        source.set_override('storage.backend', backend)
    if store_path:
        source.set_override('storage.path', str(store_path))
    if verbose:
        source.set_override('logging.level', 'DEBUG')
    config = AppConfig.from_source(source)
    dependencies['config_source'] = source
    dependencies['config'] = config

    setup_logging(
        level_name=config.log_level,
        log_format=config.log_format,
        log_file=config.log_file,
    )
    logger.info("Configuration and logging initialized.")

    # 2. Instantiate Infrastructure Adapters
    if config.storage_backend == 'memory':
        dependencies['storage'] = InMemorySettingStorage()
    else:
        dependencies['storage'] = DiskSettingStorage(config.storage_path)
    dependencies['cache'] = BoundedTTLCache(
        max_size=config.cache_max_size,
        ttl_seconds=config.cache_ttl_seconds,
    )
    dependencies['ui'] = ConsoleDisplay()

    # 3. Core Services
    dependencies['manager'] = SettingManager(
        storage=dependencies['storage'],
        fallback=source if config.fallback_enabled else None,
        cache=dependencies['cache'],
    )
    settings_api.configure(dependencies['manager'])

    logger.info("All dependencies initialized successfully.")
    return dependencies

# --- Typer App Definition ---
app = typer.Typer(
    name="setman",
    help="setman: typed settings backed by a durable store, a TTL cache and layered config fallback.",
    add_completion=False,
)

TypeOption = Annotated[
    str,
    typer.Option("--type", "-t", help=f"Value type: {', '.join(VALUE_TYPES)}.")
]

def _resolve_type(type_name: str) -> Any:
    try:
        return VALUE_TYPES[type_name.lower()]
    except KeyError:
        raise typer.BadParameter(f"Unknown type '{type_name}'. Choose from: {', '.join(VALUE_TYPES)}.")

def _deps(ctx: typer.Context) -> Dict[str, Any]:
    return ctx.obj

@app.callback()
def main_callback(
    ctx: typer.Context,
    config: Annotated[Optional[Path], typer.Option("--config", "-c", help="YAML configuration file.")] = DEFAULT_CONFIG_FILE,
    env_file: Annotated[Optional[Path], typer.Option("--env-file", help=".env file to read (searched upwards from cwd by default).")] = None,
    backend: Annotated[Optional[str], typer.Option("--backend", "-b", help="Storage backend: 'disk' or 'memory'.")] = None,
    store: Annotated[Optional[Path], typer.Option("--store", "-s", help="Directory of the disk store.")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """Wire dependencies before any command runs."""
    if ctx.obj is not None:
        return
    try:
        ctx.obj = create_dependencies(
            config_file=config, env_file=env_file, backend=backend, store_path=store, verbose=verbose
        )
    except (SettingError, ValueError, OSError) as e:
        logger.error(f"Fatal Error during application initialization: {e}", exc_info=True)
        ConsoleDisplay().display_error(f"Application Initialization Failed: {e}")
        raise typer.Exit(code=1)
    if isinstance(ctx.obj['storage'], DiskSettingStorage):
        ctx.call_on_close(ctx.obj['storage'].close)

# --- CLI Commands ---

@app.command()
def get(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Setting key, e.g. 'server.port'.")],
    value_type: TypeOption = 'str',
    show_type: Annotated[bool, typer.Option("--show-type", help="Show key and value type with the value.")] = False,
):
    """Print the value of a setting."""
    deps = _deps(ctx)
    target = _resolve_type(value_type)
    try:
        value = deps['manager'].get_as(key, target)
    except SettingError as e:
        deps['ui'].display_error(str(e))
        raise typer.Exit(code=1)
    deps['ui'].display_value(key, value, verbose=show_type)

@app.command(name="set")
def set_command(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Setting key.")],
    value: Annotated[str, typer.Argument(help="Value, interpreted according to --type.")],
    value_type: TypeOption = 'str',
):
    """Store a setting. The value is validated against --type first."""
    deps = _deps(ctx)
    target = _resolve_type(value_type)
    manager: SettingManager = deps['manager']
    try:
        typed_value = manager.codec.decode(value, target)
        manager.set(key, typed_value)
    except SettingError as e:
        deps['ui'].display_error(str(e))
        raise typer.Exit(code=1)
    logger.info(f"Stored setting '{key}' as {value_type}")

@app.command()
def delete(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Setting key.")],
):
    """Remove a setting from the store."""
    deps = _deps(ctx)
    try:
        deps['manager'].delete(key)
    except SettingError as e:
        deps['ui'].display_error(str(e))
        raise typer.Exit(code=1)
    deps['ui'].display_info(f"Deleted '{key}'.")

@app.command()
def stats(ctx: typer.Context):
    """Show cache and storage configuration."""
    deps = _deps(ctx)
    config: AppConfig = deps['config']
    summary: Dict[str, Any] = dict(deps['cache'].stats())
    summary['storage_backend'] = config.storage_backend
    if config.storage_backend == 'disk':
        summary['storage_path'] = str(config.storage_path)
    summary['fallback_enabled'] = config.fallback_enabled
    deps['ui'].display_stats(summary)

# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()

if __name__ == "__main__":
    cli_entry_point()
