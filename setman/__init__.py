"""setman: typed settings with a write-through TTL cache.

The public entry points are SettingManager (explicit dependency injection)
and the module-level functions in setman.core.settings_api.
"""

from setman.core.codec import TypeCodec
from setman.core.setting_manager import SettingManager
from setman.domain.models.common import Float32
from setman.domain.models.errors import (
    ManagerNotInitializedError,
    SettingError,
    SettingNotFoundError,
    SettingRequiredError,
    StorageOperationError,
    TypeConversionError,
)
from setman.infrastructure.cache.ttl_cache import BoundedTTLCache

__version__ = "0.1.0"
