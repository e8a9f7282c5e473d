"""Module-level typed setting API.

A thin convenience layer over one SettingManager chosen at wiring time.
Nothing is bound implicitly: call ``configure`` with a manager first (the
CLI's composition root does this). Calling ``configure`` again rebinds the
API to the new manager. Code that can take the manager as a dependency
should do so instead of using these functions.
"""

import logging
import threading
from typing import Any, Optional, Type, TypeVar

from setman.core.setting_manager import SettingManager
from setman.domain.models.errors import ManagerNotInitializedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_manager: Optional[SettingManager] = None
_lock = threading.Lock()


def configure(manager: SettingManager) -> SettingManager:
    """Binds the module-level API to manager and returns it."""
    global _manager
    with _lock:
        if _manager is not None and _manager is not manager:
            logger.info("Rebinding settings API to a new SettingManager")
        _manager = manager
    return manager


def reset() -> None:
    """Unbinds the API. Subsequent calls raise ManagerNotInitializedError."""
    global _manager
    with _lock:
        _manager = None


def get_manager() -> SettingManager:
    manager = _manager
    if manager is None:
        raise ManagerNotInitializedError()
    return manager


def set(key: str, value: Any) -> None:
    get_manager().set(key, value)


def get(key: str, type_: Type[T] = str) -> T:
    return get_manager().get_as(key, type_)


def must_get(key: str, type_: Type[T] = str) -> T:
    return get_manager().must_get(key, type_)


def delete(key: str) -> None:
    get_manager().delete(key)
