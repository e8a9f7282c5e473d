"""Error taxonomy shared by every setting layer.

The cache never raises; everything else reports failures with one of
these exceptions so callers can tell "missing" apart from "broken".
"""

from typing import Any, Optional


class SettingError(Exception):
    """Base class for all setting errors."""


class SettingNotFoundError(SettingError, KeyError):
    """The key is absent from the durable store (and the fallback source)."""

    def __init__(self, key: str):
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"setting key not found: {self.key}"


class TypeConversionError(SettingError, ValueError):
    """A stored string cannot be decoded as the requested type."""

    def __init__(self, raw: Any, target: Any, reason: Optional[str] = None):
        self.raw = raw
        self.target = target
        self.reason = reason
        target_name = getattr(target, "__name__", str(target))
        message = f"cannot convert {raw!r} to {target_name}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class StorageOperationError(SettingError):
    """The durable store failed for a reason other than a missing key."""


class ManagerNotInitializedError(SettingError, RuntimeError):
    """The typed API was used before a SettingManager was configured."""

    def __init__(self, message: str = "settings manager not initialized"):
        super().__init__(message)


class SettingRequiredError(SettingError):
    """A required setting is missing or unreadable. Raised by must_get only."""

    def __init__(self, key: str, cause: Exception):
        self.key = key
        self.cause = cause
        super().__init__(f"required setting {key!r} unavailable: {cause}")
