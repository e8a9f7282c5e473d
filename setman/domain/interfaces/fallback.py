"""Interface for the read-only fallback source.

Consulted by the SettingManager only when the durable store reports a
missing key. Typically backed by configuration files and the environment.
"""

import abc
from typing import Any


class FallbackSource(abc.ABC):
    """Abstract Base Class for a secondary, read-only key/value origin."""

    @abc.abstractmethod
    def is_set(self, key: str) -> bool:
        """Returns True if the source holds a value for key."""
        pass

    @abc.abstractmethod
    def get(self, key: str) -> Any:
        """Returns the value for key.

        The value may be any type the source produces (a string from the
        environment, an int or a mapping from YAML, ...). Only called after
        is_set returned True.
        """
        pass
