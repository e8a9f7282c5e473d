"""Interface for presenting results to the user.

Defines the contract for displaying setting values, errors, warnings and
cache statistics, allowing different UI implementations (e.g., console, GUI).
"""

import abc
from typing import Any, Dict


class UserInterface(abc.ABC):
    """Abstract Base Class for user-facing output."""

    @abc.abstractmethod
    def display_value(self, key: str, value: Any, **kwargs: Any) -> None:
        """Displays the value of a setting.

        Args:
            key: The setting key.
            value: The decoded value to show.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user.

        Args:
            error_message: The error message string.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user."""
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user."""
        pass

    def display_stats(self, stats: Dict[str, Any]) -> None:
        """Displays cache statistics. Optional for implementations.

        Args:
            stats: Mapping of statistic name to value.
        """
        pass
