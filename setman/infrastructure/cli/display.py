import logging
from typing import Any, Dict

from rich.console import Console
from rich.panel import Panel
from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.pretty import Pretty
from rich.text import Text
from rich.table import Table

from setman.domain.interfaces.user_interface import UserInterface

logger = logging.getLogger(__name__)


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Console = None):
        """Initializes the rich Console."""
        self._console = console or Console()

    @property
    def console(self):
        """Get the Rich console instance for direct operations."""
        return self._console

    @console.setter
    def console(self, console: Console) -> None:
        self._console = console

    def display_value(self, key: str, value: Any, **kwargs: Any) -> None:
        """Prints a setting value.

        Strings are printed bare so the output can be piped; anything else is
        pretty-printed.

        Args:
            key: The setting key.
            value: The decoded value.
            **kwargs: Additional arguments including:
                - verbose: Show the key and value type alongside the value.
        """
        logger.debug(f"display_value called: key={key}, type={type(value).__name__}")
        if kwargs.get("verbose"):
            table = Table(show_header=False, box=ROUNDED, border_style="cyan", padding=(0, 1))
            table.add_column("Field", style="bold cyan")
            table.add_column("Value")
            table.add_row("key", key)
            table.add_row("type", type(value).__name__)
            table.add_row("value", Pretty(value))
            self.console.print(table)
            return

        if isinstance(value, str):
            self.console.print(value, markup=False, highlight=False)
        else:
            self.console.print(Pretty(value))

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style.

        Args:
            error_message: The error message to display.
        """
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message.

        Args:
            info_message: The informational message to display.
        """
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message.

        Args:
            warning_message: The warning message to display.
        """
        logger.warning(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_stats(self, stats: Dict[str, Any]) -> None:
        """Displays cache statistics as a two-column table."""
        table = Table(title="Setting cache", box=ROUNDED, border_style="cyan")
        table.add_column("Metric", style="bold cyan")
        table.add_column("Value", justify="right")
        for name, value in stats.items():
            table.add_row(str(name), str(value))
        self.console.print(table)
