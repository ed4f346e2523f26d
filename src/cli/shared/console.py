"""Console output and error handling for the meshstack CLI.

Every command writes through the shared ``console``; engine errors are
turned into exit codes by ``with_error_handling``.
"""

from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import TYPE_CHECKING

import typer
from rich.console import Console, ConsoleRenderable
from rich.markup import escape
from rich.panel import Panel
from rich.status import Status
from rich.table import Table
from rich.text import Text

if TYPE_CHECKING:
    from src.reconcile.errors import MeshstackError


class CLIConsole:
    """Rich console wrapper for consistent CLI output."""

    def __init__(
        self, console: Console | None = None, err_console: Console | None = None
    ) -> None:
        self.console = console or Console()
        self.err_console = err_console or Console(stderr=True)

    def print(self, msg: ConsoleRenderable | str | None = None) -> None:
        self.console.print(msg)

    def plain(self, msg: str) -> None:
        """Print text verbatim (helm command lines, file paths)."""
        self.console.print(msg, markup=False, highlight=False, soft_wrap=True)

    def status(self, status: str) -> Status:
        return self.console.status(status)

    def info(self, msg: str) -> None:
        self.console.print(f"[cyan]ℹ[/cyan]  {msg}")

    def ok(self, msg: str) -> None:
        self.console.print(f"[green]✅[/green] {msg}")

    def error(self, msg: str) -> None:
        self.console.print(f"[red]❌[/red] {msg}")

    def warn(self, msg: str) -> None:
        self.console.print(f"[yellow]⚠️[/yellow]  {msg}")

    def table(self, title: str, *columns: str) -> Table:
        """Create a table in the CLI's house style.

        A column name ending in ``#`` is right-aligned.
        """
        table = Table(title=title, show_header=True, header_style="bold")
        for column in columns:
            table.add_column(column, justify="right" if column.endswith("#") else "left")
        return table

    def handle_error(self, error: MeshstackError) -> None:
        """Print an engine error to stderr and exit with its code.

        Messages and details may quote user input or pydantic output, so
        neither is interpreted as markup.
        """
        self.err_console.print(
            f"[red]❌[/red] [bold red]{escape(error.message)}[/bold red]"
        )
        if error.details:
            self.err_console.print(
                Panel(Text(error.details), title="Details", border_style="red")
            )
        raise typer.Exit(error.exit_code)

    def print_header(self, title: str, style: str = "blue") -> None:
        """Print a styled header panel.

        Args:
            title: Header title text
            style: Border style color
        """
        self.console.print(
            Panel.fit(
                f"[bold {style}]{title}[/bold {style}]",
                border_style=style,
            )
        )

    def print_subheader(self, title: str) -> None:
        self.console.print(f"\n[bold underline]{title}[/bold underline]\n")


def with_error_handling(func: Callable[..., None]) -> Callable[..., None]:
    """Decorator mapping engine errors to their exit codes.

    Args:
        func: The command function to wrap

    Returns:
        Wrapped function with error handling
    """
    from src.reconcile.errors import MeshstackError

    @wraps(func)
    def wrapper(*args: object, **kwargs: object) -> None:
        try:
            func(*args, **kwargs)
        except MeshstackError as e:
            console.handle_error(e)
        except KeyboardInterrupt:
            console.print("\n[dim]Operation cancelled by user.[/dim]")
            raise typer.Exit(130) from None

    return wrapper


# Shared console instance for consistent output
console = CLIConsole()
