"""Main CLI application module.

This module provides the main entry point for the meshstack CLI, which
reconciles the components declared in meshstack.yaml with a Kubernetes
cluster.

Commands:
- install: Install declared components (non-destructive)
- update: Check for or apply updates (destructive)
- destroy: Remove components
- status: Show recorded and live state
- plan: Show the plan a command would execute
- validate: Validate configuration and cluster connectivity
"""

from importlib.metadata import PackageNotFoundError, version
from typing import Annotated

import typer

from src.utils.logging import configure_logging

from .commands import destroy, install, plan, status, update, validate
from .context import build_cli_context
from .shared.console import console, with_error_handling

# Create the main CLI application
app = typer.Typer(
    help="🕸️  meshstack - declarative service mesh and platform components",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command()(install)
app.command()(update)
app.command()(destroy)
app.command()(status)
app.command()(plan)
app.command()(validate)


def _version_callback(value: bool) -> None:
    if not value:
        return
    try:
        current = version("meshstack")
    except PackageNotFoundError:
        current = "unknown"
    console.print(f"meshstack {current}")
    raise typer.Exit()


@app.callback()
@with_error_handling
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging",
        ),
    ] = False,
    show_version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show the version and exit",
            callback=_version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """Build the CLI context shared by every command."""
    cli = build_cli_context()
    configure_logging(verbose, cli.settings.log_level)
    ctx.obj = cli


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
