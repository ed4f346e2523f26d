"""Status command."""

from typing import Annotated

import typer

from src.cli.context import get_cli_context
from src.cli.shared.console import with_error_handling
from src.cli.shared.render import render_diff, render_lock

from .shared import ContextOption, build_reconciler, load_desired, resolve_context


@with_error_handling
def status(
    ctx: typer.Context,
    components: Annotated[
        bool,
        typer.Option(
            "--components",
            help="Show installed infrastructure and versions (default)",
        ),
    ] = False,
    lockfile: Annotated[
        bool,
        typer.Option(
            "--lockfile",
            help="Compare meshstack.lock with the desired and live state",
        ),
    ] = False,
    context: ContextOption = None,
) -> None:
    """Show project status.

    Lists the components recorded in meshstack.lock. With --lockfile the
    cluster is probed and every component is classified against the
    desired configuration and the lock file.

    Examples:
        meshstack status
        meshstack status --lockfile --context kind-dev
    """
    cli = get_cli_context(ctx)
    console = cli.console

    console.print_header("Project status")
    reconciler = build_reconciler(cli)

    if components or not lockfile:
        render_lock(console, reconciler.lock_store.load())

    if lockfile:
        desired = load_desired(cli)
        kube_context = resolve_context(cli, context)
        console.print_subheader(f"Comparing with {cli.lock_path.name} ({kube_context})")
        with console.status("Probing cluster..."):
            _, entries = reconciler.compare(desired, kube_context)
        render_diff(console, entries)
