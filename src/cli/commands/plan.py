"""Plan command.

Shows the plan another command would execute, without executing it.
"""

from typing import Annotated

import typer

from src.cli.context import get_cli_context
from src.cli.shared.console import with_error_handling
from src.cli.shared.render import render_diff, render_plan
from src.reconcile.engine import Operation

from .shared import (
    ComponentOption,
    ConfigOption,
    ContextOption,
    LockfileOption,
    build_reconciler,
    check_component,
    load_desired,
    resolve_context,
)


@with_error_handling
def plan(
    ctx: typer.Context,
    command: Annotated[
        Operation,
        typer.Option(
            "--command",
            help="Command to plan",
            case_sensitive=False,
        ),
    ],
    component: ComponentOption = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            help="Also show the diff and each action's dependencies",
        ),
    ] = False,
    context: ContextOption = None,
    config: ConfigOption = None,
    lockfile: LockfileOption = None,
) -> None:
    """Show the execution plan for a command.

    Examples:
        meshstack plan --command install
        meshstack plan --command destroy --component grafana
        meshstack plan --command update --verbose
    """
    cli = get_cli_context(ctx)
    console = cli.console

    desired = load_desired(cli, config)
    if component:
        check_component(component)
        if command is Operation.DESTROY:
            desired = desired.without([component])
        elif command is not Operation.UPDATE:
            desired = desired.with_component(component)
    elif command is Operation.DESTROY:
        desired = desired.without()

    kube_context = resolve_context(cli, context)
    reconciler = build_reconciler(cli, lockfile)

    console.print_header(f"Plan for `{command.value}`")
    result = reconciler.plan(desired, kube_context, command, component)

    if verbose:
        render_diff(console, result.entries)
    render_plan(console, result.plan, verbose=verbose)
