"""Update command.

Destructive reconciliation: drifted components are upgraded, stale ones
reinstalled and undeclared releases uninstalled. ``--check`` (the default)
only shows the plan.
"""

from typing import Annotated

import typer

from src.cli.context import get_cli_context
from src.cli.shared.console import with_error_handling
from src.cli.shared.render import progress_printer, render_plan, render_report
from src.reconcile.engine import Operation
from src.reconcile.errors import SchemaError

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
def update(
    ctx: typer.Context,
    check: Annotated[
        bool,
        typer.Option(
            "--check",
            help="Show what would change (default)",
        ),
    ] = False,
    apply: Annotated[
        bool,
        typer.Option(
            "--apply",
            help="Apply the changes",
        ),
    ] = False,
    component: ComponentOption = None,
    context: ContextOption = None,
    config: ConfigOption = None,
    lockfile: LockfileOption = None,
) -> None:
    """Check for or apply updates to installed components.

    Examples:
        meshstack update --check
        meshstack update --apply
        meshstack update --apply --component grafana
    """
    if check and apply:
        raise SchemaError("Use either --check or --apply, not both", field="--apply")

    cli = get_cli_context(ctx)
    console = cli.console

    if component:
        check_component(component)
    desired = load_desired(cli, config)
    kube_context = resolve_context(cli, context)
    reconciler = build_reconciler(cli, lockfile)

    if not apply:
        console.print_header("Checking for updates")
        result = reconciler.plan(desired, kube_context, Operation.UPDATE, component)
        render_plan(console, result.plan)
        if not result.plan.is_empty:
            console.print("\n[dim]Run `meshstack update --apply` to apply.[/dim]")
        return

    console.print_header("Applying updates")
    result = reconciler.run(
        desired,
        kube_context,
        Operation.UPDATE,
        component,
        on_transition=progress_printer(console),
    )
    if result.report is None:
        render_plan(console, result.plan)
        return

    render_report(console, result.report)
    result.raise_for_failure()
    console.ok("Update complete")
