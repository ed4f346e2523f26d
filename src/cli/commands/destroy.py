"""Destroy command.

Removes components from the cluster. Without ``--confirm`` the plan is
shown and nothing is touched.
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
def destroy(
    ctx: typer.Context,
    component: ComponentOption = None,
    all_components: Annotated[
        bool,
        typer.Option(
            "--all",
            "--full",
            help="Destroy every component",
        ),
    ] = False,
    confirm: Annotated[
        bool,
        typer.Option(
            "--confirm",
            help="Actually destroy (otherwise only the plan is shown)",
        ),
    ] = False,
    context: ContextOption = None,
    config: ConfigOption = None,
    lockfile: LockfileOption = None,
) -> None:
    """Destroy infrastructure components.

    Examples:
        meshstack destroy --component grafana
        meshstack destroy --component grafana --confirm
        meshstack destroy --all --confirm
    """
    if component and all_components:
        raise SchemaError("Use either --component or --all, not both", field="--all")
    if not component and not all_components:
        raise SchemaError(
            "Nothing to destroy: pass --component <name> or --all",
            field="--component",
        )

    cli = get_cli_context(ctx)
    console = cli.console

    desired = load_desired(cli, config)
    if component:
        check_component(component)
        desired = desired.without([component])
    else:
        desired = desired.without()

    kube_context = resolve_context(cli, context)
    reconciler = build_reconciler(cli, lockfile)

    console.print_header(f"Destroying {component or 'all components'}")

    if not confirm:
        result = reconciler.plan(desired, kube_context, Operation.DESTROY, component)
        render_plan(console, result.plan)
        console.plain("Dry run complete. No resources were destroyed.")
        return

    result = reconciler.run(
        desired,
        kube_context,
        Operation.DESTROY,
        component,
        on_transition=progress_printer(console),
    )
    if result.report is None:
        render_plan(console, result.plan)
        return

    render_report(console, result.report)
    result.raise_for_failure()
    console.ok(f"Destroyed {len(result.report.succeeded)} component(s)")
