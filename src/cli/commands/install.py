"""Install command.

Non-destructive reconciliation: declared components that are missing,
drifted or stale are installed or upgraded. Undeclared releases are left
alone.
"""

from typing import Annotated

import typer

from src.cli.context import get_cli_context
from src.cli.shared.console import with_error_handling
from src.cli.shared.render import (
    progress_printer,
    render_commands,
    render_plan,
    render_report,
)
from src.reconcile.config_model import Profile
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
def install(
    ctx: typer.Context,
    component: ComponentOption = None,
    profile: Annotated[
        Profile | None,
        typer.Option(
            "--profile",
            "-p",
            help="Resource profile for the installed components",
            case_sensitive=False,
        ),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            help="Show the plan and the helm commands without running them",
        ),
    ] = False,
    context: ContextOption = None,
    config: ConfigOption = None,
    lockfile: LockfileOption = None,
) -> None:
    """Install infrastructure components.

    Without --component every declared component is installed, in
    dependency order. With --component only that component is installed;
    its prerequisites must already be present in the cluster.

    Examples:
        meshstack install
        meshstack install --component istio --profile prod
        meshstack install --dry-run --context kind-dev
    """
    cli = get_cli_context(ctx)
    console = cli.console

    desired = load_desired(cli, config)
    if component:
        check_component(component)
        desired = desired.with_component(component, profile)
    elif profile:
        desired = desired.with_profile(profile)

    kube_context = resolve_context(cli, context)
    reconciler = build_reconciler(cli, lockfile)

    target = component or "declared components"
    console.print_header(f"Installing {target}")

    if dry_run:
        result = reconciler.plan(desired, kube_context, Operation.INSTALL, component)
        render_plan(console, result.plan)
        render_commands(console, result.plan, cli.installer, kube_context)
        console.print("\n[dim]Dry run complete. No changes were made.[/dim]")
        return

    result = reconciler.run(
        desired,
        kube_context,
        Operation.INSTALL,
        component,
        on_transition=progress_printer(console),
    )
    if result.report is None:
        render_plan(console, result.plan)
        return

    render_report(console, result.report)
    result.raise_for_failure()
    console.ok(f"Installed {len(result.report.succeeded)} component(s)")
