"""Validate command."""

from typing import Annotated

import typer

from src.cli.context import get_cli_context
from src.cli.shared.console import with_error_handling
from src.reconcile.config_model import load

from .shared import ContextOption, resolve_context


@with_error_handling
def validate(
    ctx: typer.Context,
    config: Annotated[
        bool,
        typer.Option(
            "--config",
            help="Validate meshstack.yaml against the schema",
        ),
    ] = False,
    cluster: Annotated[
        bool,
        typer.Option(
            "--cluster",
            help="Check connectivity to the kube context",
        ),
    ] = False,
    full: Annotated[
        bool,
        typer.Option(
            "--full",
            help="Run all validators",
        ),
    ] = False,
    context: ContextOption = None,
) -> None:
    """Validate the configuration and cluster readiness.

    Examples:
        meshstack validate
        meshstack validate --cluster --context kind-dev
        meshstack validate --full
    """
    cli = get_cli_context(ctx)
    console = cli.console

    console.print_header("Validating project")

    if full or config or not cluster:
        path = cli.config_path
        console.info(f"Validating {path.name}...")
        desired = load(path)
        console.ok(
            f"{path.name} is valid ({len(desired.names)} components: "
            f"{', '.join(desired.names)})"
        )

    if full or cluster:
        console.info("Checking Kubernetes cluster connectivity...")
        kube_context = resolve_context(cli, context)
        console.ok(f"Connected to Kubernetes cluster (context '{kube_context}')")
