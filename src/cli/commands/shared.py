"""Shared utilities for CLI commands.

This module provides the option types and helpers the reconciling commands
have in common: loading the desired configuration, resolving the kube
context and building the reconciler.
"""

from pathlib import Path
from typing import Annotated

import typer

from src.cli.context import CLIContext
from src.reconcile.catalog import SUPPORTED_COMPONENTS, unknown_component_message
from src.reconcile.config_model import DesiredConfiguration, load
from src.reconcile.engine import Reconciler
from src.reconcile.errors import SchemaError
from src.reconcile.lock_store import LockStore
from src.reconcile.prober import ClusterStateProber
from src.utils.paths import resolve_in_project

# ---------------------------------------------------------------------------
# Common options
# ---------------------------------------------------------------------------

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        help="Path to meshstack.yaml (default: from MESHSTACK_CONFIG or project root)",
    ),
]

LockfileOption = Annotated[
    Path | None,
    typer.Option(
        "--lockfile",
        help="Path to meshstack.lock (default: from MESHSTACK_LOCKFILE or project root)",
    ),
]

ContextOption = Annotated[
    str | None,
    typer.Option(
        "--context",
        help="Kube context to use (default: current context)",
    ),
]

ComponentOption = Annotated[
    str | None,
    typer.Option(
        "--component",
        "-c",
        help=f"Component to act on ({', '.join(SUPPORTED_COMPONENTS)})",
    ),
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def check_component(name: str) -> str:
    """Reject component names outside the supported set.

    Raises:
        SchemaError: With the list of valid components
    """
    if name not in SUPPORTED_COMPONENTS:
        raise SchemaError(unknown_component_message(name), field="component")
    return name


def load_desired(cli: CLIContext, config: Path | None = None) -> DesiredConfiguration:
    """Load the desired configuration.

    An explicit ``--config`` must exist. Without one, a missing
    ``meshstack.yaml`` falls back to the default component set.
    """
    if config is not None:
        return load(resolve_in_project(config, cli.project_root))

    path = cli.config_path
    if not path.exists():
        cli.console.info(
            f"No {path.name} found, using the default component set"
        )
        return DesiredConfiguration.default()
    return load(path)


def resolve_context(cli: CLIContext, context: str | None) -> str:
    """Resolve and verify the kube context for this run.

    Raises:
        ContextNotFound: If the context does not exist
        ContextInaccessible: If the cluster cannot be reached in time
    """
    with cli.console.status("Connecting to cluster..."):
        return cli.resolver.resolve(context, cli.settings.connect_timeout)


def get_lock_store(cli: CLIContext, lockfile: Path | None = None) -> LockStore:
    if lockfile is not None:
        return LockStore(resolve_in_project(lockfile, cli.project_root))
    return LockStore(cli.lock_path)


def build_reconciler(cli: CLIContext, lockfile: Path | None = None) -> Reconciler:
    """Build the reconciler from the CLI context's collaborators."""
    prober = ClusterStateProber(
        cli.installer,
        max_workers=cli.settings.probe_workers,
        timeout=cli.settings.connect_timeout,
    )
    return Reconciler(cli.installer, get_lock_store(cli, lockfile), prober)
