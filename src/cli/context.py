"""CLI context and dependency container."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import click
import typer

from src.cli.shared.console import CLIConsole, console
from src.infra.constants import MeshstackConstants
from src.infra.helm import ChartInstaller, get_chart_installer
from src.infra.k8s import ClusterContextResolver, get_context_resolver
from src.infra.settings import MeshstackSettings
from src.utils.paths import get_project_root


@dataclass(frozen=True)
class CLIContext:
    """Runtime dependencies for CLI commands."""

    console: CLIConsole
    project_root: Path
    settings: MeshstackSettings
    installer: ChartInstaller
    resolver: ClusterContextResolver
    constants: MeshstackConstants = field(default_factory=MeshstackConstants)

    @property
    def config_path(self) -> Path:
        return self.settings.config_path(self.project_root)

    @property
    def lock_path(self) -> Path:
        return self.settings.lock_path(self.project_root)


def build_cli_context() -> CLIContext:
    """Build a fresh CLIContext.

    The chart installer and context resolver strategies are chosen here,
    once per invocation.

    Raises:
        SchemaError: If the environment holds invalid settings
    """
    project_root = get_project_root()
    settings = MeshstackSettings.from_env(project_root)
    backend = "static" if settings.test_dry_run_helm else settings.k8s_backend

    return CLIContext(
        console=console,
        project_root=project_root,
        settings=settings,
        installer=get_chart_installer(settings, project_root, console.console),
        resolver=get_context_resolver(backend),
    )


def get_cli_context(ctx: typer.Context | None = None) -> CLIContext:
    """Return the CLIContext from Typer, falling back to a new instance."""
    context = ctx or click.get_current_context(silent=True)
    if context and isinstance(context.obj, CLIContext):
        return context.obj
    return build_cli_context()
