"""Chart installer strategies.

A ChartInstaller is the engine's only way to change or inspect releases in
the cluster. The strategy is resolved once at startup by
``get_chart_installer``:

- HelmChartInstaller: runs the helm binary
- EchoChartInstaller: prints the helm commands it would run and reports an
  empty cluster (``MESHSTACK_TEST_DRY_RUN_HELM``)
"""

from __future__ import annotations

import os
import shlex
import tempfile
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml  # type: ignore[import-untyped]
from loguru import logger
from rich.console import Console

from src.infra.constants import MeshstackConstants
from src.infra.k8s.controller import CommandResult
from src.reconcile.catalog import CATALOG, ComponentSpec, unknown_component_message
from src.reconcile.errors import ConnectivityError, SchemaError, ToolNotFound
from src.reconcile.prober import ClusterObservation
from src.utils.paths import resolve_in_project

from .commands import HelmCommands, HelmRelease
from .runner import CommandRunner

if TYPE_CHECKING:
    from src.infra.settings import MeshstackSettings

HELM_NOT_FOUND_MESSAGE = (
    "Helm is not installed or not found in PATH. Please install Helm to proceed. "
    "Refer to https://helm.sh/docs/intro/install/ for instructions."
)

_INLINE_VALUES_PLACEHOLDER = "<inline-values>"


class ChartInstaller(ABC):
    """Installs, uninstalls and lists chart releases for components."""

    # Whether successful actions are recorded in the lock file
    persists_releases: bool = True

    def __init__(self, project_root: Path, helm_timeout: str = "10m") -> None:
        self.project_root = project_root
        self.helm_timeout = helm_timeout
        self._commands = HelmCommands(CommandRunner(project_root))

    @abstractmethod
    def install(
        self,
        component: str,
        profile: str,
        context: str,
        dry_run: bool = False,
        *,
        version: str | None = None,
        namespace: str | None = None,
        values: dict[str, Any] | None = None,
        values_file: Path | None = None,
    ) -> CommandResult:
        """Install or upgrade the component's release to ``version``."""
        ...

    @abstractmethod
    def uninstall(
        self, component: str, context: str, *, namespace: str | None = None
    ) -> CommandResult:
        """Remove the component's release. A missing release is not an error."""
        ...

    @abstractmethod
    def list_releases(
        self, context: str, namespace: str, *, timeout: float | None = None
    ) -> list[ClusterObservation]:
        """List releases in a namespace.

        Raises:
            ConnectivityError: If the cluster cannot be queried
        """
        ...

    # =========================================================================
    # Command rendering
    # =========================================================================

    def install_command(
        self,
        component: str,
        profile: str,
        context: str,
        dry_run: bool = False,
        *,
        version: str | None = None,
        namespace: str | None = None,
        values: dict[str, Any] | None = None,
        values_file: Path | None = None,
    ) -> list[str]:
        """Return the helm command ``install`` runs, for display."""
        spec = _component_spec(component)
        value_files = self.value_files(profile, values_file)
        if values:
            value_files.append(Path(_INLINE_VALUES_PLACEHOLDER))
        return self._commands.upgrade_install_command(
            component,
            spec.chart,
            namespace or spec.namespace,
            kube_context=context,
            version=version or spec.version,
            value_files=value_files,
            timeout=self.helm_timeout,
            dry_run=dry_run,
        )

    def uninstall_command(
        self, component: str, context: str, *, namespace: str | None = None
    ) -> list[str]:
        """Return the helm command ``uninstall`` runs, for display."""
        spec = _component_spec(component)
        return self._commands.uninstall_command(
            component, namespace or spec.namespace, kube_context=context
        )

    def value_files(self, profile: str, values_file: Path | None = None) -> list[Path]:
        """Values files for a profile, in the order helm applies them.

        The profile file (``dev-values.yaml``/``prod-values.yaml``) is used
        only when it exists in the project root. The component's own values
        file comes last so it wins.
        """
        files: list[Path] = []
        profile_file = MeshstackConstants.PROFILE_VALUES_FILES.get(profile)
        if profile_file and (self.project_root / profile_file).is_file():
            files.append(self.project_root / profile_file)
        if values_file is not None:
            path = resolve_in_project(values_file, self.project_root)
            files.append(path)
        return files


class HelmChartInstaller(ChartInstaller):
    """Chart installer backed by the helm binary."""

    def __init__(self, project_root: Path, helm_timeout: str = "10m") -> None:
        super().__init__(project_root, helm_timeout)
        self._helm_checked = False

    def _ensure_helm(self) -> None:
        if self._helm_checked:
            return
        if not self._commands.is_available():
            raise ToolNotFound(HELM_NOT_FOUND_MESSAGE)
        self._helm_checked = True

    def install(
        self,
        component: str,
        profile: str,
        context: str,
        dry_run: bool = False,
        *,
        version: str | None = None,
        namespace: str | None = None,
        values: dict[str, Any] | None = None,
        values_file: Path | None = None,
    ) -> CommandResult:
        self._ensure_helm()
        spec = _component_spec(component)
        value_files = self.value_files(profile, values_file)
        for path in value_files:
            if not path.is_file():
                raise SchemaError(
                    f"Values file {path} for component '{component}' not found",
                    field="valuesFile",
                    component=component,
                )

        with _inline_values_file(component, values) as inline_file:
            if inline_file is not None:
                value_files.append(inline_file)
            result = self._commands.upgrade_install(
                component,
                spec.chart,
                namespace or spec.namespace,
                kube_context=context,
                version=version or spec.version,
                value_files=value_files,
                timeout=self.helm_timeout,
                dry_run=dry_run,
            )

        if result.success:
            logger.debug(f"helm upgrade --install {component} succeeded")
        else:
            logger.debug(f"helm upgrade --install {component} failed: {result.stderr}")
        return result

    def uninstall(
        self, component: str, context: str, *, namespace: str | None = None
    ) -> CommandResult:
        self._ensure_helm()
        spec = _component_spec(component)
        return self._commands.uninstall(
            component, namespace or spec.namespace, kube_context=context
        )

    def list_releases(
        self, context: str, namespace: str, *, timeout: float | None = None
    ) -> list[ClusterObservation]:
        self._ensure_helm()
        try:
            result, releases = self._commands.list_releases(
                namespace, kube_context=context, timeout=timeout
            )
        except ValueError as e:
            raise ConnectivityError(
                f"Unexpected response listing releases in namespace '{namespace}'",
                details=str(e),
            ) from e

        if result.timed_out:
            raise ConnectivityError(
                f"Timed out listing releases in namespace '{namespace}' "
                f"(context '{context}')"
            )
        if not result.success:
            raise ConnectivityError(
                f"Failed to list releases in namespace '{namespace}' "
                f"(context '{context}')",
                details=result.stderr or result.stdout or None,
            )
        return [_observation(release) for release in releases]


class EchoChartInstaller(ChartInstaller):
    """Chart installer that prints helm commands instead of running them."""

    persists_releases = False

    def __init__(
        self,
        project_root: Path,
        helm_timeout: str = "10m",
        console: Console | None = None,
    ) -> None:
        super().__init__(project_root, helm_timeout)
        self.console = console or Console()

    def _echo(self, cmd: list[str]) -> CommandResult:
        line = f"DRY RUN: Would execute helm command: {shlex.join(cmd)}"
        self.console.print(line, markup=False, highlight=False, soft_wrap=True)
        return CommandResult(success=True, stdout=line)

    def install(
        self,
        component: str,
        profile: str,
        context: str,
        dry_run: bool = False,
        *,
        version: str | None = None,
        namespace: str | None = None,
        values: dict[str, Any] | None = None,
        values_file: Path | None = None,
    ) -> CommandResult:
        return self._echo(
            self.install_command(
                component,
                profile,
                context,
                dry_run,
                version=version,
                namespace=namespace,
                values=values,
                values_file=values_file,
            )
        )

    def uninstall(
        self, component: str, context: str, *, namespace: str | None = None
    ) -> CommandResult:
        return self._echo(self.uninstall_command(component, context, namespace=namespace))

    def list_releases(
        self, context: str, namespace: str, *, timeout: float | None = None
    ) -> list[ClusterObservation]:
        logger.debug(f"Echo installer reports no releases in '{namespace}'")
        return []


def get_chart_installer(
    settings: MeshstackSettings,
    project_root: Path,
    console: Console | None = None,
) -> ChartInstaller:
    """Select the chart installer strategy for this run."""
    if settings.test_dry_run_helm:
        logger.debug("MESHSTACK_TEST_DRY_RUN_HELM set, using echo installer")
        return EchoChartInstaller(project_root, settings.helm_timeout, console)
    return HelmChartInstaller(project_root, settings.helm_timeout)


def _component_spec(component: str) -> ComponentSpec:
    spec = CATALOG.get(component)
    if spec is None:
        raise SchemaError(unknown_component_message(component), component=component)
    return spec


def _observation(release: HelmRelease) -> ClusterObservation:
    return ClusterObservation(
        component=release.name,
        observed_version=release.chart_version,
        namespace=release.namespace,
        status=release.status,
    )


@contextmanager
def _inline_values_file(
    component: str, values: dict[str, Any] | None
) -> Iterator[Path | None]:
    """Write inline values to a temporary file for the duration of a helm call."""
    if not values:
        yield None
        return

    fd, name = tempfile.mkstemp(suffix=".yaml", prefix=f"meshstack-{component}-")
    temp_file = Path(name)
    try:
        with os.fdopen(fd, "w") as f:
            yaml.dump(values, f, default_flow_style=False)
        logger.debug(f"Created values override file: {temp_file}")
        yield temp_file
    finally:
        temp_file.unlink(missing_ok=True)
