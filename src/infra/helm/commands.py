"""Helm command abstractions.

This module provides commands for Helm release management:
installation/upgrade, uninstallation, and release listing, always bound to
an explicit kube context.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from src.infra.k8s.controller import CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner

_CHART_VERSION_RE = re.compile(r"^(?P<name>.+?)-(?P<version>v?\d[\w.+-]*)$")


@dataclass
class HelmRelease:
    """Information about a Helm release.

    Attributes:
        name: Release name
        namespace: Kubernetes namespace
        status: Release status (deployed, failed, pending-install, ...)
        revision: Release revision number
        chart: Chart identifier in ``<chart>-<version>`` form
        app_version: Application version reported by the chart
    """

    name: str
    namespace: str
    status: str
    revision: str
    chart: str = ""
    app_version: str = ""

    @property
    def chart_version(self) -> str:
        """Version part of the chart identifier."""
        return split_chart_version(self.chart)[1]


def split_chart_version(chart: str) -> tuple[str, str]:
    """Split Helm's ``<chart>-<version>`` identifier.

    Example:
        >>> split_chart_version("cert-manager-v1.14.4")
        ('cert-manager', 'v1.14.4')
    """
    match = _CHART_VERSION_RE.match(chart)
    if not match:
        return chart, ""
    return match.group("name"), match.group("version")


class HelmCommands:
    """Helm-related shell commands.

    Provides operations for:
    - Release management (upgrade --install, uninstall)
    - Status queries (list releases)
    """

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize Helm commands.

        Args:
            runner: Command runner for executing shell commands
        """
        self._runner = runner

    def is_available(self) -> bool:
        """Check whether the helm binary is on PATH."""
        return self._runner.which("helm") is not None

    # =========================================================================
    # Release Management
    # =========================================================================

    def upgrade_install_command(
        self,
        release_name: str,
        chart: str,
        namespace: str,
        *,
        kube_context: str | None = None,
        version: str | None = None,
        value_files: list[Path] | None = None,
        timeout: str = "10m",
        wait: bool = True,
        create_namespace: bool = True,
        dry_run: bool = False,
    ) -> list[str]:
        """Build the ``helm upgrade --install`` command line.

        Args:
            release_name: Name for the Helm release
            chart: Chart reference (``repo/chart``)
            namespace: Kubernetes namespace for the release
            kube_context: Kube context to target
            version: Chart version to install
            value_files: Values files, applied in order
            timeout: Maximum time to wait for the release
            wait: Whether to wait for resources to be ready
            create_namespace: Whether to create the namespace if missing
            dry_run: Render and validate without changing the cluster

        Returns:
            The command as a list of arguments
        """
        cmd = [
            "helm",
            "upgrade",
            "--install",
            release_name,
            chart,
            "--namespace",
            namespace,
        ]
        if create_namespace:
            cmd.append("--create-namespace")
        if version:
            cmd.extend(["--version", version])
        if kube_context:
            cmd.extend(["--kube-context", kube_context])
        for vf in value_files or []:
            cmd.extend(["--values", str(vf)])
        if dry_run:
            cmd.append("--dry-run")
        elif wait:
            cmd.append("--wait")
        cmd.extend(["--timeout", timeout])
        return cmd

    def upgrade_install(
        self,
        release_name: str,
        chart: str,
        namespace: str,
        *,
        kube_context: str | None = None,
        version: str | None = None,
        value_files: list[Path] | None = None,
        timeout: str = "10m",
        wait: bool = True,
        create_namespace: bool = True,
        dry_run: bool = False,
        process_timeout: float | None = None,
    ) -> CommandResult:
        """Install or upgrade a Helm release.

        Uses `helm upgrade --install` so the same call covers a fresh
        install, a reinstall and a version upgrade.

        Example:
            >>> helm.upgrade_install(
            ...     "istio",
            ...     "istio/istio",
            ...     "istio-system",
            ...     kube_context="kind-dev",
            ...     version="1.20.3",
            ... )
        """
        cmd = self.upgrade_install_command(
            release_name,
            chart,
            namespace,
            kube_context=kube_context,
            version=version,
            value_files=value_files,
            timeout=timeout,
            wait=wait,
            create_namespace=create_namespace,
            dry_run=dry_run,
        )
        return self._runner.run(cmd, timeout=process_timeout)

    def uninstall_command(
        self,
        release_name: str,
        namespace: str,
        *,
        kube_context: str | None = None,
        wait: bool = True,
    ) -> list[str]:
        """Build the ``helm uninstall`` command line.

        A release that is already gone counts as uninstalled.
        """
        cmd = ["helm", "uninstall", release_name, "-n", namespace]
        if kube_context:
            cmd.extend(["--kube-context", kube_context])
        cmd.append("--ignore-not-found")
        if wait:
            cmd.append("--wait")
        return cmd

    def uninstall(
        self,
        release_name: str,
        namespace: str,
        *,
        kube_context: str | None = None,
        wait: bool = True,
        process_timeout: float | None = None,
    ) -> CommandResult:
        """Uninstall a Helm release.

        Args:
            release_name: Name of the release to uninstall
            namespace: Kubernetes namespace
            kube_context: Kube context to target
            wait: Whether to wait for resources to be deleted
            process_timeout: Seconds before the helm process is killed

        Returns:
            CommandResult with uninstall status
        """
        cmd = self.uninstall_command(
            release_name, namespace, kube_context=kube_context, wait=wait
        )
        return self._runner.run(cmd, timeout=process_timeout)

    # =========================================================================
    # Status Queries
    # =========================================================================

    def list_command(self, namespace: str, *, kube_context: str | None = None) -> list[str]:
        cmd = ["helm", "list", "-n", namespace, "-o", "json"]
        if kube_context:
            cmd.extend(["--kube-context", kube_context])
        return cmd

    def list_releases(
        self,
        namespace: str,
        *,
        kube_context: str | None = None,
        timeout: float | None = None,
    ) -> tuple[CommandResult, list[HelmRelease]]:
        """List Helm releases in a namespace.

        Unlike a best-effort status query, the raw CommandResult is returned
        alongside the parsed releases so callers can tell "no releases"
        apart from "could not ask".

        Args:
            namespace: Kubernetes namespace to query
            kube_context: Kube context to target
            timeout: Seconds before the helm process is killed

        Returns:
            Tuple of (CommandResult, releases). Releases are empty when the
            command failed.

        Raises:
            ValueError: If helm succeeded but printed something other than
                a JSON list of releases
        """
        result = self._runner.run(
            self.list_command(namespace, kube_context=kube_context), timeout=timeout
        )
        if not result.success or not result.stdout.strip():
            return result, []

        releases_data = json.loads(result.stdout)
        if not isinstance(releases_data, list):
            raise ValueError(f"unexpected helm list output: {result.stdout[:200]}")
        releases = [
            HelmRelease(
                name=r.get("name", ""),
                namespace=r.get("namespace", namespace),
                status=r.get("status", ""),
                revision=str(r.get("revision", "")),
                chart=r.get("chart", ""),
                app_version=r.get("app_version", ""),
            )
            for r in releases_data
        ]
        return result, releases
