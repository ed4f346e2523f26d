"""Shared test fixtures: an in-memory chart installer and project helpers."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest
import yaml  # type: ignore[import-untyped]

from src.cli.context import CLIContext
from src.infra.helm.installer import ChartInstaller
from src.infra.k8s.controller import CommandResult, StaticContextResolver
from src.infra.settings import MeshstackSettings
from src.reconcile.catalog import CATALOG
from src.reconcile.lock_store import LockStore
from src.reconcile.prober import ClusterObservation

FIXED_TIME = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


class FakeChartInstaller(ChartInstaller):
    """ChartInstaller keeping releases in memory.

    ``fail_on`` names components whose install/uninstall fails.
    ``list_error`` is raised by every ``list_releases`` call when set.
    """

    def __init__(
        self,
        project_root: Path = Path("."),
        fail_on: set[str] | None = None,
    ) -> None:
        super().__init__(project_root)
        self.releases: dict[str, ClusterObservation] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_on = set(fail_on or ())
        self.list_error: Exception | None = None
        self.listed: list[str] = []

    def deploy(self, component: str, version: str, namespace: str | None = None) -> None:
        """Seed a release as if it had been installed out of band."""
        self.releases[component] = ClusterObservation(
            component=component,
            observed_version=version,
            namespace=namespace or CATALOG[component].namespace,
        )

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
        self.calls.append(("install", component))
        if component in self.fail_on:
            return CommandResult(
                success=False, stderr=f"install of {component} failed", returncode=1
            )
        if not dry_run:
            self.deploy(component, version or CATALOG[component].version, namespace)
        return CommandResult(success=True)

    def uninstall(
        self, component: str, context: str, *, namespace: str | None = None
    ) -> CommandResult:
        self.calls.append(("uninstall", component))
        if component in self.fail_on:
            return CommandResult(
                success=False, stderr=f"uninstall of {component} failed", returncode=1
            )
        self.releases.pop(component, None)
        return CommandResult(success=True)

    def list_releases(
        self, context: str, namespace: str, *, timeout: float | None = None
    ) -> list[ClusterObservation]:
        self.listed.append(namespace)
        if self.list_error is not None:
            raise self.list_error
        return [r for r in self.releases.values() if r.namespace == namespace]


@pytest.fixture
def fake_installer(tmp_path: Path) -> FakeChartInstaller:
    return FakeChartInstaller(project_root=tmp_path)


@pytest.fixture
def lock_store(tmp_path: Path) -> LockStore:
    return LockStore(tmp_path / "meshstack.lock")


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    return lambda: FIXED_TIME


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[[dict[str, Any] | str], Path]:
    """Write meshstack.yaml into the temporary project root."""

    def _write(content: dict[str, Any] | str) -> Path:
        path = tmp_path / "meshstack.yaml"
        text = content if isinstance(content, str) else yaml.safe_dump(content)
        path.write_text(text)
        return path

    return _write


@pytest.fixture
def cli_context(tmp_path: Path, fake_installer: FakeChartInstaller) -> CLIContext:
    """CLIContext rooted in a temporary project, backed by the fake installer."""
    console = MagicMock()
    return CLIContext(
        console=console,
        project_root=tmp_path,
        settings=MeshstackSettings(),
        installer=fake_installer,
        resolver=StaticContextResolver("test-context"),
    )
