"""Helm collaborator layer.

Example:
    from src.infra.helm import get_chart_installer

    installer = get_chart_installer(settings, project_root)
    installer.install("istio", "dev", "kind-dev", version="1.20.3")
"""

from .commands import HelmCommands, HelmRelease, split_chart_version
from .installer import (
    HELM_NOT_FOUND_MESSAGE,
    ChartInstaller,
    EchoChartInstaller,
    HelmChartInstaller,
    get_chart_installer,
)
from .runner import CommandRunner

__all__ = [
    "ChartInstaller",
    "EchoChartInstaller",
    "HelmChartInstaller",
    "get_chart_installer",
    "HELM_NOT_FOUND_MESSAGE",
    "HelmCommands",
    "HelmRelease",
    "split_chart_version",
    "CommandRunner",
]
