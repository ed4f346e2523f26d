"""Tests for CLI context dependency injection."""

from pathlib import Path
from unittest.mock import Mock, patch

import pytest
import typer

from src.cli.context import CLIContext, build_cli_context, get_cli_context
from src.infra.helm import EchoChartInstaller, HelmChartInstaller
from src.infra.k8s import KubectlContextResolver, StaticContextResolver
from src.infra.settings import MeshstackSettings


def make_context(**overrides) -> CLIContext:
    fields = {
        "console": Mock(),
        "project_root": Path("/test"),
        "settings": MeshstackSettings(),
        "installer": Mock(),
        "resolver": Mock(),
    }
    fields.update(overrides)
    return CLIContext(**fields)


def test_cli_context_is_immutable():
    """Test that CLIContext is frozen/immutable."""
    ctx = make_context()

    with pytest.raises(AttributeError):
        ctx.console = Mock()  # type: ignore[misc]


def test_cli_context_paths_follow_settings():
    """Test that config and lock paths resolve against the project root."""
    ctx = make_context(settings=MeshstackSettings(lock_file=Path("state/meshstack.lock")))

    assert ctx.config_path == Path("/test/meshstack.yaml")
    assert ctx.lock_path == Path("/test/state/meshstack.lock")


@patch("src.cli.context.get_project_root")
def test_build_cli_context_creates_all_dependencies(mock_get_root, tmp_path, monkeypatch):
    """Test that build_cli_context creates all required dependencies."""
    monkeypatch.delenv("MESHSTACK_TEST_DRY_RUN_HELM", raising=False)
    mock_get_root.return_value = tmp_path

    ctx = build_cli_context()

    assert ctx.console is not None
    assert ctx.project_root == tmp_path
    assert isinstance(ctx.installer, HelmChartInstaller)
    assert isinstance(ctx.resolver, KubectlContextResolver)
    assert ctx.constants.CONFIG_FILE == "meshstack.yaml"


@patch("src.cli.context.get_project_root")
def test_build_cli_context_dry_run_helm(mock_get_root, tmp_path, monkeypatch):
    """Test that MESHSTACK_TEST_DRY_RUN_HELM selects the echo strategies."""
    monkeypatch.setenv("MESHSTACK_TEST_DRY_RUN_HELM", "1")
    mock_get_root.return_value = tmp_path

    ctx = build_cli_context()

    assert isinstance(ctx.installer, EchoChartInstaller)
    assert isinstance(ctx.resolver, StaticContextResolver)


def test_get_cli_context_from_typer_context():
    """Test that get_cli_context retrieves from Typer context."""
    mock_ctx_obj = make_context()

    typer_ctx = Mock(spec=typer.Context)
    typer_ctx.obj = mock_ctx_obj

    result = get_cli_context(typer_ctx)

    assert result is mock_ctx_obj


def test_get_cli_context_with_invalid_obj_falls_back():
    """Test that get_cli_context falls back when ctx.obj is not CLIContext."""
    typer_ctx = Mock(spec=typer.Context)
    typer_ctx.obj = "invalid"  # Not a CLIContext

    with patch("src.cli.context.build_cli_context") as mock_build:
        mock_build.return_value = Mock(spec=CLIContext)

        get_cli_context(typer_ctx)

        mock_build.assert_called_once()


@patch("click.get_current_context")
def test_get_cli_context_uses_click_context_as_fallback(mock_get_click_ctx):
    """Test that get_cli_context uses click context when typer ctx is None."""
    mock_ctx_obj = make_context()

    mock_click_context = Mock()
    mock_click_context.obj = mock_ctx_obj
    mock_get_click_ctx.return_value = mock_click_context

    result = get_cli_context(None)

    assert result is mock_ctx_obj
    mock_get_click_ctx.assert_called_once_with(silent=True)
