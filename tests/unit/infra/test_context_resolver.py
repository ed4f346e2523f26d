"""Tests for kube context resolution."""

import asyncio
from unittest.mock import MagicMock, patch

import pytest

from src.infra.k8s import (
    KubectlContextResolver,
    StaticContextResolver,
    get_context_resolver,
)
from src.infra.k8s.controller import CommandResult
from src.reconcile.errors import ConnectivityError, ContextInaccessible, ContextNotFound


def fake_kubectl(current: str = "kind-dev", contexts=("kind-dev",), reachable=True):
    """Build a subprocess.run replacement answering the kubectl calls."""

    def _run(cmd, **kwargs):
        proc = MagicMock()
        proc.stderr = ""
        proc.stdout = ""
        proc.returncode = 0
        if cmd[1:3] == ["config", "current-context"]:
            if current:
                proc.stdout = f"{current}\n"
            else:
                proc.returncode = 1
                proc.stderr = "error: current-context is not set"
        elif cmd[1:3] == ["config", "get-contexts"]:
            name = cmd[3]
            if name in contexts:
                proc.stdout = f"{name}\n"
            else:
                proc.returncode = 1
                proc.stderr = f'error: context {name} not found'
        elif "cluster-info" in cmd:
            if not reachable:
                proc.returncode = 1
                proc.stderr = "Unable to connect to the server: dial tcp: i/o timeout"
        return proc

    return _run


class TestKubectlContextResolver:
    """Tests for KubectlContextResolver.resolve()."""

    def test_uses_current_context(self) -> None:
        with patch(
            "src.infra.k8s.kubectl_controller.subprocess.run", side_effect=fake_kubectl()
        ) as mock_run:
            context = KubectlContextResolver().resolve(None, 5)

        assert context == "kind-dev"
        last = mock_run.call_args_list[-1][0][0]
        assert last[:4] == ["kubectl", "--context", "kind-dev", "cluster-info"]
        assert "--request-timeout=5s" in last

    def test_override_must_exist(self) -> None:
        with patch(
            "src.infra.k8s.kubectl_controller.subprocess.run", side_effect=fake_kubectl()
        ):
            with pytest.raises(ContextNotFound, match="'staging' not found") as excinfo:
                KubectlContextResolver().resolve("staging", 5)

        assert excinfo.value.exit_code == 2

    def test_override_is_used(self) -> None:
        with patch(
            "src.infra.k8s.kubectl_controller.subprocess.run",
            side_effect=fake_kubectl(contexts=("kind-dev", "staging")),
        ):
            assert KubectlContextResolver().resolve("staging", 5) == "staging"

    def test_no_current_context(self) -> None:
        with patch(
            "src.infra.k8s.kubectl_controller.subprocess.run",
            side_effect=fake_kubectl(current=""),
        ):
            with pytest.raises(ContextNotFound, match="No current Kubernetes context"):
                KubectlContextResolver().resolve(None, 5)

    def test_unreachable_cluster(self) -> None:
        with patch(
            "src.infra.k8s.kubectl_controller.subprocess.run",
            side_effect=fake_kubectl(reachable=False),
        ):
            with pytest.raises(ContextInaccessible) as excinfo:
                KubectlContextResolver().resolve(None, 5)

        assert isinstance(excinfo.value, ConnectivityError)
        assert "i/o timeout" in excinfo.value.details

    def test_kubectl_missing(self) -> None:
        with patch(
            "src.infra.k8s.kubectl_controller.subprocess.run",
            side_effect=FileNotFoundError,
        ):
            with pytest.raises(ContextNotFound):
                KubectlContextResolver().resolve(None, 5)

    def test_connect_timeout(self) -> None:
        resolver = KubectlContextResolver()

        async def _slow(context: str, timeout: float) -> CommandResult:
            await asyncio.sleep(1)
            return CommandResult(success=True)

        with (
            patch(
                "src.infra.k8s.kubectl_controller.subprocess.run",
                side_effect=fake_kubectl(),
            ),
            patch.object(resolver, "check_access", new=_slow),
        ):
            with pytest.raises(ContextInaccessible, match="Timed out"):
                resolver.resolve(None, 0.05)


class TestStaticContextResolver:
    def test_default_context(self) -> None:
        assert StaticContextResolver("echo").resolve(None, 5) == "echo"

    def test_override_trusted(self) -> None:
        assert StaticContextResolver().resolve("anything", 5) == "anything"


class TestGetContextResolver:
    def test_backends(self) -> None:
        assert isinstance(get_context_resolver("kubectl"), KubectlContextResolver)
        assert isinstance(get_context_resolver("static"), StaticContextResolver)

    def test_cached_per_backend(self) -> None:
        assert get_context_resolver("kubectl") is get_context_resolver("kubectl")
