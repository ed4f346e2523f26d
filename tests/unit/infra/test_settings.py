"""Tests for environment-driven settings."""

from pathlib import Path

import pytest

from src.infra.settings import MeshstackSettings
from src.reconcile.errors import SchemaError


class TestFromEnv:
    """Tests for MeshstackSettings.from_env()."""

    def test_defaults(self) -> None:
        settings = MeshstackSettings.from_env(environ={})

        assert settings.config_file == Path("meshstack.yaml")
        assert settings.lock_file == Path("meshstack.lock")
        assert settings.connect_timeout == 30.0
        assert settings.probe_workers == 4
        assert settings.helm_timeout == "10m"
        assert settings.k8s_backend == "kubectl"
        assert not settings.test_dry_run_helm
        assert settings.log_level is None

    def test_reads_variables(self) -> None:
        settings = MeshstackSettings.from_env(
            environ={
                "MESHSTACK_CONFIG": "deploy/meshstack.yaml",
                "MESHSTACK_CONNECT_TIMEOUT": "2.5",
                "MESHSTACK_PROBE_WORKERS": "8",
                "MESHSTACK_HELM_TIMEOUT": "5m30s",
                "MESHSTACK_K8S_BACKEND": "kr8s",
                "MESHSTACK_LOG_LEVEL": "info",
            }
        )

        assert settings.config_file == Path("deploy/meshstack.yaml")
        assert settings.connect_timeout == 2.5
        assert settings.probe_workers == 8
        assert settings.helm_timeout == "5m30s"
        assert settings.k8s_backend == "kr8s"
        assert settings.log_level == "INFO"

    def test_dry_run_helm_is_a_presence_flag(self) -> None:
        settings = MeshstackSettings.from_env(environ={"MESHSTACK_TEST_DRY_RUN_HELM": ""})

        assert settings.test_dry_run_helm

    @pytest.mark.parametrize(
        ("variable", "value"),
        [
            ("MESHSTACK_CONNECT_TIMEOUT", "0"),
            ("MESHSTACK_PROBE_WORKERS", "zero"),
            ("MESHSTACK_HELM_TIMEOUT", "ten minutes"),
            ("MESHSTACK_K8S_BACKEND", "client-go"),
            ("MESHSTACK_LOG_LEVEL", "LOUD"),
        ],
    )
    def test_invalid_value_names_the_variable(self, variable: str, value: str) -> None:
        with pytest.raises(SchemaError) as excinfo:
            MeshstackSettings.from_env(environ={variable: value})

        assert variable in excinfo.value.message
        assert excinfo.value.field == variable
        assert excinfo.value.exit_code == 3

    def test_dotenv_file_is_loaded(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("MESHSTACK_PROBE_WORKERS", raising=False)
        (tmp_path / ".env").write_text("MESHSTACK_PROBE_WORKERS=6\n")

        settings = MeshstackSettings.from_env(tmp_path)

        assert settings.probe_workers == 6

    def test_environment_wins_over_dotenv(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("MESHSTACK_PROBE_WORKERS", "2")
        (tmp_path / ".env").write_text("MESHSTACK_PROBE_WORKERS=6\n")

        assert MeshstackSettings.from_env(tmp_path).probe_workers == 2


class TestPaths:
    def test_relative_paths_resolve_against_project_root(self, tmp_path: Path) -> None:
        settings = MeshstackSettings(lock_file=Path("state/meshstack.lock"))

        assert settings.config_path(tmp_path) == tmp_path / "meshstack.yaml"
        assert settings.lock_path(tmp_path) == tmp_path / "state" / "meshstack.lock"

    def test_absolute_paths_kept(self, tmp_path: Path) -> None:
        absolute = tmp_path / "elsewhere.lock"

        assert MeshstackSettings(lock_file=absolute).lock_path(Path("/project")) == absolute
