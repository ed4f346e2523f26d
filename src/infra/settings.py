"""Runtime settings read from the environment.

Settings come from ``MESHSTACK_*`` environment variables. A ``.env`` file in
the project root is loaded first without overriding variables that are
already set.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.infra.constants import MeshstackConstants
from src.reconcile.errors import SchemaError
from src.utils.paths import resolve_in_project

# Environment variable -> settings field
_ENV_FIELDS: dict[str, str] = {
    "MESHSTACK_CONFIG": "config_file",
    "MESHSTACK_LOCKFILE": "lock_file",
    "MESHSTACK_CONNECT_TIMEOUT": "connect_timeout",
    "MESHSTACK_PROBE_WORKERS": "probe_workers",
    "MESHSTACK_HELM_TIMEOUT": "helm_timeout",
    "MESHSTACK_K8S_BACKEND": "k8s_backend",
    "MESHSTACK_LOG_LEVEL": "log_level",
}

_LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


class MeshstackSettings(BaseModel):
    """Validated runtime settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    config_file: Path = Path(MeshstackConstants.CONFIG_FILE)
    lock_file: Path = Path(MeshstackConstants.LOCK_FILE)
    connect_timeout: float = Field(
        default=MeshstackConstants.CONNECT_TIMEOUT_SECONDS, gt=0
    )
    probe_workers: int = Field(default=MeshstackConstants.PROBE_WORKERS, ge=1)
    helm_timeout: str = Field(
        default=MeshstackConstants.HELM_TIMEOUT, pattern=r"^\d+(ms|s|m|h)(\d+(s|m))*$"
    )
    k8s_backend: Literal["kubectl", "kr8s"] = "kubectl"
    test_dry_run_helm: bool = False
    log_level: str | None = None

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, level: str | None) -> str | None:
        if level is None:
            return None
        if level.upper() not in _LOG_LEVELS:
            raise ValueError(f"must be one of {', '.join(_LOG_LEVELS)}")
        return level.upper()

    @classmethod
    def from_env(
        cls,
        project_root: Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> MeshstackSettings:
        """Build settings from environment variables.

        Args:
            project_root: Directory whose ``.env`` file is loaded first
            environ: Mapping to read instead of ``os.environ``

        Raises:
            SchemaError: If a variable has an invalid value. The error names
                the variable.
        """
        if environ is None:
            if project_root is not None:
                load_dotenv(project_root / MeshstackConstants.ENV_FILE, override=False)
            environ = os.environ

        data: dict[str, object] = {
            field: environ[var] for var, field in _ENV_FIELDS.items() if environ.get(var)
        }
        data["test_dry_run_helm"] = "MESHSTACK_TEST_DRY_RUN_HELM" in environ

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            first = e.errors()[0]
            field = str(first["loc"][0]) if first["loc"] else ""
            variable = next(
                (var for var, name in _ENV_FIELDS.items() if name == field), field
            )
            raise SchemaError(
                f"Invalid value for {variable}: {first['msg']}",
                details=str(e),
                field=variable,
            ) from e

    def config_path(self, project_root: Path) -> Path:
        return resolve_in_project(self.config_file, project_root)

    def lock_path(self, project_root: Path) -> Path:
        return resolve_in_project(self.lock_file, project_root)
