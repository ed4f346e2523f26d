"""meshstack constants.

This module centralizes the file names and defaults shared by the engine,
the collaborators and the CLI.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import ClassVar


@dataclass(frozen=True)
class MeshstackConstants:
    """Constants for meshstack projects.

    All attributes are class-level and immutable.
    """

    # Project files
    CONFIG_FILE: str = "meshstack.yaml"
    LOCK_FILE: str = "meshstack.lock"
    ENV_FILE: str = ".env"

    # Per-profile Helm values files, looked up in the project root
    PROFILE_VALUES_FILES: ClassVar[MappingProxyType[str, str]] = MappingProxyType(
        {
            "dev": "dev-values.yaml",
            "prod": "prod-values.yaml",
        }
    )

    # Defaults
    CONNECT_TIMEOUT_SECONDS: float = 30.0
    PROBE_WORKERS: int = 4
    HELM_TIMEOUT: str = "10m"
