"""Error taxonomy for the reconciliation engine.

Every failure the engine can surface derives from MeshstackError and
carries the process exit code the CLI should use for it:

- 1: generic apply failure (PartialApplyFailure, ResourceBusy, ToolNotFound)
- 2: connectivity/authorization error (ConnectivityError and subclasses)
- 3: validation/schema error (SchemaError, LockCorruption, DependencyUnmet)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .executor import ExecutionReport


class MeshstackError(Exception):
    """Base class for all engine errors."""

    exit_code: int = 1

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


class SchemaError(MeshstackError):
    """Raised when the desired configuration (or settings) fails validation."""

    exit_code = 3

    def __init__(
        self,
        message: str,
        details: str | None = None,
        *,
        field: str | None = None,
        component: str | None = None,
    ):
        self.field = field
        self.component = component
        super().__init__(message, details)


class LockCorruption(MeshstackError):
    """Raised when the lock file is unreadable or has an unknown format."""

    exit_code = 3


class DependencyUnmet(MeshstackError):
    """Raised when a scoped plan lacks a prerequisite that is neither present nor planned."""

    exit_code = 3

    def __init__(self, component: str, missing_roles: list[str]):
        self.component = component
        self.missing_roles = missing_roles
        super().__init__(
            f"Cannot plan '{component}': unmet dependency on "
            f"{', '.join(missing_roles)}",
            details=(
                "The prerequisite is not present in the cluster and is not part "
                "of this plan. Install it first, or run without --component."
            ),
        )


class DependencyCycle(MeshstackError):
    """Raised when a dependency graph cannot be topologically ordered."""

    exit_code = 3


class ConnectivityError(MeshstackError):
    """Raised when the cluster cannot be reached or authenticated against."""

    exit_code = 2


class ContextNotFound(ConnectivityError):
    """Raised when the requested kube context does not exist."""


class ContextInaccessible(ConnectivityError):
    """Raised when the kube context exists but the cluster is unreachable."""


class ResourceBusy(MeshstackError):
    """Raised when another reconciliation holds the lock file."""

    exit_code = 1


class ToolNotFound(MeshstackError):
    """Raised when a required command line tool is not installed."""

    exit_code = 1


class PartialApplyFailure(MeshstackError):
    """Raised when the executor halted before completing the plan."""

    exit_code = 1

    def __init__(self, report: ExecutionReport):
        self.report = report
        failed = report.failed
        component = failed.action.component if failed else "unknown"
        super().__init__(
            f"Apply halted: action on '{component}' failed",
            details=failed.message if failed else None,
        )
