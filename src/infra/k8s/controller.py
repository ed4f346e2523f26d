"""Abstract cluster context resolver interface.

Defines the contract for resolving and verifying the kube context a
reconciliation runs against. Backends (kubectl subprocess, kr8s library,
static) implement the async primitives; ``resolve`` composes them.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass

from loguru import logger

from src.reconcile.errors import ContextInaccessible, ContextNotFound

from .utils import run_sync

# =============================================================================
# Data Types
# =============================================================================


@dataclass
class CommandResult:
    """Result of a command execution."""

    success: bool
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0
    timed_out: bool = False


# =============================================================================
# Abstract Resolver
# =============================================================================


class ClusterContextResolver(ABC):
    """Abstract base class for kube context resolution.

    All primitives are async to support both sync (kubectl) and async (kr8s)
    implementations. ``resolve`` runs them from synchronous code.

    Example:
        from src.infra.k8s import KubectlContextResolver

        resolver = KubectlContextResolver()
        context = resolver.resolve(override=None, timeout=30)
    """

    @abstractmethod
    async def get_current_context(self) -> str | None:
        """Get the active context name.

        Returns:
            Context name, or None if no context is active
        """
        ...

    @abstractmethod
    async def context_exists(self, name: str) -> bool:
        """Check whether a context is defined in the kubeconfig.

        Args:
            name: Context name to look up

        Returns:
            True if the context exists, False otherwise
        """
        ...

    @abstractmethod
    async def check_access(self, context: str, timeout: float) -> CommandResult:
        """Verify the cluster behind a context is reachable and authorized.

        Args:
            context: Context to check
            timeout: Seconds before the check gives up

        Returns:
            CommandResult describing the outcome
        """
        ...

    def resolve(self, override: str | None, timeout: float) -> str:
        """Resolve the context for this run and verify it is reachable.

        Args:
            override: Context requested with ``--context``, if any
            timeout: Seconds allowed for the connectivity check

        Returns:
            The resolved context name

        Raises:
            ContextNotFound: If the context does not exist or none is active
            ContextInaccessible: If the cluster cannot be reached in time
        """
        return run_sync(self._resolve(override, timeout))

    async def _resolve(self, override: str | None, timeout: float) -> str:
        if override:
            if not await self.context_exists(override):
                raise ContextNotFound(
                    f"Kubernetes context '{override}' not found",
                    details="Run `kubectl config get-contexts` to list contexts.",
                )
            context = override
        else:
            current = await self.get_current_context()
            if not current:
                raise ContextNotFound(
                    "No current Kubernetes context is set",
                    details="Select one with `kubectl config use-context` or pass --context.",
                )
            context = current

        try:
            result = await asyncio.wait_for(
                self.check_access(context, timeout), timeout=timeout
            )
        except TimeoutError:
            raise ContextInaccessible(
                f"Timed out after {timeout:g}s connecting to context '{context}'"
            ) from None

        if not result.success:
            raise ContextInaccessible(
                f"Failed to connect to Kubernetes cluster (context '{context}')",
                details=result.stderr or result.stdout or None,
            )

        logger.debug(f"Resolved kube context '{context}'")
        return context


class StaticContextResolver(ClusterContextResolver):
    """Resolver that trusts the requested context without contacting a cluster.

    Used together with the echo chart installer, where no cluster is touched.
    """

    def __init__(self, default: str = "default") -> None:
        self.default = default

    async def get_current_context(self) -> str | None:
        return self.default

    async def context_exists(self, name: str) -> bool:
        return True

    async def check_access(self, context: str, timeout: float) -> CommandResult:
        return CommandResult(success=True, stdout=context)
