"""Kubectl-based implementation of ClusterContextResolver.

Uses subprocess calls to kubectl for all operations.
"""

from __future__ import annotations

import asyncio
import math
import subprocess

from .controller import ClusterContextResolver, CommandResult


class KubectlContextResolver(ClusterContextResolver):
    """Context resolver using kubectl subprocess calls.

    All methods are async but internally use asyncio.to_thread()
    to run blocking subprocess calls without blocking the event loop.
    """

    async def _run_kubectl(
        self,
        args: list[str],
        *,
        timeout: float | None = None,
    ) -> CommandResult:
        """Run a kubectl command asynchronously.

        Args:
            args: Command arguments (without 'kubectl' prefix)
            timeout: Seconds before the subprocess is killed

        Returns:
            CommandResult with execution results
        """
        cmd = ["kubectl", *args]

        def _run() -> CommandResult:
            try:
                result = subprocess.run(
                    cmd,
                    capture_output=True,
                    text=True,
                    timeout=timeout,
                )
            except FileNotFoundError:
                return CommandResult(
                    success=False,
                    stderr="kubectl is not installed or not found in PATH",
                    returncode=127,
                )
            except subprocess.TimeoutExpired:
                return CommandResult(
                    success=False,
                    stderr=f"kubectl {' '.join(args)} timed out",
                    returncode=-1,
                    timed_out=True,
                )
            return CommandResult(
                success=result.returncode == 0,
                stdout=result.stdout or "",
                stderr=result.stderr or "",
                returncode=result.returncode,
            )

        return await asyncio.to_thread(_run)

    async def get_current_context(self) -> str | None:
        """Get the current kubectl context name."""
        result = await self._run_kubectl(["config", "current-context"])
        context = result.stdout.strip()
        return context if result.success and context else None

    async def context_exists(self, name: str) -> bool:
        """Check if the context is defined in the kubeconfig."""
        result = await self._run_kubectl(["config", "get-contexts", name, "-o", "name"])
        return result.success and name in result.stdout.split()

    async def check_access(self, context: str, timeout: float) -> CommandResult:
        """Run ``kubectl cluster-info`` against the context."""
        seconds = max(1, math.ceil(timeout))
        return await self._run_kubectl(
            [
                "--context",
                context,
                "cluster-info",
                f"--request-timeout={seconds}s",
            ],
            timeout=timeout,
        )
