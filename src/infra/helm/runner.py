"""Command runner for executing shell commands.

This module provides the base command execution functionality used by
the Helm command module.
"""

from __future__ import annotations

import shutil
import subprocess
from collections.abc import Sequence
from pathlib import Path

from loguru import logger

from src.infra.k8s.controller import CommandResult


class CommandRunner:
    """Low-level command executor with consistent result handling.

    Timeouts never raise: an expired command yields a failed CommandResult
    with ``timed_out`` set, so callers decide how to surface it.
    """

    def __init__(self, project_root: Path) -> None:
        """Initialize the command runner.

        Args:
            project_root: Path to the project root directory.
                         Commands will be executed from this directory by default.
        """
        self.project_root = project_root

    def which(self, tool: str) -> str | None:
        """Return the full path of a tool on PATH, or None."""
        return shutil.which(tool)

    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """Execute a command and return a structured result.

        Args:
            cmd: Command and arguments as a sequence
            cwd: Working directory (defaults to project_root)
            timeout: Seconds before the command is killed

        Returns:
            CommandResult with success status, output, and return code
        """
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                list(cmd),
                cwd=cwd or self.project_root,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            return CommandResult(
                success=False,
                stderr=f"{cmd[0]} timed out after {timeout:g}s",
                returncode=-1,
                timed_out=True,
            )
        except FileNotFoundError:
            return CommandResult(
                success=False,
                stderr=f"{cmd[0]} is not installed or not found in PATH",
                returncode=127,
            )
        except OSError as e:
            return CommandResult(
                success=False,
                stderr=f"{cmd[0]} could not be started: {e}",
                returncode=126,
            )
        return CommandResult(
            success=result.returncode == 0,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
            returncode=result.returncode,
        )
