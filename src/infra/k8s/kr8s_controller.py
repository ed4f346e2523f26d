"""Kr8s-based implementation of ClusterContextResolver.

Uses the kr8s library for native async Kubernetes API access.
"""

from __future__ import annotations

import json
from typing import Any

import kr8s
from loguru import logger

from .controller import ClusterContextResolver, CommandResult


class Kr8sContextResolver(ClusterContextResolver):
    """Context resolver using the kr8s library.

    Note: The kr8s API client is NOT cached because it's tied to the event loop
    that was running when created. ``resolve`` goes through run_sync(), which
    creates a fresh event loop per call.
    """

    async def _get_api(self, context: str | None = None) -> Any:  # Returns kr8s._api.Api
        """Create a kr8s API client for a context (or the active one)."""
        if context is None:
            return await kr8s.asyncio.api()
        return await kr8s.asyncio.api(context=context)

    async def get_current_context(self) -> str | None:
        """Get the active context from the loaded kubeconfig."""
        try:
            api = await self._get_api()
            return api.auth.active_context or None
        except Exception as e:
            logger.debug(f"kr8s could not load the active context: {e}")
            return None

    async def context_exists(self, name: str) -> bool:
        """Check if kr8s can load the named context."""
        try:
            await self._get_api(name)
            return True
        except Exception as e:
            logger.debug(f"kr8s could not load context '{name}': {e}")
            return False

    async def check_access(self, context: str, timeout: float) -> CommandResult:
        """Query the API server version through the context."""
        try:
            api = await self._get_api(context)
            version = await api.version()
        except Exception as e:
            return CommandResult(success=False, stderr=str(e), returncode=1)
        return CommandResult(success=True, stdout=json.dumps(version))
