"""Live cluster state.

The prober asks the chart installer for the releases in every namespace a
component can live in. Namespace queries run concurrently with a bounded
worker count and are fully joined before anything is returned; any failure
aborts the whole probe with ConnectivityError.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from loguru import logger

from src.infra.k8s.utils import run_sync

from .catalog import CATALOG
from .errors import ConnectivityError, MeshstackError

if TYPE_CHECKING:
    from src.infra.helm.installer import ChartInstaller


@dataclass(frozen=True)
class ClusterObservation:
    """A release found in the cluster."""

    component: str
    observed_version: str
    namespace: str
    status: str = "deployed"

    @property
    def converged(self) -> bool:
        """Whether helm reports the release as deployed (not failed or pending)."""
        return self.status == "deployed"


class ClusterStateProber:
    """Read-only view of the releases present in a kube context.

    Example:
        prober = ClusterStateProber(installer, max_workers=4, timeout=30)
        observations = prober.observe("kind-dev")
    """

    def __init__(
        self,
        installer: ChartInstaller,
        *,
        max_workers: int = 4,
        timeout: float = 30.0,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.installer = installer
        self.max_workers = max_workers
        self.timeout = timeout

    @staticmethod
    def namespaces(extra: Iterable[str] = ()) -> list[str]:
        """Catalog namespaces followed by any extra ones, without duplicates."""
        ordered = [spec.namespace for spec in CATALOG.values()] + list(extra)
        return list(dict.fromkeys(ordered))

    def observe(
        self, context: str, namespaces: Iterable[str] = ()
    ) -> list[ClusterObservation]:
        """Observe the supported components present in the cluster.

        Args:
            context: Kube context to query
            namespaces: Namespaces to query besides the catalog ones (for
                example those recorded in the lock file)

        Returns:
            One observation per supported component found, in catalog order

        Raises:
            ConnectivityError: If any namespace query fails or the probe
                exceeds the timeout
        """
        targets = self.namespaces(namespaces)
        per_namespace = run_sync(self._observe(context, targets))
        observations = _select(per_namespace)
        logger.debug(
            f"Observed {len(observations)} components in context '{context}': "
            f"{[(o.component, o.observed_version) for o in observations]}"
        )
        return observations

    async def _observe(
        self, context: str, namespaces: list[str]
    ) -> list[list[ClusterObservation]]:
        semaphore = asyncio.Semaphore(self.max_workers)

        async def _list(namespace: str) -> list[ClusterObservation]:
            async with semaphore:
                logger.debug(f"Listing releases in namespace '{namespace}'")
                return await asyncio.to_thread(
                    self.installer.list_releases,
                    context,
                    namespace,
                    timeout=self.timeout,
                )

        try:
            return await asyncio.wait_for(
                asyncio.gather(*(_list(ns) for ns in namespaces)),
                timeout=self.timeout,
            )
        except TimeoutError:
            raise ConnectivityError(
                f"Timed out after {self.timeout:g}s probing context '{context}'"
            ) from None
        except MeshstackError:
            raise
        except Exception as e:
            raise ConnectivityError(
                f"Failed to probe context '{context}'", details=str(e)
            ) from e


def _select(per_namespace: list[list[ClusterObservation]]) -> list[ClusterObservation]:
    """Keep supported components, preferring the release in the catalog namespace."""
    selected: dict[str, ClusterObservation] = {}
    for observations in per_namespace:
        for observation in observations:
            spec = CATALOG.get(observation.component)
            if spec is None:
                continue
            current = selected.get(observation.component)
            if current is None:
                selected[observation.component] = observation
                continue
            logger.warning(
                f"Release '{observation.component}' found in namespaces "
                f"'{current.namespace}' and '{observation.namespace}'"
            )
            if observation.namespace == spec.namespace:
                selected[observation.component] = observation

    order = list(CATALOG)
    return sorted(selected.values(), key=lambda o: order.index(o.component))
