"""Reconciliation pipeline for one operation.

Config + Lock + Cluster → Diff → Plan → (dry run: return) or
(apply: Execute → updated Lock).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from loguru import logger

from . import executor, planner
from .catalog import DependencyGraph
from .differ import DiffEntry, diff
from .errors import PartialApplyFailure
from .executor import Clock, ExecutionReport, TransitionCallback
from .planner import Plan
from .prober import ClusterObservation, ClusterStateProber

if TYPE_CHECKING:
    from src.infra.helm.installer import ChartInstaller

    from .config_model import DesiredConfiguration
    from .lock_store import LockStore


class Operation(str, Enum):
    """CLI operation a plan is built for."""

    INSTALL = "install"
    DEPLOY = "deploy"
    UPDATE = "update"
    DESTROY = "destroy"

    @property
    def destructive(self) -> bool:
        """Whether undeclared releases are uninstalled."""
        return self in (Operation.UPDATE, Operation.DESTROY)


@dataclass
class ReconcileResult:
    """Everything one reconciliation computed."""

    operation: Operation
    context: str
    observations: list[ClusterObservation]
    entries: list[DiffEntry]
    plan: Plan
    report: ExecutionReport | None = None

    @property
    def applied(self) -> bool:
        return self.report is not None

    def raise_for_failure(self) -> None:
        """Raise PartialApplyFailure if the executor halted."""
        if self.report is not None and not self.report.ok:
            raise PartialApplyFailure(self.report)


class Reconciler:
    """Runs the diff → plan → apply pipeline against one kube context.

    Example:
        reconciler = Reconciler(installer, LockStore(lock_path), prober)
        result = reconciler.run(desired, "kind-dev", Operation.INSTALL)
        result.raise_for_failure()
    """

    def __init__(
        self,
        installer: ChartInstaller,
        lock_store: LockStore,
        prober: ClusterStateProber | None = None,
        graph: DependencyGraph | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.installer = installer
        self.lock_store = lock_store
        self.prober = prober or ClusterStateProber(installer)
        self.graph = graph or DependencyGraph.from_catalog()
        self.clock = clock or executor.utcnow

    def compare(
        self, desired: DesiredConfiguration, context: str
    ) -> tuple[list[ClusterObservation], list[DiffEntry]]:
        """Load the lock file, probe the cluster and diff the three views."""
        lock_file = self.lock_store.load()
        observations = self.prober.observe(
            context, namespaces=[record.namespace for record in lock_file]
        )
        return observations, diff(desired, lock_file, observations)

    def plan(
        self,
        desired: DesiredConfiguration,
        context: str,
        operation: Operation,
        scope: str | None = None,
    ) -> ReconcileResult:
        """Compute the plan for an operation without executing it."""
        observations, entries = self.compare(desired, context)
        result_plan = planner.plan(
            entries, self.graph, scope, destructive=operation.destructive
        )
        return ReconcileResult(
            operation=operation,
            context=context,
            observations=observations,
            entries=entries,
            plan=result_plan,
        )

    def run(
        self,
        desired: DesiredConfiguration,
        context: str,
        operation: Operation,
        scope: str | None = None,
        *,
        on_transition: TransitionCallback | None = None,
    ) -> ReconcileResult:
        """Plan and apply an operation while holding the lock store.

        Raises:
            ResourceBusy: If another reconciliation holds the lock store
        """
        with self.lock_store.acquire():
            result = self.plan(desired, context, operation, scope)
            if result.plan.is_empty:
                logger.debug(f"{operation.value}: nothing to do")
                return result

            result.report = executor.apply(
                result.plan,
                self.installer,
                self.lock_store,
                context,
                clock=self.clock,
                on_transition=on_transition,
            )
        return result
