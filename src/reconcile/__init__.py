"""Desired-state reconciliation engine.

Reconciles three views of a cluster (what is declared in ``meshstack.yaml``,
what ``meshstack.lock`` records as applied, and what is actually deployed)
into an ordered plan of chart actions.

Example:
    from src.reconcile import Operation, Reconciler, load

    desired = load(Path("meshstack.yaml"))
    result = Reconciler(installer, LockStore(lock_path)).run(
        desired, "kind-dev", Operation.INSTALL
    )
"""

from .catalog import CATALOG, SUPPORTED_COMPONENTS, DependencyGraph
from .config_model import DesiredComponent, DesiredConfiguration, Profile, load
from .differ import DiffEntry, DiffStatus, diff
from .engine import Operation, Reconciler, ReconcileResult
from .errors import (
    ConnectivityError,
    ContextInaccessible,
    ContextNotFound,
    DependencyCycle,
    DependencyUnmet,
    LockCorruption,
    MeshstackError,
    PartialApplyFailure,
    ResourceBusy,
    SchemaError,
    ToolNotFound,
)
from .executor import ActionOutcome, ActionState, ExecutionReport, apply
from .lock_store import LockFile, LockRecord, LockStore
from .planner import Action, ActionKind, Plan, plan
from .prober import ClusterObservation, ClusterStateProber

__all__ = [
    # Catalog
    "CATALOG",
    "SUPPORTED_COMPONENTS",
    "DependencyGraph",
    # Configuration
    "DesiredComponent",
    "DesiredConfiguration",
    "Profile",
    "load",
    # Lock file
    "LockFile",
    "LockRecord",
    "LockStore",
    # Pipeline
    "ClusterObservation",
    "ClusterStateProber",
    "DiffEntry",
    "DiffStatus",
    "diff",
    "Action",
    "ActionKind",
    "Plan",
    "plan",
    "ActionOutcome",
    "ActionState",
    "ExecutionReport",
    "apply",
    "Operation",
    "Reconciler",
    "ReconcileResult",
    # Errors
    "MeshstackError",
    "SchemaError",
    "LockCorruption",
    "DependencyUnmet",
    "DependencyCycle",
    "ConnectivityError",
    "ContextNotFound",
    "ContextInaccessible",
    "ResourceBusy",
    "ToolNotFound",
    "PartialApplyFailure",
]
