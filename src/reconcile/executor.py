"""Applies a plan one action at a time.

Every successful action is recorded in the lock store and saved at once;
the first failure halts the run and skips what is left. There is no
rollback.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING

from loguru import logger

from .catalog import CATALOG
from .errors import MeshstackError
from .lock_store import LockRecord, LockStore
from .planner import Action, ActionKind, Plan

if TYPE_CHECKING:
    from src.infra.helm.installer import ChartInstaller


class ActionState(str, Enum):
    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    SKIPPED = "Skipped"


@dataclass
class ActionOutcome:
    """Final (or current) state of one action."""

    action: Action
    state: ActionState = ActionState.PENDING
    message: str | None = None


@dataclass
class ExecutionReport:
    """Per-action states of an executor run, in plan order."""

    outcomes: list[ActionOutcome] = field(default_factory=list)

    @property
    def states(self) -> list[ActionState]:
        return [o.state for o in self.outcomes]

    @property
    def succeeded(self) -> list[ActionOutcome]:
        return [o for o in self.outcomes if o.state is ActionState.SUCCEEDED]

    @property
    def skipped(self) -> list[ActionOutcome]:
        return [o for o in self.outcomes if o.state is ActionState.SKIPPED]

    @property
    def failed(self) -> ActionOutcome | None:
        return next(
            (o for o in self.outcomes if o.state is ActionState.FAILED), None
        )

    @property
    def ok(self) -> bool:
        return self.failed is None


TransitionCallback = Callable[[ActionOutcome], None]
Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(UTC)


def apply(
    plan: Plan,
    installer: ChartInstaller,
    lock_store: LockStore,
    context: str,
    *,
    clock: Clock = utcnow,
    on_transition: TransitionCallback | None = None,
) -> ExecutionReport:
    """Execute a plan strictly in order.

    The lock store is held for the whole run. Each action goes
    Pending → Running → Succeeded/Failed; after the first failure every
    remaining action is Skipped.

    Args:
        plan: Plan to execute
        installer: Chart installer performing each action
        lock_store: Store updated and saved after every successful action
        context: Kube context the actions target
        clock: Source of ``appliedAt`` timestamps
        on_transition: Called with the outcome on every state change

    Returns:
        ExecutionReport listing every action's final state

    Raises:
        ResourceBusy: If another process holds the lock store
    """
    report = ExecutionReport(outcomes=[ActionOutcome(action=a) for a in plan])

    def transition(
        outcome: ActionOutcome, state: ActionState, message: str | None = None
    ) -> None:
        outcome.state = state
        outcome.message = message
        if on_transition is not None:
            on_transition(outcome)

    with lock_store.acquire():
        halted = False
        for outcome in report.outcomes:
            if halted:
                transition(outcome, ActionState.SKIPPED)
                continue

            action = outcome.action
            transition(outcome, ActionState.RUNNING)
            logger.info(f"{action.describe()} (context '{context}')")

            error = _run(action, installer, context)
            if error is not None:
                logger.info(f"{action.describe()} failed: {error}")
                transition(outcome, ActionState.FAILED, error)
                halted = True
                continue

            if installer.persists_releases:
                _record(action, lock_store, clock)
                lock_store.save()
            transition(outcome, ActionState.SUCCEEDED)

    return report


def _run(action: Action, installer: ChartInstaller, context: str) -> str | None:
    """Run one action, returning the error text if it failed."""
    try:
        if action.kind is ActionKind.UNINSTALL:
            result = installer.uninstall(
                action.component, context, namespace=action.namespace or None
            )
        elif action.kind.applies_release:
            result = installer.install(
                action.component,
                action.profile or "dev",
                context,
                version=action.target_version,
                namespace=action.namespace or None,
                values=action.values,
                values_file=action.values_file,
            )
        else:
            return None
    except MeshstackError as e:
        return e.message if not e.details else f"{e.message}: {e.details}"
    except Exception as e:
        logger.opt(exception=e).debug(f"Unexpected error running {action.describe()}")
        return f"{type(e).__name__}: {e}"

    if result.success:
        return None
    if result.timed_out:
        return f"helm timed out: {result.stderr}".strip()
    return result.stderr.strip() or result.stdout.strip() or (
        f"helm exited with code {result.returncode}"
    )


def _record(action: Action, lock_store: LockStore, clock: Clock) -> None:
    if action.kind is ActionKind.UNINSTALL:
        lock_store.remove(action.component)
        return
    if not action.kind.applies_release or action.target_version is None:
        return

    spec = CATALOG.get(action.component)
    version = action.target_version
    lock_store.set(
        action.component,
        LockRecord(
            component=action.component,
            installed_version=version,
            chart_version=spec.chart_version(version) if spec else version,
            namespace=action.namespace or (spec.namespace if spec else ""),
            profile=action.profile or "dev",
            applied_at=clock(),
        ),
    )
