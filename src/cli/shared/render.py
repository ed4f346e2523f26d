"""Rich rendering of plans, diffs, lock records and execution reports."""

from __future__ import annotations

import shlex

from rich.text import Text

from src.cli.shared.console import CLIConsole
from src.infra.helm import ChartInstaller
from src.reconcile.differ import DiffEntry, DiffStatus
from src.reconcile.executor import (
    ActionOutcome,
    ActionState,
    ExecutionReport,
    TransitionCallback,
)
from src.reconcile.lock_store import LockFile
from src.reconcile.planner import Action, ActionKind, Plan

_KIND_STYLE = {
    ActionKind.INSTALL: "green",
    ActionKind.UPGRADE: "yellow",
    ActionKind.UNINSTALL: "red",
    ActionKind.NOOP: "dim",
}

_STATUS_STYLE = {
    DiffStatus.IN_SYNC: "green",
    DiffStatus.MISSING: "cyan",
    DiffStatus.DRIFTED: "yellow",
    DiffStatus.ORPHANED: "red",
    DiffStatus.STALE: "magenta",
}

_STATE_STYLE = {
    ActionState.PENDING: "dim",
    ActionState.RUNNING: "cyan",
    ActionState.SUCCEEDED: "green",
    ActionState.FAILED: "red",
    ActionState.SKIPPED: "yellow",
}


def _styled(value: str, style: str) -> str:
    return f"[{style}]{value}[/{style}]"


def render_plan(console: CLIConsole, plan: Plan, *, verbose: bool = False) -> None:
    """Print a plan as a numbered table."""
    if plan.is_empty:
        console.ok("No changes. Cluster matches the desired state.")
        return

    title = "Plan (destructive)" if plan.destructive else "Plan"
    if plan.scope:
        title = f"{title}, scoped to {plan.scope}"
    columns = ["#", "Action", "Component", "Version", "Profile", "Namespace"]
    if verbose:
        columns += ["Reason", "Depends on"]
    table = console.table(title, *columns)

    for index, action in enumerate(plan, 1):
        row = [
            str(index),
            _styled(action.kind.value, _KIND_STYLE[action.kind]),
            action.component,
            action.target_version or "-",
            action.profile or "-",
            action.namespace or "-",
        ]
        if verbose:
            row.append(action.reason.value if action.reason else "-")
            row.append(", ".join(sorted(action.depends_on)) or "-")
        table.add_row(*row)

    console.print(table)


def render_commands(
    console: CLIConsole, plan: Plan, installer: ChartInstaller, context: str
) -> None:
    """Print the helm commands a plan would run."""
    if plan.is_empty:
        return
    console.print_subheader("Helm commands")
    for action in plan:
        console.plain(shlex.join(action_command(action, installer, context)))


def action_command(action: Action, installer: ChartInstaller, context: str) -> list[str]:
    if action.kind is ActionKind.UNINSTALL:
        return installer.uninstall_command(
            action.component, context, namespace=action.namespace or None
        )
    return installer.install_command(
        action.component,
        action.profile or "dev",
        context,
        version=action.target_version,
        namespace=action.namespace or None,
        values=action.values,
        values_file=action.values_file,
    )


def render_diff(console: CLIConsole, entries: list[DiffEntry]) -> None:
    """Print the three-way comparison of desired, recorded and live state."""
    if not entries:
        console.info("No components declared, recorded or deployed.")
        return

    table = console.table(
        "Desired vs lock vs cluster",
        "Component",
        "Status",
        "Desired",
        "Locked",
        "Observed",
        "Namespace",
    )

    for entry in entries:
        namespace = (
            entry.observed.namespace
            if entry.observed
            else entry.locked.namespace
            if entry.locked
            else "-"
        )
        table.add_row(
            entry.component,
            _styled(entry.status.value, _STATUS_STYLE[entry.status]),
            entry.to_version or "-",
            entry.locked.installed_version if entry.locked else "-",
            entry.observed.observed_version if entry.observed else "-",
            namespace,
        )
    console.print(table)


def render_lock(console: CLIConsole, lock_file: LockFile) -> None:
    """Print the lock records."""
    if len(lock_file) == 0:
        console.info("No components recorded in the lock file.")
        return

    table = console.table(
        "Installed components",
        "Component",
        "Version",
        "Chart",
        "Namespace",
        "Profile",
        "Applied at",
    )
    for record in lock_file:
        table.add_row(
            record.component,
            record.installed_version,
            record.chart_version,
            record.namespace,
            record.profile,
            record.applied_at.strftime("%Y-%m-%d %H:%M:%S %Z"),
        )
    console.print(table)


def render_report(console: CLIConsole, report: ExecutionReport) -> None:
    """Print every action's final state."""
    table = console.table(
        "Execution report", "#", "Action", "Component", "State", "Message"
    )
    for index, outcome in enumerate(report.outcomes, 1):
        table.add_row(
            str(index),
            outcome.action.kind.value,
            outcome.action.component,
            _styled(outcome.state.value, _STATE_STYLE[outcome.state]),
            Text(outcome.message or ""),
        )
    console.print(table)


def progress_printer(console: CLIConsole) -> TransitionCallback:
    """Return an executor transition callback printing one line per change."""

    def _print(outcome: ActionOutcome) -> None:
        description = outcome.action.describe()
        if outcome.state is ActionState.RUNNING:
            console.info(f"{description}...")
        elif outcome.state is ActionState.SUCCEEDED:
            console.ok(description)
        elif outcome.state is ActionState.FAILED:
            console.error(f"{description} failed")
        elif outcome.state is ActionState.SKIPPED:
            console.warn(f"Skipped {description}")

    return _print
