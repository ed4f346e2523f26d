"""Turns diff entries into a dependency-ordered plan.

Installs and upgrades follow the topological order of the dependency
table; uninstalls follow its exact reverse and come after them.
"""

from __future__ import annotations

import heapq
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from loguru import logger

from .catalog import CATALOG, DependencyGraph
from .differ import DiffEntry, DiffStatus
from .errors import DependencyCycle, DependencyUnmet


class ActionKind(str, Enum):
    INSTALL = "Install"
    UPGRADE = "Upgrade"
    UNINSTALL = "Uninstall"
    NOOP = "NoOp"

    @property
    def applies_release(self) -> bool:
        """Install and Upgrade both run ``helm upgrade --install``."""
        return self in (ActionKind.INSTALL, ActionKind.UPGRADE)


@dataclass(frozen=True)
class Action:
    """One step of a plan.

    Attributes:
        kind: What to do
        component: Component acted on
        target_version: Version to install (None for uninstall)
        profile: Profile to install with (None for uninstall)
        depends_on: Components this action must run after
        namespace: Namespace of the release
        values: Inline values override
        values_file: Values file override
        reason: Diff classification that produced the action
    """

    kind: ActionKind
    component: str
    target_version: str | None = None
    profile: str | None = None
    depends_on: frozenset[str] = frozenset()
    namespace: str = ""
    values: dict[str, Any] | None = field(default=None, compare=False)
    values_file: Path | None = None
    reason: DiffStatus | None = None

    def describe(self) -> str:
        if self.kind is ActionKind.UNINSTALL:
            return f"{self.kind.value} {self.component}"
        return f"{self.kind.value} {self.component}→{self.target_version}"


@dataclass(frozen=True)
class Plan:
    """Ordered actions for one invocation. Never persisted."""

    actions: tuple[Action, ...] = ()
    destructive: bool = False
    scope: str | None = None

    def __iter__(self) -> Iterator[Action]:
        return iter(self.actions)

    def __len__(self) -> int:
        return len(self.actions)

    @property
    def is_empty(self) -> bool:
        return not self.actions

    @property
    def components(self) -> list[str]:
        return [a.component for a in self.actions]


def plan(
    entries: list[DiffEntry],
    graph: DependencyGraph,
    scope: str | None = None,
    *,
    destructive: bool = False,
) -> Plan:
    """Build the plan converging the classified components.

    Args:
        entries: Diff entries, in declaration order
        graph: Dependency table used for ordering and requirement checks
        scope: Restrict the plan to this single component
        destructive: Whether undeclared releases are uninstalled

    Returns:
        The ordered Plan (no-ops elided)

    Raises:
        DependencyUnmet: If the scoped component requires a role that is
            neither present in the cluster nor planned
        DependencyCycle: If the dependency table is cyclic
    """
    order = topological_order(entries, graph)

    kinds: dict[str, ActionKind] = {}
    for entry in entries:
        if scope is not None and entry.component != scope:
            continue
        kind = _action_kind(entry, destructive)
        if kind is not ActionKind.NOOP:
            kinds[entry.component] = kind

    by_name = {e.component: e for e in entries}
    removed = {name for name, kind in kinds.items() if kind is ActionKind.UNINSTALL}
    planned = {name for name, kind in kinds.items() if kind.applies_release}
    present = {
        e.component
        for e in entries
        if e.observed is not None and e.component not in removed
    }

    applied: list[Action] = []
    for name in order:
        if name not in planned:
            continue
        _check_requirements(name, graph, present | planned, scoped=scope is not None)
        applied.append(
            _release_action(
                by_name[name],
                kinds[name],
                graph.prerequisites(name, present | planned),
                graph,
            )
        )

    uninstalled: list[Action] = []
    for name in reversed(order):
        if name not in removed:
            continue
        dependents = {
            other for other in removed if name in graph.prerequisites(other, removed)
        }
        entry = by_name[name]
        uninstalled.append(
            Action(
                kind=ActionKind.UNINSTALL,
                component=name,
                depends_on=frozenset(dependents),
                namespace=_namespace(entry, graph),
                reason=entry.status,
            )
        )

    result = Plan(
        actions=tuple(applied + uninstalled), destructive=destructive, scope=scope
    )
    logger.debug(f"Planned: {[a.describe() for a in result] or 'nothing'}")
    return result


def topological_order(entries: list[DiffEntry], graph: DependencyGraph) -> list[str]:
    """Order every component named by the entries by the dependency table.

    Ties are broken by declaration order, then catalog order.

    Raises:
        DependencyCycle: If the components cannot be ordered
    """
    names = [e.component for e in entries]
    declared = [e.component for e in entries if e.declared]

    def rank(name: str) -> tuple[int, int, str]:
        position = declared.index(name) if name in declared else len(declared)
        return (position, graph.catalog_index(name), name)

    prerequisites = {name: graph.prerequisites(name, names) for name in names}
    remaining = {name: len(prereqs) for name, prereqs in prerequisites.items()}
    ready = [rank(name) for name, count in remaining.items() if count == 0]
    heapq.heapify(ready)

    ordered: list[str] = []
    while ready:
        name = heapq.heappop(ready)[2]
        ordered.append(name)
        for other, prereqs in prerequisites.items():
            if name in prereqs:
                remaining[other] -= 1
                if remaining[other] == 0:
                    heapq.heappush(ready, rank(other))

    if len(ordered) != len(names):
        stuck = sorted(set(names) - set(ordered))
        raise DependencyCycle(
            f"Dependency cycle between components: {', '.join(stuck)}"
        )
    return ordered


def _action_kind(entry: DiffEntry, destructive: bool) -> ActionKind:
    if entry.status is DiffStatus.MISSING:
        return ActionKind.INSTALL
    if entry.status is DiffStatus.DRIFTED:
        return ActionKind.UPGRADE
    if entry.status is DiffStatus.STALE:
        if entry.declared:
            return ActionKind.INSTALL
        return ActionKind.UNINSTALL if destructive else ActionKind.NOOP
    if entry.status is DiffStatus.ORPHANED:
        return ActionKind.UNINSTALL if destructive else ActionKind.NOOP
    return ActionKind.NOOP


def _check_requirements(
    name: str, graph: DependencyGraph, available: set[str], *, scoped: bool
) -> None:
    missing = sorted(
        role for role in graph.requires(name) if not graph.providers(role, available)
    )
    if not missing:
        return
    if scoped:
        raise DependencyUnmet(name, missing)
    logger.warning(
        f"'{name}' requires {', '.join(missing)}, which is neither present nor planned"
    )


def _release_action(
    entry: DiffEntry, kind: ActionKind, depends_on: set[str], graph: DependencyGraph
) -> Action:
    desired = entry.desired
    if desired is None:
        raise ValueError(f"cannot install undeclared component '{entry.component}'")
    return Action(
        kind=kind,
        component=entry.component,
        target_version=desired.version,
        profile=desired.profile.value,
        depends_on=frozenset(depends_on),
        namespace=_namespace(entry, graph),
        values=desired.values,
        values_file=desired.values_file,
        reason=entry.status,
    )


def _namespace(entry: DiffEntry, graph: DependencyGraph) -> str:
    if entry.observed is not None:
        return entry.observed.namespace
    if entry.locked is not None:
        return entry.locked.namespace
    spec = graph.spec(entry.component) or CATALOG.get(entry.component)
    return spec.namespace if spec else ""
