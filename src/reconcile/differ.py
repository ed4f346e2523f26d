"""Three-way comparison of desired, recorded and live state."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from loguru import logger

from .config_model import DesiredComponent, DesiredConfiguration
from .lock_store import LockFile, LockRecord
from .prober import ClusterObservation


class DiffStatus(str, Enum):
    """Classification of one component."""

    IN_SYNC = "InSync"
    MISSING = "Missing"
    DRIFTED = "Drifted"
    ORPHANED = "Orphaned"
    STALE = "Stale"


@dataclass(frozen=True)
class DiffEntry:
    """Classification of one component and the state it was derived from."""

    component: str
    status: DiffStatus
    desired: DesiredComponent | None = None
    locked: LockRecord | None = None
    observed: ClusterObservation | None = None

    @property
    def from_version(self) -> str | None:
        """Version currently in place: live if observed, else last recorded."""
        if self.observed is not None:
            return self.observed.observed_version
        if self.locked is not None:
            return self.locked.installed_version
        return None

    @property
    def to_version(self) -> str | None:
        return self.desired.version if self.desired is not None else None

    @property
    def declared(self) -> bool:
        return self.desired is not None

    def describe(self) -> str:
        if self.status is DiffStatus.DRIFTED:
            return f"Drifted({self.component}, {self.from_version}→{self.to_version})"
        return f"{self.status.value}({self.component})"


def same_version(left: str, right: str) -> bool:
    """Compare versions ignoring a leading ``v`` (``v1.14.4`` == ``1.14.4``)."""
    return left.removeprefix("v") == right.removeprefix("v")


def diff(
    desired: DesiredConfiguration,
    lock: LockFile,
    observed: Iterable[ClusterObservation],
) -> list[DiffEntry]:
    """Classify every component named by any of the three views.

    Live cluster state wins over the lock file. Entries come in declaration
    order, followed by the remaining names sorted.
    """
    live = {o.component: o for o in observed}
    undeclared = (set(lock.records) | set(live)) - set(desired.names)
    names = desired.names + sorted(undeclared)

    entries = [
        _classify(name, desired.get(name), lock.get(name), live.get(name))
        for name in names
    ]

    if entries:
        counts: dict[str, int] = {}
        for entry in entries:
            counts[entry.status.value] = counts.get(entry.status.value, 0) + 1
        logger.debug(f"Diff: {counts}")
    return entries


def _classify(
    name: str,
    wanted: DesiredComponent | None,
    record: LockRecord | None,
    live: ClusterObservation | None,
) -> DiffEntry:
    if wanted is not None and live is not None:
        if live.converged and same_version(live.observed_version, wanted.version):
            status = DiffStatus.IN_SYNC
        else:
            status = DiffStatus.DRIFTED
    elif wanted is not None:
        status = DiffStatus.STALE if record is not None else DiffStatus.MISSING
    elif live is not None:
        status = DiffStatus.ORPHANED
    else:
        status = DiffStatus.STALE

    return DiffEntry(
        component=name, status=status, desired=wanted, locked=record, observed=live
    )
