"""Durable record of the last-applied state.

The lock file is loaded and saved as a whole. Writes are atomic (temporary
file in the same directory, fsync, rename) and guarded by an exclusive,
non-blocking advisory lock on a sidecar file so that at most one
reconciliation writes to a project at a time.
"""

from __future__ import annotations

import fcntl
import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import LockCorruption, ResourceBusy

LOCK_FORMAT_VERSION = 1


class LockRecord(BaseModel):
    """What the engine last applied for one component."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    component: str
    installed_version: str = Field(alias="installedVersion")
    chart_version: str = Field(alias="chartVersion")
    namespace: str
    profile: str
    applied_at: datetime = Field(alias="appliedAt")

    def to_document(self) -> dict[str, Any]:
        """Serialize to the on-disk mapping (component name is the key)."""
        return self.model_dump(mode="json", by_alias=True, exclude={"component"})


@dataclass
class LockFile:
    """All lock records, keyed by component name."""

    version: int = LOCK_FORMAT_VERSION
    records: dict[str, LockRecord] = field(default_factory=dict)

    def __contains__(self, component: object) -> bool:
        return component in self.records

    def __iter__(self) -> Iterator[LockRecord]:
        return iter(self.records.values())

    def __len__(self) -> int:
        return len(self.records)

    def get(self, component: str) -> LockRecord | None:
        return self.records.get(component)

    def to_document(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "components": {
                name: record.to_document() for name, record in self.records.items()
            },
        }


class _UniqueKeyLoader(yaml.SafeLoader):
    """SafeLoader that rejects duplicate mapping keys instead of keeping the last."""

    def construct_mapping(self, node, deep=False):  # type: ignore[no-untyped-def]
        seen: set[Any] = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            if key in seen:
                raise LockCorruption(
                    f"Duplicate key '{key}' in lock file",
                    details=str(key_node.start_mark),
                )
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


def parse_lock_file(content: str, source: str = "lock file") -> LockFile:
    """Parse and validate lock file content.

    Raises:
        LockCorruption: On invalid YAML, unknown format version, duplicate
            component keys, or malformed records
    """
    try:
        document = yaml.load(content, Loader=_UniqueKeyLoader)  # noqa: S506
    except yaml.YAMLError as e:
        raise LockCorruption(f"{source} is not valid YAML", details=str(e)) from e

    if not isinstance(document, dict):
        raise LockCorruption(f"{source} must contain a mapping at the top level")

    version = document.get("version")
    if version != LOCK_FORMAT_VERSION or isinstance(version, bool):
        raise LockCorruption(
            f"{source} has unknown format version: {version!r}",
            details=f"This meshstack understands lock format {LOCK_FORMAT_VERSION}.",
        )

    components = document.get("components") or {}
    if not isinstance(components, dict):
        raise LockCorruption(f"{source}: 'components' must be a mapping")

    records: dict[str, LockRecord] = {}
    for name, data in components.items():
        if not isinstance(data, dict):
            raise LockCorruption(f"{source}: record for '{name}' must be a mapping")
        try:
            records[str(name)] = LockRecord.model_validate({**data, "component": name})
        except ValidationError as e:
            raise LockCorruption(
                f"{source}: invalid record for '{name}'", details=str(e)
            ) from e

    return LockFile(version=version, records=records)


def load_lock_file(path: Path) -> LockFile:
    """Load the lock file, returning an empty LockFile if it does not exist."""
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.debug(f"No lock file at {path}, starting empty")
        return LockFile()
    except OSError as e:
        raise LockCorruption(f"Cannot read {path}", details=str(e)) from e
    return parse_lock_file(content, source=str(path))


def save_lock_file(lock_file: LockFile, path: Path) -> None:
    """Atomically write the lock file.

    The content goes to a temporary file in the target directory, is
    fsynced, then renamed over the target, so readers only ever see the
    old or the new file.
    """
    content = yaml.safe_dump(lock_file.to_document(), sort_keys=False)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class LockStore:
    """In-memory copy of the lock file with explicit persistence.

    ``get``/``set``/``remove`` only touch the in-memory copy; nothing is
    written until ``save``. ``acquire`` holds the exclusive write lock for a
    scope and is re-entrant within one store.

    Example:
        store = LockStore(Path("meshstack.lock"))
        with store.acquire():
            store.load()
            store.set("istio", record)
            store.save()
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.guard_path = self.path.with_name(self.path.name + ".lck")
        self._lock_file = LockFile()
        self._guard_fd: int | None = None
        self._depth = 0

    @property
    def lock_file(self) -> LockFile:
        return self._lock_file

    # =========================================================================
    # Persistence
    # =========================================================================

    def load(self) -> LockFile:
        self._lock_file = load_lock_file(self.path)
        return self._lock_file

    def save(self, lock_file: LockFile | None = None) -> None:
        if lock_file is not None:
            self._lock_file = lock_file
        with self.acquire():
            save_lock_file(self._lock_file, self.path)
        logger.debug(f"Saved {len(self._lock_file)} lock records to {self.path}")

    # =========================================================================
    # In-memory mutation
    # =========================================================================

    def get(self, component: str) -> LockRecord | None:
        return self._lock_file.get(component)

    def set(self, component: str, record: LockRecord) -> None:
        if record.component != component:
            raise ValueError(
                f"record for '{record.component}' stored under '{component}'"
            )
        self._lock_file.records[component] = record

    def remove(self, component: str) -> LockRecord | None:
        return self._lock_file.records.pop(component, None)

    # =========================================================================
    # Exclusive acquisition
    # =========================================================================

    @property
    def is_held(self) -> bool:
        return self._depth > 0

    @contextmanager
    def acquire(self) -> Iterator[LockStore]:
        """Hold exclusive write access to the lock file for the scope.

        Raises:
            ResourceBusy: If another process holds the lock
        """
        if self._depth == 0:
            self.guard_path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.guard_path, os.O_RDWR | os.O_CREAT, 0o644)
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            except BlockingIOError:
                os.close(fd)
                raise ResourceBusy(
                    f"{self.path} is locked by another meshstack process",
                    details=(
                        "Another reconciliation is running against this project. "
                        "Wait for it to finish and retry."
                    ),
                ) from None
            self._guard_fd = fd
            logger.debug(f"Acquired {self.guard_path}")
        self._depth += 1
        try:
            yield self
        finally:
            self._depth -= 1
            if self._depth == 0 and self._guard_fd is not None:
                fcntl.flock(self._guard_fd, fcntl.LOCK_UN)
                os.close(self._guard_fd)
                self._guard_fd = None
                logger.debug(f"Released {self.guard_path}")
