"""Tests for the lock file store."""

import os
from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import patch

import pytest

from src.reconcile.errors import LockCorruption, ResourceBusy
from src.reconcile.lock_store import (
    LockFile,
    LockRecord,
    LockStore,
    load_lock_file,
    parse_lock_file,
    save_lock_file,
)


def _record(component: str = "istio", version: str = "1.20.3") -> LockRecord:
    return LockRecord(
        component=component,
        installed_version=version,
        chart_version=f"{component}-{version}",
        namespace="istio-system",
        profile="dev",
        applied_at=datetime(2026, 1, 1, 12, 0, tzinfo=UTC),
    )


class TestPersistence:
    """Tests for loading and saving lock files."""

    def test_missing_file_loads_empty(self, tmp_path: Path) -> None:
        lock_file = load_lock_file(tmp_path / "meshstack.lock")

        assert len(lock_file) == 0
        assert lock_file.version == 1

    def test_save_then_load_reproduces_every_field(self, tmp_path: Path) -> None:
        path = tmp_path / "meshstack.lock"
        original = LockFile(
            records={
                "istio": _record(),
                "grafana": LockRecord(
                    component="grafana",
                    installed_version="7.3.0",
                    chart_version="grafana-7.3.0",
                    namespace="monitoring",
                    profile="prod",
                    applied_at=datetime(2026, 2, 3, 4, 5, 6, tzinfo=UTC),
                ),
            }
        )

        save_lock_file(original, path)
        loaded = load_lock_file(path)

        assert loaded.version == original.version
        assert loaded.records == original.records

    def test_on_disk_format_uses_camel_case_keys(self, tmp_path: Path) -> None:
        path = tmp_path / "meshstack.lock"
        save_lock_file(LockFile(records={"istio": _record()}), path)

        content = path.read_text()

        assert content.startswith("version: 1\n")
        assert "installedVersion: 1.20.3" in content
        assert "chartVersion: istio-1.20.3" in content
        assert "appliedAt:" in content

    def test_save_leaves_no_temporary_files(self, tmp_path: Path) -> None:
        path = tmp_path / "meshstack.lock"

        save_lock_file(LockFile(records={"istio": _record()}), path)

        assert sorted(p.name for p in tmp_path.iterdir()) == ["meshstack.lock"]

    def test_failed_rename_keeps_previous_file(self, tmp_path: Path) -> None:
        path = tmp_path / "meshstack.lock"
        save_lock_file(LockFile(records={"istio": _record()}), path)
        before = path.read_text()

        with patch("src.reconcile.lock_store.os.replace", side_effect=OSError("disk")):
            with pytest.raises(OSError):
                save_lock_file(LockFile(), path)

        assert path.read_text() == before
        assert sorted(p.name for p in tmp_path.iterdir()) == ["meshstack.lock"]


class TestCorruption:
    """Corrupt or unknown lock files fail closed."""

    def test_invalid_yaml(self) -> None:
        with pytest.raises(LockCorruption):
            parse_lock_file("version: 1\ncomponents: {istio: [\n")

    def test_non_mapping(self) -> None:
        with pytest.raises(LockCorruption):
            parse_lock_file("- istio\n")

    def test_missing_version(self) -> None:
        with pytest.raises(LockCorruption) as excinfo:
            parse_lock_file("components: {}\n")

        assert "unknown format version" in excinfo.value.message

    def test_unknown_version(self) -> None:
        with pytest.raises(LockCorruption):
            parse_lock_file("version: 2\ncomponents: {}\n")

    def test_duplicate_component_keys(self) -> None:
        content = """
version: 1
components:
  istio:
    installedVersion: 1.20.3
    chartVersion: istio-1.20.3
    namespace: istio-system
    profile: dev
    appliedAt: '2026-01-01T12:00:00Z'
  istio:
    installedVersion: 1.19.0
    chartVersion: istio-1.19.0
    namespace: istio-system
    profile: dev
    appliedAt: '2026-01-01T12:00:00Z'
"""
        with pytest.raises(LockCorruption) as excinfo:
            parse_lock_file(content)

        assert "Duplicate key 'istio'" in excinfo.value.message

    def test_invalid_record(self) -> None:
        with pytest.raises(LockCorruption) as excinfo:
            parse_lock_file("version: 1\ncomponents:\n  istio:\n    namespace: x\n")

        assert "istio" in excinfo.value.message

    def test_empty_components_is_valid(self) -> None:
        assert len(parse_lock_file("version: 1\ncomponents:\n")) == 0


class TestLockStore:
    """Tests for the LockStore object."""

    def test_mutations_are_in_memory_until_save(self, tmp_path: Path) -> None:
        store = LockStore(tmp_path / "meshstack.lock")

        store.set("istio", _record())

        assert store.get("istio") == _record()
        assert not store.path.exists()

        store.save()

        assert LockStore(store.path).load().get("istio") == _record()

    def test_remove(self, tmp_path: Path) -> None:
        store = LockStore(tmp_path / "meshstack.lock")
        store.set("istio", _record())

        removed = store.remove("istio")

        assert removed == _record()
        assert store.get("istio") is None
        assert store.remove("istio") is None

    def test_set_rejects_mismatched_name(self, tmp_path: Path) -> None:
        store = LockStore(tmp_path / "meshstack.lock")

        with pytest.raises(ValueError):
            store.set("grafana", _record("istio"))

    def test_acquire_is_reentrant(self, tmp_path: Path) -> None:
        store = LockStore(tmp_path / "meshstack.lock")

        with store.acquire():
            with store.acquire():
                store.set("istio", _record())
                store.save()
            assert store.is_held

        assert not store.is_held

    def test_second_store_is_busy_while_held(self, tmp_path: Path) -> None:
        path = tmp_path / "meshstack.lock"
        first = LockStore(path)
        second = LockStore(path)

        with first.acquire():
            with pytest.raises(ResourceBusy):
                with second.acquire():
                    pass
            with pytest.raises(ResourceBusy):
                second.save()

        with second.acquire():
            assert second.is_held

    def test_guard_file_sits_next_to_lock_file(self, tmp_path: Path) -> None:
        store = LockStore(tmp_path / "meshstack.lock")

        with store.acquire():
            assert os.path.exists(tmp_path / "meshstack.lock.lck")
