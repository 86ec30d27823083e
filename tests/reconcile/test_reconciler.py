# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for reconciling rendered files with the target tree."""

import os
from pathlib import Path

import pytest

from seqtdd.reconcile import filesystem
from seqtdd.reconcile.filesystem import LocalFileSystem
from seqtdd.reconcile.reconciler import (
    FileMode,
    ReconcileError,
    ReconcileErrorKind,
    commit,
    plan_operations,
)
from seqtdd.rendering.renderer import Block, RenderedFile

# ###############
# Test Helpers
# ###############


class MemoryFileSystem:
    """In-memory FileSystemAdapter; writes to *failing* and removals of *undeletable* paths raise OSError."""

    def __init__(self, files: dict[str, str] | None = None, failing: set[str] | None = None) -> None:
        self.files = dict(files or {})
        self.failing = failing or set()
        self.unreadable: set[str] = set()
        self.undeletable: set[str] = set()

    def exists(self, path: str) -> bool:
        return path in self.files

    def read_text(self, path: str) -> str:
        if path in self.unreadable:
            raise PermissionError(path)
        return self.files[path]

    def write_text(self, path: str, content: str) -> None:
        if path in self.failing:
            raise OSError(f"disk full: {path}")
        self.files[path] = content

    def remove(self, path: str) -> None:
        if path in self.undeletable:
            raise OSError(f"read-only: {path}")
        self.files.pop(path, None)


def _service_file() -> RenderedFile:
    return RenderedFile(
        path="src/app/order_service.py",
        role="implementation",
        blocks=[
            Block("header", "header", '"""OrderService implementation."""\n'),
            Block("class", "OrderService", "\n\nclass OrderService:\n    def __init__(self):\n        pass\n"),
            Block("method", "cancel", "\n    def cancel(self, id):\n        pass\n"),
        ],
    )


def _port_file() -> RenderedFile:
    return RenderedFile(
        path="src/app/order_repository.py",
        role="interface",
        blocks=[
            Block("header", "header", "from abc import ABC, abstractmethod\n"),
            Block("interface", "OrderRepository", "\n\nclass OrderRepository(ABC):\n    pass\n", abstract=True),
        ],
    )


# ###############
# Planning
# ###############


class TestPlanning:
    def test_absent_file_is_created(self) -> None:
        plan = plan_operations([_service_file()], MemoryFileSystem())
        [op] = plan.operations
        assert op.mode == FileMode.CREATE
        assert op.previous is None
        assert op.content == _service_file().content

    def test_missing_declaration_is_appended(self) -> None:
        existing = '"""Hand-written."""\n\n\nclass OrderService:\n    def __init__(self):\n        self.x = 1\n'
        fs = MemoryFileSystem({"src/app/order_service.py": existing})
        [op] = plan_operations([_service_file()], fs).operations
        assert op.mode == FileMode.UPDATE
        assert op.content.startswith(existing)
        assert op.content.endswith("    def cancel(self, id):\n        pass\n")
        assert [b.name for b in op.blocks] == ["cancel"]

    def test_file_without_trailing_newline_gets_separator(self) -> None:
        fs = MemoryFileSystem({"src/app/order_service.py": "class OrderService:\n    x = 1"})
        [op] = plan_operations([_service_file()], fs).operations
        assert op.content.startswith("class OrderService:\n    x = 1\n")

    def test_complete_file_is_unchanged(self) -> None:
        fs = MemoryFileSystem({"src/app/order_service.py": _service_file().content})
        plan = plan_operations([_service_file()], fs)
        assert plan.operations == []
        assert plan.unchanged == ["src/app/order_service.py"]

    def test_concrete_type_where_port_expected_is_a_conflict(self) -> None:
        fs = MemoryFileSystem({"src/app/order_repository.py": "class OrderRepository:\n    pass\n"})
        with pytest.raises(ReconcileError) as exc_info:
            plan_operations([_service_file(), _port_file()], fs)
        assert exc_info.value.kind == ReconcileErrorKind.EXISTING_DOMAIN_TYPE_CONFLICT
        assert exc_info.value.path == "src/app/order_repository.py"
        assert "OrderRepository" in str(exc_info.value)

    def test_existing_abstract_port_is_not_a_conflict(self) -> None:
        existing = "from abc import ABC\n\n\nclass OrderRepository(ABC):\n    pass\n"
        plan = plan_operations([_port_file()], MemoryFileSystem({"src/app/order_repository.py": existing}))
        assert plan.unchanged == ["src/app/order_repository.py"]

    def test_unreadable_target(self) -> None:
        fs = MemoryFileSystem({"src/app/order_service.py": ""})
        fs.unreadable.add("src/app/order_service.py")
        with pytest.raises(ReconcileError) as exc_info:
            plan_operations([_service_file()], fs)
        assert exc_info.value.kind == ReconcileErrorKind.UNREADABLE_TARGET

    def test_changed_declaration_is_kept_and_reported(self) -> None:
        existing = (
            "class OrderService:\n    def __init__(self):\n        self.x = 1\n"
            "\n    def cancel(self, id):\n        return id\n"
        )
        plan = plan_operations([_service_file()], MemoryFileSystem({"src/app/order_service.py": existing}))
        assert plan.unchanged == ["src/app/order_service.py"]
        assert [w.message for w in plan.warnings] == [
            "'OrderService' is already declared with different content and is left unchanged",
            "'cancel' is already declared with different content and is left unchanged",
        ]

    def test_identical_declarations_raise_no_warning(self) -> None:
        fs = MemoryFileSystem({"src/app/order_service.py": _service_file().content})
        plan = plan_operations([_service_file()], fs)
        assert plan.warnings == []

    def test_planning_writes_nothing(self) -> None:
        fs = MemoryFileSystem()
        plan_operations([_service_file(), _port_file()], fs)
        assert fs.files == {}


# ###############
# Commit
# ###############


class TestCommit:
    def test_commit_writes_every_operation(self) -> None:
        fs = MemoryFileSystem()
        plan = plan_operations([_service_file(), _port_file()], fs)
        written = commit(plan, fs)
        assert written == ["src/app/order_service.py", "src/app/order_repository.py"]
        assert fs.files["src/app/order_service.py"] == _service_file().content

    def test_second_plan_after_commit_is_empty(self) -> None:
        fs = MemoryFileSystem()
        commit(plan_operations([_service_file(), _port_file()], fs), fs)
        plan = plan_operations([_service_file(), _port_file()], fs)
        assert plan.operations == []
        assert commit(plan, fs) == []

    def test_failed_write_rolls_back_touched_files(self) -> None:
        existing = "class OrderService:\n    pass\n"
        fs = MemoryFileSystem(
            {"src/app/order_service.py": existing},
            failing={"src/app/order_repository.py"},
        )
        plan = plan_operations([_service_file(), _port_file()], fs)
        with pytest.raises(ReconcileError) as exc_info:
            commit(plan, fs)
        assert exc_info.value.kind == ReconcileErrorKind.WRITE_FAILED
        assert exc_info.value.path == "src/app/order_repository.py"
        assert fs.files == {"src/app/order_service.py": existing}

    def test_failed_rollback_names_unrestored_paths(self) -> None:
        fs = MemoryFileSystem(failing={"src/app/order_repository.py"})
        plan = plan_operations([_service_file(), _port_file()], fs)
        fs.undeletable.add("src/app/order_service.py")
        with pytest.raises(ReconcileError) as exc_info:
            commit(plan, fs)
        assert exc_info.value.unrestored == ["src/app/order_service.py"]
        assert "could not restore src/app/order_service.py" in str(exc_info.value)


# ###############
# Local File System
# ###############


class TestLocalFileSystem:
    def test_write_creates_parent_directories(self, tmp_path: Path) -> None:
        fs = LocalFileSystem(tmp_path)
        fs.write_text("src/app/errors.py", "x = 1\n")
        assert (tmp_path / "src" / "app" / "errors.py").read_text(encoding="utf-8") == "x = 1\n"
        assert fs.exists("src/app/errors.py")

    def test_remove_is_idempotent(self, tmp_path: Path) -> None:
        fs = LocalFileSystem(tmp_path)
        fs.write_text("a.py", "")
        fs.remove("a.py")
        fs.remove("a.py")
        assert not fs.exists("a.py")

    def test_write_replaces_existing_content(self, tmp_path: Path) -> None:
        fs = LocalFileSystem(tmp_path)
        fs.write_text("a.py", "old\n")
        fs.write_text("a.py", "new\n")
        assert (tmp_path / "a.py").read_text(encoding="utf-8") == "new\n"
        assert [p.name for p in tmp_path.iterdir()] == ["a.py"]

    def test_failed_write_keeps_previous_content(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        fs = LocalFileSystem(tmp_path)
        fs.write_text("a.py", "old\n")

        def fail(src: str, dst: object) -> None:
            raise OSError("disk full")

        monkeypatch.setattr(filesystem.os, "replace", fail)
        with pytest.raises(OSError, match="disk full"):
            fs.write_text("a.py", "new\n")
        assert (tmp_path / "a.py").read_text(encoding="utf-8") == "old\n"
        assert [p.name for p in tmp_path.iterdir()] == ["a.py"]

    def test_write_keeps_file_mode(self, tmp_path: Path) -> None:
        fs = LocalFileSystem(tmp_path)
        fs.write_text("run.py", "x = 1\n")
        os.chmod(tmp_path / "run.py", 0o644)
        fs.write_text("run.py", "x = 2\n")
        assert (tmp_path / "run.py").stat().st_mode & 0o777 == 0o644
