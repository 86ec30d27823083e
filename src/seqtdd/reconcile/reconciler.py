# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Reconciliation of rendered files with the target tree.

Planning reads every target first and decides, per file, whether it is
created or extended. Existing content is never rewritten: missing
declarations are appended after it, and declarations whose content differs
are reported rather than replaced. Committing writes the plan sequentially
and restores every touched file when a write fails.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass, field

from seqtdd.reconcile.filesystem import FileSystemAdapter
from seqtdd.rendering.renderer import Block, RenderedFile
from seqtdd.workspace.profile import LanguageProfile, default_profile

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############


class FileMode(enum.Enum):
    CREATE = "create"
    UPDATE = "update"


class ReconcileErrorKind(enum.Enum):
    EXISTING_DOMAIN_TYPE_CONFLICT = "existing-domain-type-conflict"
    UNREADABLE_TARGET = "unreadable-target"
    WRITE_FAILED = "write-failed"


class ReconcileError(Exception):
    """Raised when the rendered files cannot be placed in the target tree."""

    def __init__(
        self, kind: ReconcileErrorKind, path: str, message: str, unrestored: list[str] | None = None
    ) -> None:
        self.kind = kind
        self.path = path
        self.message = message
        self.unrestored = unrestored or []
        super().__init__(f"{path}: {kind.value}: {message}")


@dataclass(frozen=True)
class ReconcileWarning:
    path: str
    message: str


@dataclass(frozen=True)
class FileOperation:
    """One planned write.

    Attributes:
        path: Target path relative to the target root.
        mode: CREATE for a new file, UPDATE for an append to an existing one.
        content: The complete content after the write.
        previous: The content before the write; ``None`` for CREATE.
        blocks: The blocks this operation adds.
    """

    path: str
    mode: FileMode
    content: str
    previous: str | None = None
    blocks: tuple[Block, ...] = ()


@dataclass
class ReconcilePlan:
    operations: list[FileOperation] = field(default_factory=list)
    warnings: list[ReconcileWarning] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)


def plan_operations(
    files: list[RenderedFile],
    fs: FileSystemAdapter,
    profile: LanguageProfile | None = None,
) -> ReconcilePlan:
    """Plan the writes that bring the target tree up to date with *files*.

    An absent path becomes a CREATE with the full content. A present path
    becomes an UPDATE that appends the blocks whose declaration is missing,
    in rendering order, after the existing content. A present path that
    already declares every block yields no operation. A block that is
    declared but whose rendered text does not appear in the file is kept as
    it is and reported as a warning.

    Args:
        files: Rendered files.
        fs: Access to the target tree.
        profile: Supplies the declaration patterns; the built-in profile
            when omitted.

    Returns:
        The ReconcilePlan. Nothing is written.

    Raises:
        ReconcileError: UNREADABLE_TARGET when an existing file cannot be
            read, EXISTING_DOMAIN_TYPE_CONFLICT when an existing file declares
            a concrete type where an abstract one is rendered.
    """
    profile = profile or default_profile()
    plan = ReconcilePlan()
    conflicts: list[ReconcileWarning] = []

    for file in files:
        if not fs.exists(file.path):
            plan.operations.append(
                FileOperation(path=file.path, mode=FileMode.CREATE, content=file.content, blocks=tuple(file.blocks))
            )
            continue

        try:
            existing = fs.read_text(file.path)
        except OSError as exc:
            raise ReconcileError(ReconcileErrorKind.UNREADABLE_TARGET, file.path, str(exc)) from exc

        for block in file.blocks:
            if block.abstract and _is_concrete(block.name, existing, profile):
                conflict = ReconcileWarning(
                    file.path, f"'{block.name}' is declared as a concrete type but is expected to be abstract"
                )
                logger.warning("%s: %s", conflict.path, conflict.message)
                conflicts.append(conflict)

        missing = [b for b in file.blocks if b.kind != "header" and not _is_declared(b, existing, profile)]
        for block in file.blocks:
            if block.kind not in _UNCOMPARED_KINDS and block not in missing and _is_stale(block, existing):
                stale = ReconcileWarning(
                    file.path, f"'{block.name}' is already declared with different content and is left unchanged"
                )
                logger.warning("%s: %s", stale.path, stale.message)
                plan.warnings.append(stale)
        if not missing:
            plan.unchanged.append(file.path)
            continue
        separator = "" if not existing or existing.endswith("\n") else "\n"
        plan.operations.append(
            FileOperation(
                path=file.path,
                mode=FileMode.UPDATE,
                content=existing + separator + "".join(b.text for b in missing),
                previous=existing,
                blocks=tuple(missing),
            )
        )

    plan.warnings.extend(conflicts)
    if conflicts:
        raise ReconcileError(
            ReconcileErrorKind.EXISTING_DOMAIN_TYPE_CONFLICT,
            conflicts[0].path,
            "; ".join(c.message for c in conflicts),
        )
    logger.debug(
        "Planned %s operations, %s files unchanged",
        len(plan.operations),
        len(plan.unchanged),
    )
    return plan


def commit(plan: ReconcilePlan, fs: FileSystemAdapter) -> list[str]:
    """Apply *plan*, one file at a time.

    When a write fails, every file touched so far (the failed one included)
    is restored to its previous content, or removed when the plan created
    it.

    Returns:
        The written paths, in order.

    Raises:
        ReconcileError: WRITE_FAILED after the rollback, naming the paths
            the rollback could not restore.
    """
    touched: list[FileOperation] = []
    for op in plan.operations:
        touched.append(op)
        try:
            fs.write_text(op.path, op.content)
        except OSError as exc:
            unrestored = _rollback(touched, fs)
            message = str(exc)
            if unrestored:
                message += f"; could not restore {', '.join(unrestored)}"
            raise ReconcileError(ReconcileErrorKind.WRITE_FAILED, op.path, message, unrestored) from exc
        logger.info("%s %s", op.mode.value, op.path)
    return [op.path for op in touched]


# ################
# Implementation
# ################


# Blocks whose text may legitimately be spread over or merged into other lines.
_UNCOMPARED_KINDS = frozenset({"header", "preamble", "import"})


def _pattern(profile: LanguageProfile, kind: str, name: str) -> re.Pattern[str]:
    return re.compile(profile.declarations[kind].replace("{name}", re.escape(name)), re.MULTILINE)


def _is_declared(block: Block, existing: str, profile: LanguageProfile) -> bool:
    if block.kind not in profile.declarations:
        return block.text in existing
    return _pattern(profile, block.kind, block.name).search(existing) is not None


def _is_stale(block: Block, existing: str) -> bool:
    return block.text.strip() not in existing


def _is_concrete(name: str, existing: str, profile: LanguageProfile) -> bool:
    concrete = _pattern(profile, "concrete-type", name).search(existing)
    abstract = _pattern(profile, "abstract-type", name).search(existing)
    return concrete is not None and abstract is None


def _rollback(touched: list[FileOperation], fs: FileSystemAdapter) -> list[str]:
    unrestored: list[str] = []
    for op in reversed(touched):
        try:
            if op.previous is None:
                fs.remove(op.path)
            else:
                fs.write_text(op.path, op.previous)
        except OSError as exc:
            logger.error("Could not restore %s: %s", op.path, exc)
            unrestored.append(op.path)
        else:
            logger.info("Restored %s", op.path)
    return unrestored
