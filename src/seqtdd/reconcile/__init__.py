# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Append-only placement of rendered files into the target tree."""

from seqtdd.reconcile.filesystem import FileSystemAdapter, LocalFileSystem
from seqtdd.reconcile.reconciler import (
    FileMode,
    FileOperation,
    ReconcileError,
    ReconcileErrorKind,
    ReconcilePlan,
    ReconcileWarning,
    commit,
    plan_operations,
)

__all__ = [
    "FileSystemAdapter",
    "LocalFileSystem",
    "FileMode",
    "FileOperation",
    "ReconcileError",
    "ReconcileErrorKind",
    "ReconcilePlan",
    "ReconcileWarning",
    "commit",
    "plan_operations",
]
