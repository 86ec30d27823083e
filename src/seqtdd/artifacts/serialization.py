# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Serialization and deserialization of test-artifact trees.

A persisted tree lets the implementation stage run in a separate process
from the test stage. The format is versioned so future schema changes can
be detected.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import ValidationError

from seqtdd.artifacts.tree import TestArtifactTree

# ###############
# Public Interface
# ###############

TREE_FORMAT_VERSION = "1"


class ArtifactError(Exception):
    """Raised when a persisted tree cannot be read back."""


def serialize_tree(tree: TestArtifactTree) -> str:
    """Serialize a TestArtifactTree to a compact JSON string."""
    return json.dumps(
        {"v": TREE_FORMAT_VERSION, "tree": tree.model_dump(mode="json")},
        separators=(",", ":"),
    )


def deserialize_tree(data: str) -> TestArtifactTree:
    """Deserialize a TestArtifactTree from a JSON string.

    Args:
        data: JSON string produced by :func:`serialize_tree`.

    Returns:
        The reconstructed :class:`TestArtifactTree`.

    Raises:
        ArtifactError: If the data is not valid JSON, the format version is
            not recognised, or the tree does not match the schema.
    """
    try:
        obj = json.loads(data)
    except json.JSONDecodeError as exc:
        raise ArtifactError(f"Invalid tree artifact: {exc}") from exc
    if not isinstance(obj, dict):
        raise ArtifactError("Invalid tree artifact: expected a JSON object")
    version = obj.get("v")
    if version != TREE_FORMAT_VERSION:
        raise ArtifactError(f"Unsupported tree format version: {version!r}")
    try:
        return TestArtifactTree.model_validate(obj.get("tree"))
    except ValidationError as exc:
        raise ArtifactError(f"Invalid tree artifact: {exc}") from exc


def write_tree(tree: TestArtifactTree, path: Path) -> None:
    """Write a tree artifact to *path*, creating parent directories as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(serialize_tree(tree), encoding="utf-8")


def read_tree(path: Path) -> TestArtifactTree:
    """Read and deserialize a tree artifact from *path*."""
    return deserialize_tree(path.read_text(encoding="utf-8"))
