# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Semantic model construction and participant classification."""

from seqtdd.compiler.classifier import (
    Classification,
    ClassificationError,
    ClassificationWarning,
    LeafKind,
    ParticipantClass,
    ParticipantRole,
    classify,
)
from seqtdd.compiler.semantic_analysis import MAX_BRANCH_DEPTH, ModelError, ModelErrorKind, build_model, root_name

__all__ = [
    "build_model",
    "root_name",
    "ModelError",
    "ModelErrorKind",
    "MAX_BRANCH_DEPTH",
    "classify",
    "Classification",
    "ClassificationError",
    "ClassificationWarning",
    "LeafKind",
    "ParticipantClass",
    "ParticipantRole",
]
