# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Synthesis of interaction tests from a classified semantic model."""

from seqtdd.synthesis.verification import complete_decision_table, synthesize_tests

__all__ = [
    "synthesize_tests",
    "complete_decision_table",
]
