# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Template-driven rendering of the generated trees into files."""

from seqtdd.rendering.renderer import (
    DECISION_ROLE,
    ERRORS_ROLE,
    IMPLEMENTATION_ROLE,
    INTERFACE_ROLE,
    SCAFFOLD_ROLE,
    TEST_ROLE,
    Block,
    RenderedFile,
    render_files,
)

__all__ = [
    "Block",
    "RenderedFile",
    "render_files",
    "TEST_ROLE",
    "DECISION_ROLE",
    "IMPLEMENTATION_ROLE",
    "INTERFACE_ROLE",
    "SCAFFOLD_ROLE",
    "ERRORS_ROLE",
]
