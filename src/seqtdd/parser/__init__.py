# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Line scanner and parser for interaction diagrams."""

from seqtdd.parser.errors import ParseError, ParseIssue
from seqtdd.parser.parser import parse

__all__ = [
    "parse",
    "ParseError",
    "ParseIssue",
]
