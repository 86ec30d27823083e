# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Parse failure type shared by the line scanner and the parser."""

import enum

# ###############
# Public Interface
# ###############


class ParseIssue(enum.Enum):
    """Ambiguity class of a parse failure."""

    MALFORMED_LINE = "malformed line"
    MISSING_METHOD_LABEL = "missing method label"
    AMBIGUOUS_ARROW = "ambiguous arrow"
    UNSUPPORTED_FRAGMENT = "unrecognized fragment keyword"
    UNEXPECTED_BLOCK_KEYWORD = "unexpected block keyword"
    UNTERMINATED_BLOCK = "unterminated block"
    INACTIVE_PARTICIPANT = "inactive participant"


class ParseError(Exception):
    """Raised when a diagram line is malformed, ambiguous or unsupported.

    Parse errors are always fatal. The offending construct is never partially
    interpreted.

    Attributes:
        line: 1-based line number of the offending line.
        issue: The ambiguity class.
        suggestion: A supported rewrite of the construct, if one exists.
    """

    def __init__(self, message: str, line: int, issue: ParseIssue, suggestion: str | None = None) -> None:
        text = f"Line {line}: {issue.value}: {message}"
        if suggestion:
            text += f" (suggestion: {suggestion})"
        super().__init__(text)
        self.line = line
        self.issue = issue
        self.suggestion = suggestion
