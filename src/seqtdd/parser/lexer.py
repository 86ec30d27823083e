# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Line scanner for interaction diagrams.

Converts raw diagram text into a sequence of classified statements for
subsequent parsing. One non-blank line yields at most one statement.
"""

import enum
import re
from dataclasses import dataclass

from seqtdd.parser.errors import ParseError, ParseIssue

# ###############
# Public Interface
# ###############


class StatementKind(enum.Enum):
    """All statement kinds produced by the scanner."""

    ARROW = "arrow"
    PARTICIPANT = "participant"
    FRAGMENT = "fragment"
    ELSE = "else"
    END = "end"


@dataclass(frozen=True)
class Statement:
    """A classified diagram line.

    Attributes:
        kind: The kind of statement.
        line: 1-based line number in the source text.
        text: The stripped source line.
        source: Arrow source participant, ``"["`` for a found message.
        target: Arrow target participant, ``"]"`` for a lost message.
        glyph: The arrow glyph as written (``->``, ``-->``, ``->>``, ``-->>``).
        label: Arrow label after the colon, ``None`` when the colon is missing.
        keyword: Fragment keyword (``loop``, ``alt``, ``par`` ...) or the
            participant declaration keyword.
        name: Declared participant name.
    """

    kind: StatementKind
    line: int
    text: str
    source: str = ""
    target: str = ""
    glyph: str = ""
    label: str | None = None
    keyword: str = ""
    name: str = ""


FRAGMENT_KEYWORDS: frozenset[str] = frozenset(
    {"loop", "alt", "opt", "par", "critical", "break", "group", "neg", "ref", "rect", "region", "seq", "strict"}
)


def tokenize(source: str) -> list[Statement]:
    """Scan diagram text into statements.

    Comments (``'`` and ``//`` lines), blank lines, framing lines
    (``@startuml``, ``@enduml``, ``sequenceDiagram`` ...), activation lines and
    notes are consumed and not included in the output.

    Args:
        source: The full diagram text.

    Returns:
        A list of Statement objects in source order.

    Raises:
        ParseError: On a line that matches no supported statement form.
    """
    return _Scanner(source).scan()


# ################
# Implementation
# ################

_IGNORED_PREFIXES = (
    "@startuml",
    "@enduml",
    "sequencediagram",
    "autonumber",
    "title ",
    "skinparam",
    "hide ",
    "show ",
    "activate ",
    "deactivate ",
    "destroy ",
    "create ",
    "==",
    "...",
    "|||",
)

_PARTICIPANT_RE = re.compile(
    r"^(?P<kw>participant|actor|boundary|control|entity|database|collections|queue)\s+"
    r'(?:"(?P<quoted>[^"]+)"\s+as\s+(?P<alias>\w+)|(?P<name>\w+)(?:\s+as\s+.+)?)'
    r"(?:\s+order\s+\d+)?\s*$",
    re.IGNORECASE,
)
_ARROW_RE = re.compile(
    r"^(?P<src>\[|\w+)\s*(?P<glyph>-{1,2}>{1,2})[+-]?\s*(?P<dst>\]|\w+)\s*(?::\s*(?P<label>.*))?$"
)
_REVERSE_RESULT_RE = re.compile(r"^\[\s*(?P<glyph><-{1,2})\s*(?P<src>\w+)\s*(?::\s*(?P<label>.*))?$")
_FRAGMENT_RE = re.compile(r"^(?P<kw>[a-z]+)\b\s*(?P<label>.*)$", re.IGNORECASE)
_NOTE_START_RE = re.compile(r"^(?:note|hnote|rnote)\b", re.IGNORECASE)
_NOTE_END_RE = re.compile(r"^end\s*(?:note|hnote|rnote)$", re.IGNORECASE)


class _Scanner:
    """Internal line scanner state."""

    def __init__(self, source: str) -> None:
        self._lines = source.splitlines()
        self._statements: list[Statement] = []
        self._in_note = False

    def scan(self) -> list[Statement]:
        """Scan every line and return the collected statements."""
        for index, raw in enumerate(self._lines, start=1):
            text = raw.strip()
            if self._in_note:
                if _NOTE_END_RE.match(text):
                    self._in_note = False
                continue
            if self._is_ignored(text):
                continue
            self._statements.append(self._scan_line(text, index))
        return self._statements

    def _is_ignored(self, text: str) -> bool:
        """Return True for blank, comment, framing, activation and note lines."""
        if not text or text.startswith("'") or text.startswith("//") or text.startswith("%%"):
            return True
        lowered = text.lower()
        if lowered.startswith(_IGNORED_PREFIXES):
            return True
        if _NOTE_START_RE.match(text):
            # A note without an inline ':' text opens a block that runs to 'end note'.
            if ":" not in text:
                self._in_note = True
            return True
        return False

    def _scan_line(self, text: str, line: int) -> Statement:
        """Classify one meaningful line."""
        match = _ARROW_RE.match(text)
        if match:
            return Statement(
                kind=StatementKind.ARROW,
                line=line,
                text=text,
                source=match.group("src"),
                target=match.group("dst"),
                glyph=match.group("glyph"),
                label=_strip_label(match.group("label")),
            )

        match = _REVERSE_RESULT_RE.match(text)
        if match:
            # '[<-- A : value' is the reversed spelling of 'A -->] : value'.
            return Statement(
                kind=StatementKind.ARROW,
                line=line,
                text=text,
                source=match.group("src"),
                target="]",
                glyph=match.group("glyph")[1:] + ">",
                label=_strip_label(match.group("label")),
            )

        match = _PARTICIPANT_RE.match(text)
        if match:
            name = match.group("alias") or match.group("name")
            return Statement(
                kind=StatementKind.PARTICIPANT,
                line=line,
                text=text,
                keyword=match.group("kw").lower(),
                name=name,
            )

        match = _FRAGMENT_RE.match(text)
        if match:
            keyword = match.group("kw").lower()
            label = match.group("label").strip()
            if keyword == "end" and not label:
                return Statement(kind=StatementKind.END, line=line, text=text, keyword=keyword)
            if keyword == "else":
                return Statement(kind=StatementKind.ELSE, line=line, text=text, keyword=keyword, label=label)
            if keyword in FRAGMENT_KEYWORDS:
                return Statement(kind=StatementKind.FRAGMENT, line=line, text=text, keyword=keyword, label=label)

        raise ParseError(
            f"Cannot interpret {text!r}",
            line,
            ParseIssue.MALFORMED_LINE,
            "use 'A -> B : method(args)', 'B --> A : value', 'loop', 'alt', 'else' or 'end'",
        )


def _strip_label(label: str | None) -> str | None:
    return label.strip() if label is not None else None
