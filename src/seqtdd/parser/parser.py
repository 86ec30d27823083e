# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Statement parser for interaction diagrams.

Converts the statement stream produced by the scanner into typed diagram
elements. Arrows that share a glyph are told apart here, once, by label shape
and direction; later stages never re-interpret them.
"""

import re
from dataclasses import dataclass

from seqtdd.model.elements import (
    AltStart,
    Argument,
    BlockEnd,
    CallElement,
    DiagramElement,
    ElseBranch,
    EntryCall,
    LoopStart,
    ParsedDiagram,
    ParticipantDecl,
    ResultElement,
    ReturnElement,
    ThrowElement,
)
from seqtdd.parser.errors import ParseError, ParseIssue
from seqtdd.parser.lexer import Statement, StatementKind, tokenize

# ###############
# Public Interface
# ###############


def parse(source: str) -> ParsedDiagram:
    """Parse diagram text into an ordered list of typed elements.

    Args:
        source: The full diagram text.

    Returns:
        A ParsedDiagram with elements in source order.

    Raises:
        ParseError: If a line is malformed, an arrow is ambiguous, a fragment
            keyword is unsupported, or a block is left open.
    """
    return _Parser(tokenize(source)).parse()


# ################
# Implementation
# ################

_CALL_LABEL_RE = re.compile(r"^(?P<method>[A-Za-z_]\w*)?\s*\((?P<args>.*)\)\s*$")
_VALUE_LABEL_RE = re.compile(r"^(?P<value>[A-Za-z_]\w*)\s*(?::\s*(?P<type>[A-Za-z_][\w\[\]<>, .]*?))?\s*$")
_THROW_LABEL_RE = re.compile(
    r'^<<\s*throws\s*>>\s*(?P<type>[A-Za-z_][\w.]*)\s*(?:\(\s*(?:"(?P<message>(?:[^"\\]|\\.)*)")?\s*\))?\s*$'
)
_NAME_ARGUMENT_RE = re.compile(r"^(?P<name>[A-Za-z_][\w.]*)(?:\s*:\s*[A-Za-z_][\w\[\]<>, .]*)?$")
_LITERAL_ARGUMENT_RE = re.compile(r"""^(?:"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*'|-?\d+(?:\.\d+)?)$""")
_LITERAL_WORDS = frozenset({"true", "false", "null", "none", "nil"})

_FRAGMENT_REWRITES: dict[str, str] = {
    "opt": "rewrite as 'alt [condition]' ... 'else' ... 'end'",
    "par": "write the calls as a plain sequence",
    "break": "model the early exit as an 'alt' branch ending in a <<throws>> self-arrow",
    "critical": "remove the fragment and keep its arrows in sequence",
    "group": "remove the fragment and keep its arrows in sequence",
    "neg": "remove the fragment; invalid interactions cannot be generated",
    "ref": "inline the referenced interaction",
}


@dataclass
class _Activation:
    """An open call whose callee is currently executing."""

    call_id: int
    caller: str
    callee: str


@dataclass
class _OpenBlock:
    keyword: str
    line: int


class _Parser:
    """Stateful parser over scanned statements."""

    def __init__(self, statements: list[Statement]) -> None:
        self._statements = statements
        self._elements: list[DiagramElement] = []
        self._activations: list[_Activation] = []
        self._blocks: list[_OpenBlock] = []
        self._root: str | None = None
        self._next_call_id = 0

    def parse(self) -> ParsedDiagram:
        """Parse every statement and return the diagram."""
        for stmt in self._statements:
            if stmt.kind == StatementKind.PARTICIPANT:
                self._note_participant(stmt.name)
                self._elements.append(ParticipantDecl(line=stmt.line, name=stmt.name))
            elif stmt.kind == StatementKind.ARROW:
                self._parse_arrow(stmt)
            elif stmt.kind == StatementKind.FRAGMENT:
                self._parse_fragment(stmt)
            elif stmt.kind == StatementKind.ELSE:
                self._parse_else(stmt)
            elif stmt.kind == StatementKind.END:
                self._parse_end(stmt)
        if self._blocks:
            block = self._blocks[-1]
            raise ParseError(
                f"'{block.keyword}' block opened on line {block.line} is never closed",
                block.line,
                ParseIssue.UNTERMINATED_BLOCK,
                "add a matching 'end' line",
            )
        return ParsedDiagram(elements=self._elements)

    # ------------------------------------------------------------------
    # Arrows
    # ------------------------------------------------------------------

    def _parse_arrow(self, stmt: Statement) -> None:
        """Dispatch an arrow to the entry, result, throw, call or return handler."""
        label = stmt.label or ""
        if stmt.source == "[":
            self._parse_entry(stmt, label)
            return

        self._note_participant(stmt.source)
        parent = self._activate(stmt.source, stmt.line)

        if stmt.target == "]":
            self._parse_result(stmt, label, parent)
            return

        self._note_participant(stmt.target)
        if not label:
            raise ParseError(
                f"Arrow {stmt.source} {stmt.glyph} {stmt.target} has no label",
                stmt.line,
                ParseIssue.MISSING_METHOD_LABEL,
                f"label the arrow, e.g. '{stmt.source} {stmt.glyph} {stmt.target} : method(args)'",
            )
        if label.startswith("<<"):
            self._parse_throw(stmt, label, parent)
        elif "(" in label:
            self._parse_call(stmt, label, parent)
        else:
            self._parse_return(stmt, label)

    def _parse_entry(self, stmt: Statement, label: str) -> None:
        """Parse: [-> Target : method(args)]"""
        if any(isinstance(e, (EntryCall, CallElement)) for e in self._elements):
            raise ParseError(
                "An entry message must precede every other arrow",
                stmt.line,
                ParseIssue.MALFORMED_LINE,
                "move the '[->' line to the top of the diagram",
            )
        match = _CALL_LABEL_RE.match(label)
        if match is None or not match.group("method"):
            raise ParseError(
                f"Entry message label {label!r} is not a method call",
                stmt.line,
                ParseIssue.MISSING_METHOD_LABEL,
                f"write '[-> {stmt.target} : method(args)'",
            )
        self._root = stmt.target
        self._elements.append(
            EntryCall(
                line=stmt.line,
                target=stmt.target,
                method=match.group("method"),
                arguments=_parse_arguments(match.group("args"), stmt.line),
            )
        )

    def _parse_result(self, stmt: Statement, label: str, parent: int | None) -> None:
        """Parse: Source -->] : value [: Type]"""
        match = _VALUE_LABEL_RE.match(label)
        if match is None:
            raise ParseError(
                f"Result label {label!r} is not a value name",
                stmt.line,
                ParseIssue.AMBIGUOUS_ARROW,
                f"write '{stmt.source} -->] : value' or 'value : Type'",
            )
        self._elements.append(
            ResultElement(
                line=stmt.line,
                parent_call=parent,
                source=stmt.source,
                value=match.group("value"),
                type_name=match.group("type"),
            )
        )

    def _parse_throw(self, stmt: Statement, label: str, parent: int | None) -> None:
        """Parse: X -> X : <<throws>> Type[("template")]"""
        match = _THROW_LABEL_RE.match(label)
        if match is None:
            raise ParseError(
                f"Cannot interpret stereotype label {label!r}",
                stmt.line,
                ParseIssue.UNSUPPORTED_FRAGMENT,
                'only <<throws>> is supported: \'X -> X : <<throws>> ErrorType("message")\'',
            )
        if stmt.source != stmt.target:
            raise ParseError(
                f"<<throws>> must be a self-arrow, got {stmt.source} -> {stmt.target}",
                stmt.line,
                ParseIssue.MALFORMED_LINE,
                f"write '{stmt.source} -> {stmt.source} : {label}'",
            )
        message = match.group("message")
        self._elements.append(
            ThrowElement(
                line=stmt.line,
                parent_call=parent,
                participant=stmt.source,
                exception_type=match.group("type"),
                message_template=message.replace('\\"', '"') if message is not None else None,
            )
        )

    def _parse_call(self, stmt: Statement, label: str, parent: int | None) -> None:
        """Parse: Source -> Target : method(arg, ...)"""
        match = _CALL_LABEL_RE.match(label)
        if match is None:
            raise ParseError(
                f"Cannot interpret call label {label!r}",
                stmt.line,
                ParseIssue.MALFORMED_LINE,
                "write the label as 'method(arg1, arg2)' and bind its result on a return arrow",
            )
        if not match.group("method"):
            raise ParseError(
                f"Call label {label!r} has no method name",
                stmt.line,
                ParseIssue.MISSING_METHOD_LABEL,
                f"write '{stmt.source} {stmt.glyph} {stmt.target} : method{label}'",
            )
        call_id = self._next_call_id
        self._next_call_id += 1
        self._elements.append(
            CallElement(
                line=stmt.line,
                call_id=call_id,
                parent_call=parent,
                source=stmt.source,
                target=stmt.target,
                method=match.group("method"),
                arguments=_parse_arguments(match.group("args"), stmt.line),
                glyph=stmt.glyph,
            )
        )
        self._activations.append(_Activation(call_id=call_id, caller=stmt.source, callee=stmt.target))

    def _parse_return(self, stmt: Statement, label: str) -> None:
        """Parse: Source --> Caller : value [: Type]

        A bare value label is a return only when it travels back to the caller
        of the source's open activation.
        """
        match = _VALUE_LABEL_RE.match(label)
        top = self._activations[-1] if self._activations else None
        if match is None or top is None or top.callee != stmt.source or top.caller != stmt.target:
            expected = f"'{stmt.source} --> {top.caller} : {label}'" if top and top.callee == stmt.source else None
            raise ParseError(
                f"{stmt.source} {stmt.glyph} {stmt.target} : {label!r} is neither a call "
                f"(no parentheses) nor a return to an open caller",
                stmt.line,
                ParseIssue.AMBIGUOUS_ARROW,
                f"add parentheses for a call ('{label}()')" + (f" or return with {expected}" if expected else ""),
            )
        self._activations.pop()
        self._elements.append(
            ReturnElement(
                line=stmt.line,
                call_id=top.call_id,
                source=stmt.source,
                target=stmt.target,
                value=match.group("value"),
                type_name=match.group("type"),
                glyph=stmt.glyph,
            )
        )

    # ------------------------------------------------------------------
    # Fragments
    # ------------------------------------------------------------------

    def _parse_fragment(self, stmt: Statement) -> None:
        """Parse: loop <label> | alt [guard]; reject every other fragment keyword."""
        if stmt.keyword == "loop":
            self._blocks.append(_OpenBlock(keyword="loop", line=stmt.line))
            self._elements.append(LoopStart(line=stmt.line, label=stmt.label or ""))
        elif stmt.keyword == "alt":
            self._blocks.append(_OpenBlock(keyword="alt", line=stmt.line))
            self._elements.append(AltStart(line=stmt.line, guard=_strip_guard(stmt.label)))
        else:
            raise ParseError(
                f"Fragment '{stmt.keyword}' is not supported",
                stmt.line,
                ParseIssue.UNSUPPORTED_FRAGMENT,
                _FRAGMENT_REWRITES.get(stmt.keyword, "remove the fragment and keep its arrows in sequence"),
            )

    def _parse_else(self, stmt: Statement) -> None:
        if not self._blocks or self._blocks[-1].keyword != "alt":
            raise ParseError(
                "'else' outside an 'alt' block",
                stmt.line,
                ParseIssue.UNEXPECTED_BLOCK_KEYWORD,
                "open the block with 'alt [condition]'",
            )
        self._elements.append(ElseBranch(line=stmt.line, guard=_strip_guard(stmt.label)))

    def _parse_end(self, stmt: Statement) -> None:
        if not self._blocks:
            raise ParseError(
                "'end' without an open 'loop' or 'alt' block",
                stmt.line,
                ParseIssue.UNEXPECTED_BLOCK_KEYWORD,
                "remove the stray 'end'",
            )
        self._blocks.pop()
        self._elements.append(BlockEnd(line=stmt.line))

    # ------------------------------------------------------------------
    # Participants and activations
    # ------------------------------------------------------------------

    def _note_participant(self, name: str) -> None:
        if self._root is None:
            self._root = name

    def _activate(self, participant: str, line: int) -> int | None:
        """Make *participant* the executing participant and return its activation.

        Void activations above the participant's innermost activation are
        closed. The root participant executes outside any activation.
        """
        for depth in range(len(self._activations) - 1, -1, -1):
            if self._activations[depth].callee == participant:
                del self._activations[depth + 1 :]
                return self._activations[depth].call_id
        if participant == self._root:
            self._activations.clear()
            return None
        raise ParseError(
            f"{participant} sends a message but no open call has activated it",
            line,
            ParseIssue.INACTIVE_PARTICIPANT,
            f"call {participant} first, or start the diagram from {self._root}",
        )


def _strip_guard(label: str | None) -> str | None:
    """Remove the surrounding brackets of an alt/else guard."""
    if label is None:
        return None
    text = label.strip()
    if text.startswith("[") and text.endswith("]"):
        text = text[1:-1].strip()
    return text or None


def _split_top_level(text: str) -> list[str]:
    """Split on commas that are outside quotes and brackets."""
    parts: list[str] = []
    depth = 0
    quote = ""
    current: list[str] = []
    for ch in text:
        if quote:
            current.append(ch)
            if ch == quote:
                quote = ""
            continue
        if ch in "\"'":
            quote = ch
        elif ch in "([{<":
            depth += 1
        elif ch in ")]}>":
            depth -= 1
        elif ch == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)
    parts.append("".join(current))
    return parts


def _parse_arguments(text: str, line: int) -> list[Argument]:
    """Parse a comma-separated argument list into Argument models."""
    if not text.strip():
        return []
    arguments: list[Argument] = []
    for raw in _split_top_level(text):
        arg = raw.strip()
        if _LITERAL_ARGUMENT_RE.match(arg) or arg.lower() in _LITERAL_WORDS:
            arguments.append(Argument(name=arg, is_literal=True))
            continue
        match = _NAME_ARGUMENT_RE.match(arg)
        if match is None:
            raise ParseError(
                f"Argument {arg!r} is neither a name nor a literal",
                line,
                ParseIssue.MALFORMED_LINE,
                "pass variable names bound by earlier return arrows, or quoted literals",
            )
        arguments.append(Argument(name=match.group("name")))
    return arguments
