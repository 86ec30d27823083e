# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Typed raw elements produced by the diagram parser."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict
from pydantic import Field as _Field

# ###############
# Public Interface
# ###############


class _Element(BaseModel):
    model_config = ConfigDict(frozen=True)

    line: int


class Argument(BaseModel):
    """One argument of a call label.

    Literal arguments (quoted strings, numbers, ``true``/``false``/``null``)
    are passed through verbatim and never take part in data-flow resolution.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    is_literal: bool = False


class ParticipantDecl(_Element):
    """An explicit ``participant Name`` declaration."""

    kind: Literal["participant"] = "participant"
    name: str


class EntryCall(_Element):
    """A found message (``[-> A : method(args)]``) naming the method under test."""

    kind: Literal["entry"] = "entry"
    target: str
    method: str
    arguments: list[Argument] = _Field(default_factory=list)


class CallElement(_Element):
    """A call arrow.

    Attributes:
        call_id: 0-based ordinal of the call among all calls of the diagram.
        parent_call: ``call_id`` of the activation the source was executing
            when it made this call, or ``None`` for the root method.
    """

    kind: Literal["call"] = "call"
    call_id: int
    parent_call: int | None
    source: str
    target: str
    method: str
    arguments: list[Argument] = _Field(default_factory=list)
    glyph: str = "->"


class ReturnElement(_Element):
    """A return arrow closing the activation opened by ``call_id``."""

    kind: Literal["return"] = "return"
    call_id: int
    source: str
    target: str
    value: str
    type_name: str | None = None
    glyph: str = "-->"


class ThrowElement(_Element):
    """A ``<<throws>>`` self-arrow raised inside the activation ``parent_call``."""

    kind: Literal["throw"] = "throw"
    parent_call: int | None
    participant: str
    exception_type: str
    message_template: str | None = None


class ResultElement(_Element):
    """A lost message (``A -->[ : value``) naming the method result explicitly."""

    kind: Literal["result"] = "result"
    parent_call: int | None
    source: str
    value: str
    type_name: str | None = None


class LoopStart(_Element):
    kind: Literal["loop"] = "loop"
    label: str


class AltStart(_Element):
    kind: Literal["alt"] = "alt"
    guard: str | None = None


class ElseBranch(_Element):
    kind: Literal["else"] = "else"
    guard: str | None = None


class BlockEnd(_Element):
    kind: Literal["end"] = "end"


# A parsed diagram element. The `kind` discriminator keeps JSON round-trips unambiguous.
DiagramElement = Annotated[
    ParticipantDecl
    | EntryCall
    | CallElement
    | ReturnElement
    | ThrowElement
    | ResultElement
    | LoopStart
    | AltStart
    | ElseBranch
    | BlockEnd,
    _Field(discriminator="kind"),
]


class ParsedDiagram(BaseModel):
    """Ordered element list for one diagram."""

    model_config = ConfigDict(frozen=True)

    elements: list[DiagramElement] = _Field(default_factory=list)

    @property
    def calls(self) -> list[CallElement]:
        return [e for e in self.elements if isinstance(e, CallElement)]
