# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Semantic model of one interaction diagram.

The model is built once per pipeline run and is immutable afterwards. Block
scopes are stored relative to the method that owns them, so a collaborator's
own method sees only the blocks it opened itself.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic import Field as _Field

# ###############
# Public Interface
# ###############


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class ArgumentSource(Enum):
    """Where the value of a call argument comes from."""

    INPUT = "input"
    RETURN = "return"
    LITERAL = "literal"
    LOOP_ELEMENT = "loop-element"


class ArgumentRef(_Frozen):
    """A resolved call argument.

    Attributes:
        name: The argument text as written (``order`` or ``order.id``).
        source: Where the value comes from.
        producer: Index of the producing interaction for ``RETURN`` arguments.
        value_id: Identity of the bound value for ``RETURN`` arguments.
    """

    name: str
    source: ArgumentSource
    producer: int | None = None
    value_id: str | None = None


class Participant(_Frozen):
    """A diagram participant. The first one (ordinal 0) is the component under test."""

    name: str
    ordinal: int

    @property
    def is_component_under_test(self) -> bool:
        return self.ordinal == 0


class CallArrow(_Frozen):
    source: str
    target: str
    method: str
    arguments: list[ArgumentRef] = _Field(default_factory=list)
    line: int


class ReturnArrow(_Frozen):
    """The value bound when a call returns.

    Attributes:
        value: The bound variable name.
        type_name: Explicit type, or the name with its first letter capitalised.
        explicit_type: True when the diagram spelled the type out.
        value_id: Identity of the value, unique within the diagram.
    """

    value: str
    type_name: str
    explicit_type: bool = False
    value_id: str
    line: int


class ScopeFrame(_Frozen):
    """One enclosing block of an element, outermost first."""

    kind: Literal["loop", "branch"]
    block_id: int
    branch_index: int = 0


class Interaction(_Frozen):
    """A call arrow plus its optional return arrow.

    Attributes:
        index: The call's ordinal in the diagram.
        position: Ordinal of the call among all diagram elements.
        method: Index of the interaction whose callee owns this call, or
            ``None`` when the component under test makes it from its root method.
        scope: Enclosing blocks relative to the owning method.
    """

    index: int
    position: int
    method: int | None
    call: CallArrow
    returns: ReturnArrow | None = None
    scope: list[ScopeFrame] = _Field(default_factory=list)

    @property
    def is_void(self) -> bool:
        return self.returns is None

    @property
    def branch_path(self) -> list[ScopeFrame]:
        return [f for f in self.scope if f.kind == "branch"]


class DataPipe(_Frozen):
    """A return value flowing into a later call argument of the same method."""

    producer: int
    consumer: int
    variable: str
    value_id: str


class LoopBlock(_Frozen):
    """A ``loop`` fragment.

    ``element`` and ``collection`` are filled when the label reads
    ``each <element> in <collection>`` or ``for <element> in <collection>``.
    """

    block_id: int
    method: int | None
    label: str
    element: str | None = None
    collection: str | None = None
    collection_producer: int | None = None
    scope: list[ScopeFrame] = _Field(default_factory=list)
    position: int
    line: int


class Branch(_Frozen):
    index: int
    guard: str | None = None
    position: int


class BranchBlock(_Frozen):
    """An ``alt``/``else`` fragment with mutually exclusive branches.

    ``depth`` counts the alt fragments enclosing this one plus itself.
    """

    block_id: int
    method: int | None
    branches: list[Branch]
    depth: int
    scope: list[ScopeFrame] = _Field(default_factory=list)
    position: int
    line: int


class ThrowArrow(_Frozen):
    """A ``<<throws>>`` self-arrow.

    Attributes:
        method: The method whose owner raises the exception.
        propagates_through: Calls whose stubbed collaborator raises the
            exception into its caller, innermost first.
    """

    participant: str
    exception_type: str
    message_template: str | None = None
    method: int | None
    scope: list[ScopeFrame] = _Field(default_factory=list)
    propagates_through: list[int] = _Field(default_factory=list)
    position: int
    line: int


class MethodResult(_Frozen):
    """The value a method returns on one execution path."""

    value: str
    type_name: str
    value_id: str | None = None
    scope: list[ScopeFrame] = _Field(default_factory=list)
    position: int
    explicit: bool = False


class Method(_Frozen):
    """A method under test.

    The component under test always has a root method (``call_index`` is
    ``None``). Every call into a participant that makes nested calls during
    that activation adds a method for the callee.
    """

    call_index: int | None
    owner: str
    name: str
    parameters: list[str] = _Field(default_factory=list)
    inferred_parameters: bool = False
    results: list[MethodResult] = _Field(default_factory=list)


@dataclass(frozen=True)
class ModelWarning:
    """A non-fatal finding recorded while building the model.

    Attributes:
        message: Human-readable description of the finding.
        line: Source line the finding refers to, when there is one.
    """

    message: str
    line: int | None = None


class SemanticModel(_Frozen):
    """The validated graph of one diagram."""

    participants: list[Participant]
    interactions: list[Interaction]
    pipes: list[DataPipe] = _Field(default_factory=list)
    loops: list[LoopBlock] = _Field(default_factory=list)
    branches: list[BranchBlock] = _Field(default_factory=list)
    throws: list[ThrowArrow] = _Field(default_factory=list)
    methods: list[Method] = _Field(default_factory=list)
    warnings: list[ModelWarning] = _Field(default_factory=list)

    @property
    def component_under_test(self) -> Participant:
        return self.participants[0]

    def participant(self, name: str) -> Participant:
        for participant in self.participants:
            if participant.name == name:
                return participant
        raise KeyError(name)

    def interaction(self, index: int) -> Interaction:
        return self.interactions[index]

    def method(self, call_index: int | None) -> Method | None:
        for method in self.methods:
            if method.call_index == call_index:
                return method
        return None

    def interactions_of(self, method: int | None) -> list[Interaction]:
        """Return the interactions made by the owner of *method*, in source order."""
        return [i for i in self.interactions if i.method == method]

    def outgoing_calls(self, name: str) -> list[Interaction]:
        return [i for i in self.interactions if i.call.source == name]
