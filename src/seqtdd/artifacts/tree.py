# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""The test-artifact tree.

The tree is the only input of the implementation synthesizer. It is built
from plain artifact values (names, value identities, scope references) and
never holds a reference to the semantic model it was synthesized from.
"""

from __future__ import annotations

import enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict
from pydantic import Field as _Field

# ###############
# Public Interface
# ###############


class _Artifact(BaseModel):
    model_config = ConfigDict(frozen=True)


class ScopeRef(_Artifact):
    """An enclosing loop or branch of an artifact, outermost first.

    Attributes:
        kind: ``"loop"`` or ``"branch"``.
        block: Block identity, shared by every artifact inside the block.
        branch: Branch index inside an alt block (0 for loops).
        guard: Branch guard text, ``None`` for an unguarded ``else``.
        label: Loop label as written.
        element: Loop element variable, when the label names one.
        collection: Iterated collection (variable plus attribute path).
        position: Ordering key of the loop or branch start.
    """

    kind: Literal["loop", "branch"]
    block: int
    branch: int = 0
    guard: str | None = None
    label: str = ""
    element: str | None = None
    collection: str | None = None
    position: int


class ValueRef(_Artifact):
    """A value passed as an argument, returned as a result or formatted into a message.

    Attributes:
        text: The value as written in the diagram (``order.id``).
        source: ``"input"``, ``"stub"``, ``"literal"`` or ``"loop-element"``.
        variable: Variable name of the root value; the literal itself for literals.
        attribute: Attribute path after the root value, including the dot.
        value_id: Identity of a stubbed value.
    """

    text: str
    source: Literal["input", "stub", "literal", "loop-element"]
    variable: str
    attribute: str = ""
    value_id: str | None = None


class Stub(_Artifact):
    """Configures one collaborator call to return a value (or raise).

    Attributes:
        call_id: The interaction the stub stands for.
        mock: Mock variable of the collaborator.
        method: Stubbed method name.
        value: Bound value name as written; ``None`` for a raising void call.
        variable: Test variable holding the value, unique within its group.
        value_id: Identity of the returned value.
        type_name: Type of the returned value.
        sequence: Ordering key of the interaction.
        single_element: The stub runs inside a loop, or feeds its collection.
        guard: Guard of the branch this stub's value drives.
        raises: Exception type the stub raises instead of returning.
    """

    call_id: int
    mock: str
    method: str
    value: str | None = None
    variable: str | None = None
    value_id: str | None = None
    type_name: str | None = None
    sequence: int
    single_element: bool = False
    guard: str | None = None
    raises: str | None = None


class VerifyAssertion(_Artifact):
    """Checks that one collaborator call happened with the exact arguments."""

    kind: Literal["verify"] = "verify"
    call_id: int
    sequence: int
    collaborator: str
    mock: str
    method: str
    arguments: list[ValueRef] = _Field(default_factory=list)
    scope: list[ScopeRef] = _Field(default_factory=list)
    repeated: bool = False


class ResultAssertion(_Artifact):
    """Checks the value returned by the method under test on one path."""

    kind: Literal["result"] = "result"
    expected: ValueRef
    type_name: str
    sequence: int
    scope: list[ScopeRef] = _Field(default_factory=list)


class MessageArgument(_Artifact):
    placeholder: str
    value: ValueRef


class ThrowAssertion(_Artifact):
    """Checks that the method under test raises.

    Attributes:
        exception_type: The raised exception type.
        message_template: The message template, when the diagram supplied one.
        constant: Name of the message constant, for exceptions the method
            raises itself.
        arguments: Values formatted into the message template.
        propagated: True when a stubbed collaborator raises the exception.
        raised_by: The interaction whose stub raises, for propagated exceptions.
    """

    kind: Literal["throw"] = "throw"
    exception_type: str
    message_template: str | None = None
    constant: str | None = None
    arguments: list[MessageArgument] = _Field(default_factory=list)
    propagated: bool = False
    raised_by: int | None = None
    sequence: int
    scope: list[ScopeRef] = _Field(default_factory=list)


Assertion = Annotated[VerifyAssertion | ResultAssertion | ThrowAssertion, _Field(discriminator="kind")]


class TestCase(_Artifact):
    """A single test. It holds exactly one assertion.

    ``invokes`` is True when the test itself calls the method under test
    instead of relying on the group setup.
    """

    __test__ = False

    name: str
    assertion: Assertion
    invokes: bool = False


class GroupMode(enum.Enum):
    NO_EXCEPTION = "no-exception"
    EXCEPTION_TRIGGERED = "exception-triggered"


class LoopFixture(_Artifact):
    """Single-element test data for one loop."""

    block: int
    label: str
    element: str | None = None
    collection: str | None = None
    producer: int | None = None
    size: int = 1


class TestGroup(_Artifact):
    """The tests of one method, or of one branch of a method.

    Attributes:
        name: Group name.
        description: One-line description of the path the group drives.
        path: Branch scope the group covers; empty for the main group.
        steering: Branches past *path* the setup drives execution through.
            Each is the first branch of its block that avoids every raise,
            when the block has one.
        mode: Whether the path ends in an exception.
        stubs: Stubs configured in setup, in interaction order.
        loops: Loop fixtures of the path.
        cases: The tests.
    """

    __test__ = False

    name: str
    description: str = ""
    path: list[ScopeRef] = _Field(default_factory=list)
    steering: list[ScopeRef] = _Field(default_factory=list)
    mode: GroupMode = GroupMode.NO_EXCEPTION
    stubs: list[Stub] = _Field(default_factory=list)
    loops: list[LoopFixture] = _Field(default_factory=list)
    cases: list[TestCase] = _Field(default_factory=list)

    @property
    def verifies(self) -> list[VerifyAssertion]:
        return [c.assertion for c in self.cases if isinstance(c.assertion, VerifyAssertion)]

    @property
    def results(self) -> list[ResultAssertion]:
        return [c.assertion for c in self.cases if isinstance(c.assertion, ResultAssertion)]

    @property
    def throws(self) -> list[ThrowAssertion]:
        return [c.assertion for c in self.cases if isinstance(c.assertion, ThrowAssertion)]


class MethodUnderTest(_Artifact):
    name: str
    parameters: list[str] = _Field(default_factory=list)
    groups: list[TestGroup] = _Field(default_factory=list)


class MockedMethod(_Artifact):
    name: str
    parameters: list[str] = _Field(default_factory=list)
    returns: str | None = None


class MockDeclaration(_Artifact):
    """One mock per collaborator of a suite.

    ``kind`` is ``"orchestrator"``, ``"computational"`` or ``"io-boundary"``.
    """

    collaborator: str
    name: str
    kind: Literal["orchestrator", "computational", "io-boundary"]
    methods: list[MockedMethod] = _Field(default_factory=list)


class TestSuite(_Artifact):
    """All tests of one orchestrator."""

    __test__ = False

    subject: str
    is_component_under_test: bool = False
    mocks: list[MockDeclaration] = _Field(default_factory=list)
    methods: list[MethodUnderTest] = _Field(default_factory=list)

    @property
    def groups(self) -> list[TestGroup]:
        return [g for m in self.methods for g in m.groups]


class DecisionStatus(enum.Enum):
    PENDING = "pending"
    COMPLETE = "complete"


class DecisionRow(_Artifact):
    """One row of a decision table. Placeholder rows await human input."""

    inputs: list[str] = _Field(default_factory=list)
    expected: str = "None"
    placeholder: bool = False


class DecisionMethod(_Artifact):
    name: str
    parameters: list[str] = _Field(default_factory=list)
    returns: str | None = None
    rows: list[DecisionRow] = _Field(default_factory=list)


class DecisionTableSkeleton(_Artifact):
    """Input/output table of a computational leaf, filled in by a human."""

    participant: str
    methods: list[DecisionMethod] = _Field(default_factory=list)
    status: DecisionStatus = DecisionStatus.PENDING


class TestArtifactTree(_Artifact):
    """Everything the test synthesizer produces for one diagram."""

    __test__ = False

    component_under_test: str
    suites: list[TestSuite] = _Field(default_factory=list)
    decision_tables: list[DecisionTableSkeleton] = _Field(default_factory=list)

    @property
    def test_count(self) -> int:
        return sum(len(g.cases) for s in self.suites for g in s.groups)

    @property
    def pending_tables(self) -> list[DecisionTableSkeleton]:
        return [t for t in self.decision_tables if t.status == DecisionStatus.PENDING]
