# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""The implementation tree derived from the test-artifact tree."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict
from pydantic import Field as _Field

from seqtdd.artifacts.tree import MessageArgument, ValueRef

# ###############
# Public Interface
# ###############


class _Node(BaseModel):
    model_config = ConfigDict(frozen=True)


class CallStatement(_Node):
    """A collaborator call, optionally binding its return value."""

    kind: Literal["call"] = "call"
    mock: str
    method: str
    arguments: list[ValueRef] = _Field(default_factory=list)
    binding: str | None = None
    sequence: int


class ReturnStatement(_Node):
    kind: Literal["return"] = "return"
    value: ValueRef
    sequence: int


class RaiseStatement(_Node):
    """Raises an exception, formatting the message constant when there is one."""

    kind: Literal["raise"] = "raise"
    exception_type: str
    constant: str | None = None
    arguments: list[MessageArgument] = _Field(default_factory=list)
    sequence: int


class ConditionalBranch(_Node):
    """One branch of a conditional.

    Exactly one of ``condition`` (an expression over known values) and
    ``predicate`` (a helper method deciding the guard) is set, unless the
    branch is the final unguarded ``else``. ``index`` is the position of the
    branch in its alt block.
    """

    index: int = 0
    guard: str | None = None
    condition: str | None = None
    predicate: str | None = None
    body: list[Statement] = _Field(default_factory=list)


class ConditionalNode(_Node):
    kind: Literal["conditional"] = "conditional"
    block: int
    branches: list[ConditionalBranch]
    sequence: int


class IterationNode(_Node):
    """A loop over a collection, or over the items of a source helper method."""

    kind: Literal["iteration"] = "iteration"
    block: int
    label: str
    element: str
    collection: str | None = None
    source: str | None = None
    body: list[Statement] = _Field(default_factory=list)
    sequence: int


Statement = Annotated[
    CallStatement | ReturnStatement | RaiseStatement | ConditionalNode | IterationNode,
    _Field(discriminator="kind"),
]


class ConstantDeclaration(_Node):
    name: str
    template: str


class HelperMethod(_Node):
    """A method a human completes: a branch predicate or a loop source.

    ``kind`` is ``"predicate"`` or ``"loop-source"``; ``text`` is the guard or
    loop label it stands for.
    """

    name: str
    kind: Literal["predicate", "loop-source"]
    text: str


class ImplementationMethod(_Node):
    name: str
    parameters: list[str] = _Field(default_factory=list)
    body: list[Statement] = _Field(default_factory=list)


class ImplementationClass(_Node):
    """The implementation of one orchestrator.

    Attributes:
        subject: Participant name.
        collaborators: Constructor parameters, one per mocked collaborator.
        constants: Error-message constants, declared once per class.
        methods: Methods derived from the tests, in suite order.
        helpers: Predicate and loop-source helper methods.
    """

    subject: str
    collaborators: list[str] = _Field(default_factory=list)
    constants: list[ConstantDeclaration] = _Field(default_factory=list)
    methods: list[ImplementationMethod] = _Field(default_factory=list)
    helpers: list[HelperMethod] = _Field(default_factory=list)


class InterfaceMethod(_Node):
    name: str
    parameters: list[str] = _Field(default_factory=list)
    returns: str | None = None


class CollaboratorInterface(_Node):
    """Abstract port of an I/O-boundary collaborator."""

    name: str
    users: list[str] = _Field(default_factory=list)
    methods: list[InterfaceMethod] = _Field(default_factory=list)


class LeafScaffold(_Node):
    """Computational leaf without generated logic; its decision table defines it."""

    name: str
    methods: list[InterfaceMethod] = _Field(default_factory=list)
    status: str = "pending"


class ImplementationTree(_Node):
    classes: list[ImplementationClass] = _Field(default_factory=list)
    interfaces: list[CollaboratorInterface] = _Field(default_factory=list)
    scaffolds: list[LeafScaffold] = _Field(default_factory=list)
    exceptions: list[str] = _Field(default_factory=list)


ConditionalBranch.model_rebuild()
ConditionalNode.model_rebuild()
IterationNode.model_rebuild()
ImplementationMethod.model_rebuild()
ImplementationClass.model_rebuild()
ImplementationTree.model_rebuild()
