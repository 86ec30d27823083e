# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Implementation synthesis.

Derives the implementation tree from the test-artifact tree alone. This
module must never import the semantic model or the compiler: everything it
knows about a method comes from stubs, assertions and their scope
references.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from seqtdd.artifacts.tree import (
    MethodUnderTest,
    MockedMethod,
    ResultAssertion,
    ScopeRef,
    Stub,
    TestArtifactTree,
    TestSuite,
    ThrowAssertion,
    VerifyAssertion,
)
from seqtdd.implementation.tree import (
    CallStatement,
    CollaboratorInterface,
    ConditionalBranch,
    ConditionalNode,
    ConstantDeclaration,
    HelperMethod,
    ImplementationClass,
    ImplementationMethod,
    ImplementationTree,
    InterfaceMethod,
    IterationNode,
    LeafScaffold,
    RaiseStatement,
    ReturnStatement,
    Statement,
)
from seqtdd.workspace.naming import simple_guard
from seqtdd.workspace.profile import LanguageProfile, default_profile

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############


def synthesize_implementation(
    tree: TestArtifactTree,
    profile: LanguageProfile | None = None,
) -> ImplementationTree:
    """Derive the implementation tree from a test-artifact tree.

    Per method, verifications become call statements in sequence order,
    result checks become return statements and raise checks become raise
    statements plus a message constant. Branch and loop scopes carried by the
    assertions are folded back into conditionals and iterations.

    Args:
        tree: The synthesized (and gated) test-artifact tree.
        profile: Naming rules; the built-in profile when omitted.

    Returns:
        The ImplementationTree.

    Raises:
        TypeError: If *tree* is not a TestArtifactTree.
    """
    if not isinstance(tree, TestArtifactTree):
        raise TypeError(f"synthesize_implementation() requires a TestArtifactTree, got {type(tree).__name__}")
    return _ImplementationSynthesizer(tree, profile or default_profile()).synthesize()


# ################
# Implementation
# ################

@dataclass
class _Event:
    """A statement (or a bare branch anchor) waiting to be placed in its scope."""

    sequence: float
    scope: list[ScopeRef]
    node: Statement | None = None


class _ImplementationSynthesizer:
    def __init__(self, tree: TestArtifactTree, profile: LanguageProfile) -> None:
        self._tree = tree
        self._naming = profile.naming

    def synthesize(self) -> ImplementationTree:
        extra = self._orchestrator_mock_methods()
        result = ImplementationTree(
            classes=[self._class(suite, extra.get(suite.subject, [])) for suite in self._tree.suites],
            interfaces=self._interfaces(),
            scaffolds=[
                LeafScaffold(
                    name=table.participant,
                    methods=[
                        InterfaceMethod(name=m.name, parameters=list(m.parameters), returns=m.returns)
                        for m in table.methods
                    ],
                    status=table.status.value,
                )
                for table in self._tree.decision_tables
            ],
            exceptions=self._exceptions(),
        )
        logger.debug(
            "Synthesized %s classes, %s interfaces and %s scaffolds",
            len(result.classes),
            len(result.interfaces),
            len(result.scaffolds),
        )
        return result

    # ------------------------------------------------------------------
    # Classes
    # ------------------------------------------------------------------

    def _orchestrator_mock_methods(self) -> dict[str, list[MockedMethod]]:
        """Methods other suites call on an orchestrator, keyed by orchestrator."""
        methods: dict[str, list[MockedMethod]] = {}
        for suite in self._tree.suites:
            for mock in suite.mocks:
                if mock.kind != "orchestrator":
                    continue
                known = methods.setdefault(mock.collaborator, [])
                known.extend(m for m in mock.methods if m.name not in {k.name for k in known})
        return methods

    def _class(self, suite: TestSuite, called: list[MockedMethod]) -> ImplementationClass:
        helpers: dict[str, HelperMethod] = {}
        constants: dict[str, ConstantDeclaration] = {}
        methods: list[ImplementationMethod] = []
        for method in suite.methods:
            # A method invoked along several call paths is implemented once.
            if any(m.name == method.name for m in methods):
                continue
            methods.append(self._method(method, helpers, constants))
        for mocked in called:
            if not any(m.name == mocked.name for m in methods):
                methods.append(ImplementationMethod(name=mocked.name, parameters=list(mocked.parameters)))
        return ImplementationClass(
            subject=suite.subject,
            collaborators=[m.name for m in suite.mocks],
            constants=list(constants.values()),
            methods=methods,
            helpers=list(helpers.values()),
        )

    def _method(
        self,
        method: MethodUnderTest,
        helpers: dict[str, HelperMethod],
        constants: dict[str, ConstantDeclaration],
    ) -> ImplementationMethod:
        stubs: dict[int, Stub] = {}
        for group in method.groups:
            for stub in group.stubs:
                stubs.setdefault(stub.call_id, stub)

        events: dict[tuple[object, ...], _Event] = {}
        for group in method.groups:
            for case in group.cases:
                assertion = case.assertion
                if isinstance(assertion, VerifyAssertion):
                    events.setdefault(("call", assertion.call_id), self._call_event(assertion, stubs))
                elif isinstance(assertion, ResultAssertion):
                    events.setdefault(
                        ("result", assertion.sequence),
                        _Event(
                            sequence=assertion.sequence,
                            scope=assertion.scope,
                            node=ReturnStatement(value=assertion.expected, sequence=assertion.sequence),
                        ),
                    )
                elif isinstance(assertion, ThrowAssertion) and not assertion.propagated:
                    if assertion.constant is not None and assertion.message_template is not None:
                        constants.setdefault(
                            assertion.constant,
                            ConstantDeclaration(name=assertion.constant, template=assertion.message_template),
                        )
                    events.setdefault(
                        ("raise", assertion.sequence),
                        _Event(
                            sequence=assertion.sequence,
                            scope=assertion.scope,
                            node=RaiseStatement(
                                exception_type=assertion.exception_type,
                                constant=assertion.constant,
                                arguments=list(assertion.arguments),
                                sequence=assertion.sequence,
                            ),
                        ),
                    )
        self._add_branch_anchors(method, events)
        self._move_results_last(events)

        known = {p: p for p in method.parameters}
        for stub in stubs.values():
            if stub.value:
                known[stub.value] = self._naming.variable(stub.value)
        for group in method.groups:
            for fixture in group.loops:
                if fixture.element:
                    known[fixture.element] = fixture.element

        ordered = sorted(events.values(), key=lambda e: e.sequence)
        return ImplementationMethod(
            name=method.name,
            parameters=list(method.parameters),
            body=self._build(ordered, 0, helpers, known),
        )

    def _call_event(self, verify: VerifyAssertion, stubs: dict[int, Stub]) -> _Event:
        stub = stubs.get(verify.call_id)
        binding = self._naming.variable(stub.value) if stub is not None and stub.value else None
        return _Event(
            sequence=verify.sequence,
            scope=verify.scope,
            node=CallStatement(
                mock=verify.mock,
                method=verify.method,
                arguments=list(verify.arguments),
                binding=binding,
                sequence=verify.sequence,
            ),
        )

    @staticmethod
    def _add_branch_anchors(method: MethodUnderTest, events: dict[tuple[object, ...], _Event]) -> None:
        """Make sure every branch a group covers shows up, even with an empty body."""
        prefixes: dict[int, list[ScopeRef]] = {}
        for event in events.values():
            for i, ref in enumerate(event.scope):
                prefixes.setdefault(ref.block, event.scope[:i])
        for group in method.groups:
            for i, ref in enumerate(group.path):
                prefix = prefixes.get(ref.block, group.path[:i])
                events.setdefault(
                    ("anchor", ref.block, ref.branch), _Event(sequence=ref.position, scope=[*prefix, ref])
                )

    @staticmethod
    def _move_results_last(events: dict[tuple[object, ...], _Event]) -> None:
        """A return ends its scope, so it follows every statement sharing that scope."""

        def key(scope: list[ScopeRef]) -> list[tuple[int, int]]:
            return [(ref.block, ref.branch) for ref in scope]

        for name, event in events.items():
            if name[0] != "result":
                continue
            prefix = key(event.scope)
            last = max(e.sequence for e in events.values() if key(e.scope)[: len(prefix)] == prefix)
            if last > event.sequence:
                event.sequence = last + 0.5

    # ------------------------------------------------------------------
    # Control structure
    # ------------------------------------------------------------------

    def _build(
        self,
        events: list[_Event],
        depth: int,
        helpers: dict[str, HelperMethod],
        known: dict[str, str],
    ) -> list[Statement]:
        """Fold events sharing the first *depth* scope frames into nested statements."""
        body: list[Statement] = []
        i = 0
        while i < len(events):
            event = events[i]
            if len(event.scope) <= depth:
                if event.node is not None:
                    body.append(event.node)
                i += 1
                continue
            frame = event.scope[depth]
            j = i
            while j < len(events) and len(events[j].scope) > depth and events[j].scope[depth].block == frame.block:
                j += 1
            run = events[i:j]
            if frame.kind == "loop":
                body.append(self._iteration(frame, run, depth, helpers, known))
            else:
                body.append(self._conditional(frame, run, depth, helpers, known))
            i = j
        return body

    def _conditional(
        self,
        frame: ScopeRef,
        run: list[_Event],
        depth: int,
        helpers: dict[str, HelperMethod],
        known: dict[str, str],
    ) -> ConditionalNode:
        indexes = sorted({e.scope[depth].branch for e in run})
        branches: list[ConditionalBranch] = []
        for n, index in enumerate(indexes):
            events = [e for e in run if e.scope[depth].branch == index]
            guard = events[0].scope[depth].guard
            body = self._build(events, depth + 1, helpers, known)
            last = n == len(indexes) - 1
            if guard is None and last and n > 0:
                branches.append(ConditionalBranch(index=index, body=body))
                continue
            condition = _guard_expression(guard, known) if guard else None
            if condition is not None:
                branches.append(ConditionalBranch(index=index, guard=guard, condition=condition, body=body))
                continue
            text = guard or f"branch {index + 1} of block {frame.block}"
            name = self._naming.predicate.apply(guard=text)
            helpers.setdefault(name, HelperMethod(name=name, kind="predicate", text=text))
            branches.append(ConditionalBranch(index=index, guard=guard, predicate=name, body=body))
        return ConditionalNode(block=frame.block, branches=branches, sequence=run[0].sequence)

    def _iteration(
        self,
        frame: ScopeRef,
        run: list[_Event],
        depth: int,
        helpers: dict[str, HelperMethod],
        known: dict[str, str],
    ) -> IterationNode:
        body = self._build(run, depth + 1, helpers, known)
        if frame.element and frame.collection:
            return IterationNode(
                block=frame.block,
                label=frame.label,
                element=frame.element,
                collection=frame.collection,
                body=body,
                sequence=run[0].sequence,
            )
        text = frame.label or f"loop {frame.block}"
        name = self._naming.loop_source.apply(label=text)
        helpers.setdefault(name, HelperMethod(name=name, kind="loop-source", text=text))
        return IterationNode(
            block=frame.block,
            label=frame.label,
            element=frame.element or "item",
            source=name,
            body=body,
            sequence=run[0].sequence,
        )

    # ------------------------------------------------------------------
    # Interfaces and errors
    # ------------------------------------------------------------------

    def _interfaces(self) -> list[CollaboratorInterface]:
        users: dict[str, list[str]] = {}
        methods: dict[str, dict[str, InterfaceMethod]] = {}
        for suite in self._tree.suites:
            for mock in suite.mocks:
                if mock.kind != "io-boundary":
                    continue
                users.setdefault(mock.collaborator, []).append(suite.subject)
                known = methods.setdefault(mock.collaborator, {})
                for m in mock.methods:
                    known.setdefault(
                        m.name, InterfaceMethod(name=m.name, parameters=list(m.parameters), returns=m.returns)
                    )
        return [
            CollaboratorInterface(name=name, users=users[name], methods=list(methods[name].values())) for name in users
        ]

    def _exceptions(self) -> list[str]:
        names: list[str] = []
        for suite in self._tree.suites:
            for group in suite.groups:
                raised = [s.raises for s in group.stubs if s.raises] + [t.exception_type for t in group.throws]
                names.extend(n for n in raised if n not in names)
        return names


def _guard_expression(guard: str, known: dict[str, str]) -> str | None:
    """Return *guard* as an expression when it tests one known value, or None.

    Tests pin such guards directly. Every other guard is left to a predicate
    helper the tests replace.
    """
    parsed = simple_guard(guard)
    if parsed is None:
        return None
    negated, root, attribute = parsed
    if root not in known:
        return None
    return ("not " if negated else "") + known[root] + attribute
