# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Test synthesis.

Walks the semantic model and emits the test-artifact tree: one suite per
orchestrator under test, one group per method path, stubs for every return,
one verification per call, one result or raise check per path, and a
decision-table skeleton per computational leaf.

Every group owns its stubs. A branch group stubs the returns on its own
branch plus the returns on the path leading into it, so no two groups share
state and no group asserts on another branch's calls.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from seqtdd.artifacts.tree import (
    DecisionMethod,
    DecisionRow,
    DecisionStatus,
    DecisionTableSkeleton,
    GroupMode,
    LoopFixture,
    MessageArgument,
    MethodUnderTest,
    MockDeclaration,
    MockedMethod,
    ResultAssertion,
    ScopeRef,
    Stub,
    TestArtifactTree,
    TestCase,
    TestGroup,
    TestSuite,
    ThrowAssertion,
    ValueRef,
    VerifyAssertion,
)
from seqtdd.compiler.classifier import Classification, LeafKind, ParticipantClass
from seqtdd.model.entities import (
    ArgumentRef,
    ArgumentSource,
    BranchBlock,
    Interaction,
    LoopBlock,
    Method,
    MethodResult,
    ScopeFrame,
    SemanticModel,
    ThrowArrow,
)
from seqtdd.workspace.naming import placeholders, unique_name
from seqtdd.workspace.profile import LanguageProfile, default_profile

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############


def synthesize_tests(
    model: SemanticModel,
    classification: Classification,
    profile: LanguageProfile | None = None,
) -> TestArtifactTree:
    """Synthesize the test-artifact tree for a classified model.

    Args:
        model: The semantic model.
        classification: Roles of the model's participants.
        profile: Naming rules to apply; the built-in profile when omitted.

    Returns:
        The immutable TestArtifactTree.
    """
    return _TestSynthesizer(model, classification, profile or default_profile()).synthesize()


def complete_decision_table(
    table: DecisionTableSkeleton,
    rows: dict[str, list[DecisionRow]],
) -> DecisionTableSkeleton:
    """Return a completed copy of *table* holding the human-authored rows.

    Args:
        table: A pending decision table.
        rows: Rows per method name. Every method of the table needs at least
            one row, and every row one input per method parameter.

    Returns:
        The table with its rows replaced and its status set to COMPLETE.

    Raises:
        ValueError: If a method is missing or unknown, a row has the wrong
            number of inputs, or a row is still a placeholder.
    """
    names = {m.name for m in table.methods}
    unknown = sorted(set(rows) - names)
    if unknown:
        raise ValueError(f"Decision table '{table.participant}' has no method(s): {', '.join(unknown)}")

    methods: list[DecisionMethod] = []
    for method in table.methods:
        method_rows = rows.get(method.name)
        if not method_rows:
            raise ValueError(f"Decision table '{table.participant}' needs rows for '{method.name}'")
        for row in method_rows:
            if row.placeholder:
                raise ValueError(f"Row {row.inputs!r} of '{method.name}' is still a placeholder")
            if len(row.inputs) != len(method.parameters):
                raise ValueError(
                    f"Row {row.inputs!r} of '{method.name}' has {len(row.inputs)} inputs, "
                    f"expected {len(method.parameters)}"
                )
        methods.append(method.model_copy(update={"rows": list(method_rows)}))
    return table.model_copy(update={"methods": methods, "status": DecisionStatus.COMPLETE})


# ################
# Implementation
# ################

# A branch path as (block id, branch index) pairs, outermost first.
_PathKey = tuple[tuple[int, int], ...]

_LITERAL_WORDS = frozenset({"true", "false", "null", "none", "nil"})


@dataclass(frozen=True)
class _ThrowSite:
    """Where an exception leaves a method: its own raise, or a raising collaborator call."""

    throw: ThrowArrow
    scope: list[ScopeFrame]
    sequence: int
    propagated: bool
    raised_by: int | None = None


def _path_key(scope: list[ScopeFrame]) -> _PathKey:
    return tuple((f.block_id, f.branch_index) for f in scope if f.kind == "branch")


def _runs(scope: list[ScopeFrame], chosen: set[tuple[int, int]]) -> bool:
    """True when every branch enclosing *scope* is among the *chosen* ones."""
    return set(_path_key(scope)) <= chosen


def _avoids_raises(branch: tuple[int, int], blocks: list[BranchBlock], sites: list[_ThrowSite]) -> bool:
    """True when some way through *branch* reaches no raise."""
    if any(_path_key(s.scope)[-1:] == (branch,) for s in sites):
        return False
    nested = [b for b in blocks if _path_key(b.scope)[-1:] == (branch,)]
    return all(any(_avoids_raises((b.block_id, br.index), blocks, sites) for br in b.branches) for b in nested)


def _steer(key: _PathKey, blocks: list[BranchBlock], sites: list[_ThrowSite]) -> _PathKey:
    """Pick a branch for every block reached past *key*, preferring ones without raises.

    *blocks* are in source order, so an enclosing block is decided before
    the blocks nested in it.
    """
    chosen = set(key)
    decided = {block_id for block_id, _ in key}
    steering: list[tuple[int, int]] = []
    for block in blocks:
        if block.block_id in decided or not _runs(block.scope, chosen):
            continue
        index = next(
            (b.index for b in block.branches if _avoids_raises((block.block_id, b.index), blocks, sites)),
            block.branches[0].index,
        )
        chosen.add((block.block_id, index))
        decided.add(block.block_id)
        steering.append((block.block_id, index))
    return tuple(steering)


class _TestSynthesizer:
    def __init__(self, model: SemanticModel, classification: Classification, profile: LanguageProfile) -> None:
        self._model = model
        self._classification = classification
        self._naming = profile.naming
        self._loops: dict[int, LoopBlock] = {b.block_id: b for b in model.loops}
        self._branches: dict[int, BranchBlock] = {b.block_id: b for b in model.branches}

    def synthesize(self) -> TestArtifactTree:
        suites = []
        for participant in self._classification.orchestrators:
            methods = [m for m in self._model.methods if m.owner == participant.name]
            if methods:
                suites.append(self._suite(participant, methods))

        tables = []
        for leaf in self._classification.computational_leaves:
            calls = [i for i in self._model.interactions if i.call.target == leaf.name]
            if calls:
                tables.append(self._decision_table(leaf, calls))

        tree = TestArtifactTree(
            component_under_test=self._model.component_under_test.name,
            suites=suites,
            decision_tables=tables,
        )
        logger.debug(
            "Synthesized %s suites, %s tests and %s decision tables",
            len(tree.suites),
            tree.test_count,
            len(tree.decision_tables),
        )
        return tree

    # ------------------------------------------------------------------
    # Suites and mocks
    # ------------------------------------------------------------------

    def _suite(self, participant: ParticipantClass, methods: list[Method]) -> TestSuite:
        calls = [i for m in methods for i in self._model.interactions_of(m.call_index)]
        taken_groups: set[str] = set()
        return TestSuite(
            subject=participant.name,
            is_component_under_test=participant.is_component_under_test,
            mocks=self._mocks(calls),
            methods=[self._method(m, taken_groups) for m in methods],
        )

    def _mocks(self, calls: list[Interaction]) -> list[MockDeclaration]:
        order: list[str] = []
        by_collaborator: dict[str, list[Interaction]] = {}
        for inter in calls:
            if inter.call.target not in by_collaborator:
                order.append(inter.call.target)
            by_collaborator.setdefault(inter.call.target, []).append(inter)

        mocks = []
        for collaborator in order:
            methods: dict[str, MockedMethod] = {}
            for inter in by_collaborator[collaborator]:
                name = self._naming.method(inter.call.method)
                if name not in methods:
                    methods[name] = MockedMethod(
                        name=name,
                        parameters=self._parameter_names(inter.call.arguments),
                        returns=inter.returns.type_name if inter.returns else None,
                    )
            mocks.append(
                MockDeclaration(
                    collaborator=collaborator,
                    name=self._mock_name(collaborator),
                    kind=self._mock_kind(self._classification.of(collaborator)),
                    methods=list(methods.values()),
                )
            )
        return mocks

    def _mock_name(self, collaborator: str) -> str:
        return self._naming.mock.apply(collaborator=collaborator)

    @staticmethod
    def _mock_kind(participant: ParticipantClass) -> str:
        if participant.is_orchestrator:
            return "orchestrator"
        if participant.leaf_kind == LeafKind.IO_BOUNDARY:
            return "io-boundary"
        return "computational"

    def _parameter_names(self, arguments: list[ArgumentRef]) -> list[str]:
        names: list[str] = []
        for i, arg in enumerate(arguments):
            name = f"arg{i}" if arg.source == ArgumentSource.LITERAL else self._naming.variable(arg.name.split(".")[0])
            names.append(unique_name(name, set(names)))
        return names

    # ------------------------------------------------------------------
    # Methods and groups
    # ------------------------------------------------------------------

    def _method(self, method: Method, taken_groups: set[str]) -> MethodUnderTest:
        calls = self._model.interactions_of(method.call_index)
        blocks = sorted(
            (b for b in self._model.branches if b.method == method.call_index),
            key=lambda b: b.position,
        )
        sites = self._throw_sites(method)

        paths: list[tuple[_PathKey, int]] = []
        has_main = (
            not blocks
            or any(_path_key(i.scope) == () for i in calls)
            or any(_path_key(r.scope) == () for r in method.results)
            or any(_path_key(s.scope) == () for s in sites)
        )
        if has_main:
            paths.append(((), -1))
        for block in blocks:
            prefix = _path_key(block.scope)
            for branch in block.branches:
                paths.append((prefix + ((block.block_id, branch.index),), branch.position))
        paths.sort(key=lambda p: p[1])

        groups = [self._group(method, key, calls, sites, blocks, taken_groups) for key, _ in paths]
        return MethodUnderTest(
            name=self._naming.method(method.name),
            parameters=[self._naming.variable(p) for p in method.parameters],
            groups=groups,
        )

    def _throw_sites(self, method: Method) -> list[_ThrowSite]:
        sites: list[_ThrowSite] = []
        for throw in self._model.throws:
            if throw.method == method.call_index and throw.participant == method.owner:
                sites.append(_ThrowSite(throw=throw, scope=throw.scope, sequence=throw.position, propagated=False))
            for call_id in throw.propagates_through:
                inter = self._model.interaction(call_id)
                if inter.method == method.call_index:
                    sites.append(
                        _ThrowSite(
                            throw=throw,
                            scope=inter.scope,
                            sequence=inter.position,
                            propagated=True,
                            raised_by=call_id,
                        )
                    )
        return sorted(sites, key=lambda s: s.sequence)

    def _group(
        self,
        method: Method,
        key: _PathKey,
        calls: list[Interaction],
        sites: list[_ThrowSite],
        blocks: list[BranchBlock],
        taken_groups: set[str],
    ) -> TestGroup:
        path = [self._branch_ref(block_id, index) for block_id, index in key]
        steering = _steer(key, blocks, sites)
        chosen = set(key) | set(steering)
        own = [i for i in calls if _path_key(i.scope) == key]
        reached = [i for i in calls if _runs(i.scope, chosen)]
        group_sites = [s for s in sites if _runs(s.scope, chosen)]
        mode = GroupMode.EXCEPTION_TRIGGERED if group_sites else GroupMode.NO_EXCEPTION

        steering_refs = [self._branch_ref(block_id, index) for block_id, index in steering]
        stubs = self._stubs(method, reached, sites, [*path, *steering_refs])
        taken_tests: set[str] = set()
        cases: list[TestCase] = []
        for inter in own:
            repeated = sum(1 for i in reached if self._same_call(i, inter)) > 1
            cases.append(
                TestCase(
                    name=unique_name(
                        self._naming.verify_test.apply(
                            method=method.name, collaborator=inter.call.target, call=inter.call.method
                        ),
                        taken_tests,
                    ),
                    assertion=self._verify(inter, repeated),
                    invokes=mode == GroupMode.EXCEPTION_TRIGGERED,
                )
            )

        if mode == GroupMode.EXCEPTION_TRIGGERED:
            site = group_sites[0]
            cases.append(
                TestCase(
                    name=unique_name(
                        self._naming.throw_test.apply(method=method.name, exception=site.throw.exception_type),
                        taken_tests,
                    ),
                    assertion=self._throw(method, site, stubs),
                    invokes=True,
                )
            )
        else:
            for result in method.results:
                if _path_key(result.scope) == key:
                    cases.append(
                        TestCase(
                            name=unique_name(
                                self._naming.result_test.apply(method=method.name, value=result.value),
                                taken_tests,
                            ),
                            assertion=self._result(method, result, stubs),
                        )
                    )

        qualifier = " ".join(
            self._naming.branch_qualifier.format(guard=ref.guard) if ref.guard else "otherwise" for ref in path
        )
        return TestGroup(
            name=unique_name(self._naming.test_group.apply(method=method.name, qualifier=qualifier), taken_groups),
            description=self._describe(method, path),
            path=path,
            steering=steering_refs,
            mode=mode,
            stubs=stubs,
            loops=self._loop_fixtures(method, chosen),
            cases=cases,
        )

    @staticmethod
    def _describe(method: Method, path: list[ScopeRef]) -> str:
        if not path:
            return f"Main path of {method.owner}.{method.name}."
        conditions = " and ".join(f"[{ref.guard}]" if ref.guard else "[else]" for ref in path)
        return f"{method.owner}.{method.name} when {conditions}."

    @staticmethod
    def _same_call(a: Interaction, b: Interaction) -> bool:
        return a.call.target == b.call.target and a.call.method == b.call.method

    # ------------------------------------------------------------------
    # Stubs and fixtures
    # ------------------------------------------------------------------

    def _stubs(
        self,
        method: Method,
        reached: list[Interaction],
        sites: list[_ThrowSite],
        path: list[ScopeRef],
    ) -> list[Stub]:
        raising = {s.raised_by: s.throw.exception_type for s in sites if s.raised_by is not None}
        producers = {
            loop.collection_producer
            for loop in self._model.loops
            if loop.method == method.call_index and loop.collection_producer is not None
        }
        guards = [ref.guard for ref in path if ref.guard]
        taken = {self._mock_name(i.call.target) for i in reached} | {"subject", "result"}
        taken |= {self._naming.variable(p) for p in method.parameters}

        stubs: list[Stub] = []
        for inter in reached:
            if inter.returns is None and inter.index not in raising:
                continue
            value = inter.returns.value if inter.returns else None
            stubs.append(
                Stub(
                    call_id=inter.index,
                    mock=self._mock_name(inter.call.target),
                    method=self._naming.method(inter.call.method),
                    value=value,
                    variable=unique_name(self._naming.variable(value), taken) if value else None,
                    value_id=inter.returns.value_id if inter.returns else None,
                    type_name=inter.returns.type_name if inter.returns else None,
                    sequence=inter.position,
                    single_element=inter.index in producers or any(f.kind == "loop" for f in inter.scope),
                    guard=next((g for g in guards if value and re.search(rf"\b{re.escape(value)}\b", g)), None),
                    raises=raising.get(inter.index),
                )
            )
        return stubs

    def _loop_fixtures(self, method: Method, chosen: set[tuple[int, int]]) -> list[LoopFixture]:
        fixtures = []
        for loop in self._model.loops:
            if loop.method != method.call_index or not _runs(loop.scope, chosen):
                continue
            fixtures.append(
                LoopFixture(
                    block=loop.block_id,
                    label=loop.label,
                    element=self._naming.variable(loop.element) if loop.element else None,
                    collection=self._value_path(loop.collection) if loop.collection else None,
                    producer=loop.collection_producer,
                )
            )
        return fixtures

    # ------------------------------------------------------------------
    # Assertions
    # ------------------------------------------------------------------

    def _verify(self, inter: Interaction, repeated: bool) -> VerifyAssertion:
        return VerifyAssertion(
            call_id=inter.index,
            sequence=inter.position,
            collaborator=inter.call.target,
            mock=self._mock_name(inter.call.target),
            method=self._naming.method(inter.call.method),
            arguments=[self._argument_ref(arg) for arg in inter.call.arguments],
            scope=self._scope_refs(inter.scope),
            repeated=repeated,
        )

    def _result(self, method: Method, result: MethodResult, stubs: list[Stub]) -> ResultAssertion:
        return ResultAssertion(
            expected=self._named_value(result.value, method, stubs, result.value_id),
            type_name=result.type_name,
            sequence=result.position,
            scope=self._scope_refs(result.scope),
        )

    def _throw(self, method: Method, site: _ThrowSite, stubs: list[Stub]) -> ThrowAssertion:
        throw = site.throw
        template = throw.message_template
        arguments: list[MessageArgument] = []
        constant = None
        if template is not None and not site.propagated:
            constant = self._naming.message_constant.apply(exception=throw.exception_type)
            arguments = [
                MessageArgument(placeholder=name, value=self._named_value(name, method, stubs))
                for name in placeholders(template)
            ]
        return ThrowAssertion(
            exception_type=throw.exception_type,
            message_template=template,
            constant=constant,
            arguments=arguments,
            propagated=site.propagated,
            raised_by=site.raised_by,
            sequence=site.sequence,
            scope=self._scope_refs(site.scope),
        )

    # ------------------------------------------------------------------
    # Values and scopes
    # ------------------------------------------------------------------

    def _argument_ref(self, arg: ArgumentRef) -> ValueRef:
        if arg.source == ArgumentSource.LITERAL:
            return ValueRef(text=arg.name, source="literal", variable=arg.name)
        root, _, rest = arg.name.partition(".")
        source = {
            ArgumentSource.INPUT: "input",
            ArgumentSource.RETURN: "stub",
            ArgumentSource.LOOP_ELEMENT: "loop-element",
        }[arg.source]
        return ValueRef(
            text=arg.name,
            source=source,
            variable=self._naming.variable(root),
            attribute=f".{rest}" if rest else "",
            value_id=arg.value_id,
        )

    def _named_value(self, name: str, method: Method, stubs: list[Stub], value_id: str | None = None) -> ValueRef:
        """Resolve a result value or message placeholder against the group's values."""
        variable = self._naming.variable(name)
        if value_id is not None:
            return ValueRef(text=name, source="stub", variable=variable, value_id=value_id)
        for stub in reversed(stubs):
            if stub.value == name:
                return ValueRef(text=name, source="stub", variable=variable, value_id=stub.value_id)
        if name in method.parameters:
            return ValueRef(text=name, source="input", variable=variable)
        if any(loop.element == name for loop in self._model.loops if loop.method == method.call_index):
            return ValueRef(text=name, source="loop-element", variable=variable)
        if name.lower() in _LITERAL_WORDS:
            return ValueRef(text=name, source="literal", variable=name)
        return ValueRef(text=name, source="literal", variable=_literal(name))

    def _value_path(self, text: str) -> str:
        root, _, rest = text.partition(".")
        return self._naming.variable(root) + (f".{rest}" if rest else "")

    def _scope_refs(self, scope: list[ScopeFrame]) -> list[ScopeRef]:
        refs = []
        for frame in scope:
            if frame.kind == "branch":
                refs.append(self._branch_ref(frame.block_id, frame.branch_index))
            else:
                loop = self._loops[frame.block_id]
                refs.append(
                    ScopeRef(
                        kind="loop",
                        block=loop.block_id,
                        label=loop.label,
                        element=self._naming.variable(loop.element) if loop.element else None,
                        collection=self._value_path(loop.collection) if loop.collection else None,
                        position=loop.position,
                    )
                )
        return refs

    def _branch_ref(self, block_id: int, index: int) -> ScopeRef:
        branch = self._branches[block_id].branches[index]
        return ScopeRef(kind="branch", block=block_id, branch=index, guard=branch.guard, position=branch.position)

    # ------------------------------------------------------------------
    # Decision tables
    # ------------------------------------------------------------------

    def _decision_table(self, leaf: ParticipantClass, calls: list[Interaction]) -> DecisionTableSkeleton:
        methods: dict[str, DecisionMethod] = {}
        for inter in calls:
            name = self._naming.method(inter.call.method)
            if name in methods:
                continue
            parameters = self._parameter_names(inter.call.arguments)
            methods[name] = DecisionMethod(
                name=name,
                parameters=parameters,
                returns=inter.returns.type_name if inter.returns else None,
                rows=[DecisionRow(inputs=["None"] * len(parameters), expected="None", placeholder=True)],
            )
        return DecisionTableSkeleton(participant=leaf.name, methods=list(methods.values()))


def _literal(name: str) -> str:
    """Quote a message placeholder that matches no value so it formats to itself."""
    return '"{' + name + '}"'
