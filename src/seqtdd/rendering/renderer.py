# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Rendering of the test-artifact and implementation trees into source files.

Every file is a list of blocks. A block is one declaration the reconciler can
look for in an existing file: a header, an import, a test group, a class, a
method. Only the profile's templates contribute text, so the output depends on
nothing but the two trees, the profile and the base namespace.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field

from seqtdd.artifacts.tree import (
    DecisionTableSkeleton,
    GroupMode,
    LoopFixture,
    ResultAssertion,
    TestArtifactTree,
    TestCase,
    TestGroup,
    TestSuite,
    ThrowAssertion,
    ValueRef,
    VerifyAssertion,
)
from seqtdd.implementation.tree import (
    CallStatement,
    CollaboratorInterface,
    ConditionalNode,
    ImplementationClass,
    ImplementationTree,
    IterationNode,
    LeafScaffold,
    RaiseStatement,
    ReturnStatement,
    Statement,
)
from seqtdd.workspace.naming import simple_guard, to_snake
from seqtdd.workspace.profile import LanguageProfile, default_profile

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############

TEST_ROLE = "test"
DECISION_ROLE = "decision-table"
IMPLEMENTATION_ROLE = "implementation"
INTERFACE_ROLE = "interface"
SCAFFOLD_ROLE = "scaffold"
ERRORS_ROLE = "errors"


@dataclass(frozen=True)
class Block:
    """One declaration of a rendered file.

    Attributes:
        kind: Declaration kind; selects the profile's declaration pattern.
            ``"header"`` blocks exist exactly when their file does.
        name: Declared name.
        text: Rendered source text.
        abstract: The declaration is an abstract type. An existing concrete
            declaration of the same name is a conflict.
    """

    kind: str
    name: str
    text: str
    abstract: bool = False

    @property
    def key(self) -> str:
        return f"{self.kind}:{self.name}"


@dataclass
class RenderedFile:
    path: str
    role: str
    blocks: list[Block] = field(default_factory=list)

    @property
    def content(self) -> str:
        return "".join(b.text for b in self.blocks)


def render_files(
    tests: TestArtifactTree,
    implementation: ImplementationTree,
    profile: LanguageProfile | None = None,
    base_namespace: str = "app",
) -> list[RenderedFile]:
    """Render both trees into files.

    Files come out in a fixed order: test files, decision tables,
    implementation classes, collaborator interfaces, leaf scaffolds and the
    errors module. Files that resolve to the same path are merged, keeping
    the first block of every key.

    Args:
        tests: The test-artifact tree.
        implementation: The implementation tree derived from *tests*.
        profile: Language profile; the built-in profile when omitted.
        base_namespace: Dotted namespace of the generated code.

    Returns:
        The rendered files.
    """
    renderer = _Renderer(profile or default_profile(), base_namespace, implementation)
    files: list[RenderedFile] = []
    files.extend(renderer.test_file(suite) for suite in tests.suites)
    files.extend(renderer.decision_file(table) for table in tests.decision_tables)
    files.extend(renderer.implementation_file(cls) for cls in implementation.classes)
    files.extend(renderer.interface_file(iface) for iface in implementation.interfaces)
    files.extend(renderer.scaffold_file(scaffold) for scaffold in implementation.scaffolds)
    files.append(renderer.errors_file(implementation.exceptions))

    merged = _merge(files)
    logger.debug("Rendered %s files with %s blocks", len(merged), sum(len(f.blocks) for f in merged))
    return merged


# ################
# Implementation
# ################

_LITERAL_TEMPLATES = {
    "true": "literal-true",
    "false": "literal-false",
    "null": "literal-null",
    "none": "literal-null",
    "nil": "literal-null",
}


def _string_text(text: str) -> str:
    """Escape *text* for a slot inside a double-quoted string literal."""
    return json.dumps(text)[1:-1]


def _merge(files: list[RenderedFile]) -> list[RenderedFile]:
    by_path: dict[str, RenderedFile] = {}
    for file in files:
        target = by_path.get(file.path)
        if target is None:
            by_path[file.path] = RenderedFile(path=file.path, role=file.role, blocks=list(file.blocks))
            continue
        keys = {b.key for b in target.blocks}
        for block in file.blocks:
            if block.kind == "header":
                # The header of a merged file still carries the imports its blocks need.
                block = Block("preamble", file.role, "\n" + block.text)
            if block.key not in keys:
                keys.add(block.key)
                target.blocks.append(block)
    return list(by_path.values())


class _Renderer:
    def __init__(self, profile: LanguageProfile, base_namespace: str, implementation: ImplementationTree) -> None:
        self._profile = profile
        self._naming = profile.naming
        self._paths = profile.paths
        self._base = base_namespace
        self._indent = profile.template("indent")
        self._nodes: dict[int, Statement] = {}
        for cls in implementation.classes:
            for method in cls.methods:
                self._index_nodes(method.body)

    def _index_nodes(self, body: list[Statement]) -> None:
        for node in body:
            if isinstance(node, ConditionalNode):
                self._nodes.setdefault(node.block, node)
                for branch in node.branches:
                    self._index_nodes(branch.body)
            elif isinstance(node, IterationNode):
                self._nodes.setdefault(node.block, node)
                self._index_nodes(node.body)

    def _t(self, key: str, **values: str) -> str:
        return self._profile.template(key).format(**values)

    def _path(self, template: str, subject: str = "") -> str:
        return template.format(
            base=self._base,
            base_path=self._base.replace(".", "/"),
            subject=subject,
            subject_snake=to_snake(subject),
        )

    def _module(self, subject: str) -> str:
        return self._path(self._paths.module, subject)

    def _type(self, name: str) -> str:
        return self._naming.type_name(name)

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------

    def _literal(self, ref: ValueRef) -> str:
        template = _LITERAL_TEMPLATES.get(ref.variable.lower())
        return self._t(template) if template else ref.variable

    def _test_value(self, ref: ValueRef, group: TestGroup) -> str:
        if ref.source == "literal":
            return self._literal(ref)
        variable = ref.variable
        if ref.source == "stub":
            stub = next((s for s in group.stubs if s.value_id == ref.value_id and s.variable), None)
            if stub is not None:
                variable = stub.variable or variable
        return self._t("value-ref", name=variable) + ref.attribute

    def _impl_value(self, ref: ValueRef) -> str:
        if ref.source == "literal":
            return self._literal(ref)
        return ref.variable + ref.attribute

    # ------------------------------------------------------------------
    # Test files
    # ------------------------------------------------------------------

    def test_file(self, suite: TestSuite) -> RenderedFile:
        subject = self._type(suite.subject)
        blocks = [
            Block("header", "header", self._t("test-header", subject=subject)),
            Block("import", subject, self._t("import", module=self._module(suite.subject), name=subject)),
        ]
        exceptions: list[str] = []
        for group in suite.groups:
            raised = [s.raises for s in group.stubs if s.raises] + [t.exception_type for t in group.throws]
            exceptions.extend(e for e in raised if e not in exceptions)
        errors_module = self._path(self._paths.errors_module)
        blocks.extend(Block("import", e, self._t("import", module=errors_module, name=e)) for e in exceptions)
        blocks.extend(Block("mock", m.name, self._t("mock-declaration", mock=m.name)) for m in suite.mocks)
        for method in suite.methods:
            for group in method.groups:
                blocks.append(Block("group", group.name, self._group(suite, method.name, method.parameters, group)))
        return RenderedFile(path=self._path(self._paths.test_file, suite.subject), role=TEST_ROLE, blocks=blocks)

    def _group(self, suite: TestSuite, method: str, parameters: list[str], group: TestGroup) -> str:
        text = self._t(
            "group-header",
            group=group.name,
            description=_string_text(group.description),
            fixtures="".join(f", {m.name}" for m in suite.mocks),
        )
        defined: set[str] = set()

        def fixture(name: str) -> str:
            if name in defined:
                return ""
            defined.add(name)
            return self._t("fixture-value", name=name)

        sourced = self._sourced_loops(group)
        lines = [self._t("setup-mock", mock=m.name) for m in suite.mocks]
        defined.update(m.name for m in suite.mocks)
        lines.extend(fixture(p) for p in parameters)
        lines.extend(fixture(s.variable) for s in group.stubs if s.variable)
        lines.extend(self._loop_fixture(loop, group, fixture) for loop in group.loops)
        lines.extend(fixture(node.element) for node in sourced)
        lines.extend(self._guard_fixtures(group, parameters, sourced))
        lines.extend(self._stub_lines(group))
        lines.append(
            self._t(
                "subject-construction",
                subject=self._type(suite.subject),
                arguments=", ".join(
                    self._t("keyword-argument", name=m.name, value=self._t("value-ref", name=m.name))
                    for m in suite.mocks
                ),
            )
        )
        lines.extend(self._helper_stubs(group, sourced))
        arguments = ", ".join(self._t("value-ref", name=p) for p in parameters)
        if group.mode == GroupMode.NO_EXCEPTION:
            lines.append(self._t("setup-invoke", method=method, arguments=arguments))
        text += "".join(lines)

        for case in group.cases:
            text += self._case(suite, method, arguments, group, case)
        return text

    def _loop_fixture(self, loop: LoopFixture, group: TestGroup, fixture) -> str:
        if not loop.element or not loop.collection:
            return ""
        root, dot, rest = loop.collection.partition(".")
        producer = next((s for s in group.stubs if s.call_id == loop.producer and s.variable), None)
        if producer is not None:
            root = producer.variable or root
        return fixture(loop.element) + self._t("fixture-collection", collection=root + dot + rest, element=loop.element)

    def _stub_lines(self, group: TestGroup) -> list[str]:
        lines: list[str] = []
        sequenced: set[tuple[str, str]] = set()
        for stub in group.stubs:
            if stub.guard:
                lines.append(self._t("stub-guard-note", guard=" ".join(stub.guard.split())))
            if stub.raises:
                lines.append(self._t("stub-raises", mock=stub.mock, method=stub.method, exception=stub.raises))
                continue
            if not stub.variable:
                continue
            same = [s for s in group.stubs if s.mock == stub.mock and s.method == stub.method and s.variable]
            if len(same) == 1:
                lines.append(self._t("stub", mock=stub.mock, method=stub.method, value=stub.variable))
            elif (stub.mock, stub.method) not in sequenced:
                sequenced.add((stub.mock, stub.method))
                values = ", ".join(self._t("value-ref", name=s.variable or "") for s in same)
                lines.append(self._t("stub-sequence", mock=stub.mock, method=stub.method, values=values))
        return lines

    def _sourced_loops(self, group: TestGroup) -> list[IterationNode]:
        """Loops of the group whose items come from a loop-source helper."""
        nodes = [self._nodes.get(loop.block) for loop in group.loops]
        return [n for n in nodes if isinstance(n, IterationNode) and n.source]

    def _driven_branches(self, group: TestGroup) -> list[tuple[ConditionalNode, int]]:
        """Every conditional the group's setup passes through, with the branch it must take."""
        driven = []
        for ref in [*group.path, *group.steering]:
            node = self._nodes.get(ref.block)
            if isinstance(node, ConditionalNode):
                driven.append((node, ref.branch))
        return driven

    def _guard_fixtures(self, group: TestGroup, parameters: list[str], sourced: list[IterationNode]) -> list[str]:
        """Pin the values read by simple ``name.attr`` guards.

        Earlier sibling branches get the value that skips them, the driven
        branch the value that takes it.
        """
        elements = {loop.element for loop in group.loops if loop.element} | {n.element for n in sourced}
        lines: list[str] = []
        for node, index in self._driven_branches(group):
            for branch in node.branches:
                if branch.index > index:
                    break
                parsed = simple_guard(branch.guard) if branch.condition and branch.guard else None
                if parsed is None:
                    continue
                negated, root, attribute = parsed
                stub = next((s for s in reversed(group.stubs) if s.value == root and s.variable), None)
                if root in elements or (stub is None and root in parameters):
                    variable = root
                elif stub is not None:
                    variable = stub.variable
                else:
                    continue
                taken = (branch.index == index) != negated
                value = self._t("literal-true" if taken else "literal-false")
                lines.append(self._t("guard-fixture", target=f"{variable}{attribute}", value=value))
        return lines

    def _helper_stubs(self, group: TestGroup, sourced: list[IterationNode]) -> list[str]:
        """Drive the predicate and loop-source helpers the group's setup reaches."""
        lines: list[str] = []
        for node, index in self._driven_branches(group):
            for branch in node.branches:
                if branch.index > index:
                    break
                if branch.predicate:
                    chosen = "literal-true" if branch.index == index else "literal-false"
                    lines.append(self._t("helper-stub", name=branch.predicate, value=self._t(chosen)))
        for node in sourced:
            value = "[" + self._t("value-ref", name=node.element) + "]"
            lines.append(self._t("helper-stub", name=node.source, value=value))
        return lines

    def _case(self, suite: TestSuite, method: str, arguments: str, group: TestGroup, case: TestCase) -> str:
        assertion = case.assertion
        if isinstance(assertion, VerifyAssertion):
            invoke = ""
            if case.invokes:
                exception = group.throws[0].exception_type if group.throws else "Exception"
                invoke = self._t("invoke-suppressed", exception=exception, method=method, arguments=arguments)
            return self._t(
                "verify-test",
                test=case.name,
                invoke=invoke,
                mock=assertion.mock,
                method=assertion.method,
                check=self._t("verify-any" if assertion.repeated else "verify-once"),
                arguments=", ".join(self._test_value(a, group) for a in assertion.arguments),
            )
        if isinstance(assertion, ResultAssertion):
            return self._t("result-test", test=case.name, expected=self._test_value(assertion.expected, group))
        if not isinstance(assertion, ThrowAssertion):
            raise TypeError(f"Unsupported assertion in '{case.name}': {type(assertion).__name__}")
        message_check = ""
        if assertion.constant:
            message_check = self._t(
                "throw-message-check",
                subject=self._type(suite.subject),
                constant=assertion.constant,
                arguments=", ".join(
                    f"{a.placeholder}={self._test_value(a.value, group)}" for a in assertion.arguments
                ),
            )
        return self._t(
            "throw-test",
            test=case.name,
            exception=assertion.exception_type,
            method=method,
            arguments=arguments,
            message_check=message_check,
        )

    # ------------------------------------------------------------------
    # Decision tables
    # ------------------------------------------------------------------

    def decision_file(self, table: DecisionTableSkeleton) -> RenderedFile:
        participant = self._type(table.participant)
        pending = self._t("literal-true" if table.status.value == "pending" else "literal-false")
        blocks = [
            Block(
                "header",
                "header",
                self._t(
                    "decision-header",
                    participant=participant,
                    module=self._module(table.participant),
                    pending=pending,
                ),
            )
        ]
        for method in table.methods:
            rows = "".join(
                self._t("decision-row", values=", ".join([*row.inputs, row.expected])) for row in method.rows
            )
            blocks.append(
                Block(
                    "decision",
                    method.name,
                    self._t(
                        "decision-method",
                        participant=participant,
                        method=method.name,
                        argnames=", ".join([*method.parameters, "expected"]),
                        rows=rows,
                        arguments=", ".join(method.parameters),
                    ),
                )
            )
        return RenderedFile(
            path=self._path(self._paths.decision_table_file, table.participant), role=DECISION_ROLE, blocks=blocks
        )

    # ------------------------------------------------------------------
    # Implementation files
    # ------------------------------------------------------------------

    def implementation_file(self, cls: ImplementationClass) -> RenderedFile:
        subject = self._type(cls.subject)
        if cls.collaborators:
            assignments = "".join(self._t("assignment", name=c) for c in cls.collaborators)
            description = f"Coordinates {', '.join(cls.collaborators)}."
        else:
            assignments = self._t("empty-body", indent=self._indent * 2)
            description = f"{subject} orchestration."
        blocks = [
            Block(
                "header",
                "header",
                self._t("impl-header", subject=subject, errors_module=self._path(self._paths.errors_module)),
            ),
            Block(
                "class",
                subject,
                self._t(
                    "class-header",
                    subject=subject,
                    description=description,
                    parameters="".join(f", {c}" for c in cls.collaborators),
                    assignments=assignments,
                ),
            ),
        ]
        blocks.extend(
            Block("constant", c.name, self._t("constant", constant=c.name, literal=json.dumps(c.template)))
            for c in cls.constants
        )
        for method in cls.methods:
            body = self._statements(method.body, 2) or self._t("empty-body", indent=self._indent * 2)
            parameters = "".join(f", {p}" for p in method.parameters)
            signature = self._t("method-signature", method=method.name, parameters=parameters)
            blocks.append(Block("method", method.name, signature + body))
        for helper in cls.helpers:
            text = _string_text(helper.text)
            if helper.kind == "predicate":
                rendered = self._t("predicate", predicate=helper.name, guard=text)
            else:
                rendered = self._t("iteration-source-method", name=helper.name, label=text)
            blocks.append(Block(helper.kind, helper.name, rendered))
        return RenderedFile(
            path=self._path(self._paths.implementation_file, cls.subject), role=IMPLEMENTATION_ROLE, blocks=blocks
        )

    def _statements(self, body: list[Statement], level: int) -> str:
        indent = self._indent * level
        text = ""
        for node in body:
            if isinstance(node, CallStatement):
                text += self._t(
                    "call-statement",
                    indent=indent,
                    binding=self._t("binding", name=node.binding) if node.binding else "",
                    mock=node.mock,
                    method=node.method,
                    arguments=", ".join(self._impl_value(a) for a in node.arguments),
                )
            elif isinstance(node, ReturnStatement):
                text += self._t("return-statement", indent=indent, value=self._impl_value(node.value))
            elif isinstance(node, RaiseStatement):
                message = ""
                if node.constant:
                    message = self._t(
                        "raise-message",
                        constant=node.constant,
                        arguments=", ".join(f"{a.placeholder}={self._impl_value(a.value)}" for a in node.arguments),
                    )
                exception = self._t("exception-ref", exception=node.exception_type)
                text += self._t("raise-statement", indent=indent, exception=exception, message=message)
            elif isinstance(node, ConditionalNode):
                text += self._conditional(node, level)
            elif isinstance(node, IterationNode):
                collection = node.collection or self._t("iteration-source", name=node.source or "")
                text += self._t("iteration", indent=indent, element=node.element, collection=collection)
                text += self._statements(node.body, level + 1) or self._t("empty-body", indent=indent + self._indent)
        return text

    def _conditional(self, node: ConditionalNode, level: int) -> str:
        indent = self._indent * level
        text = ""
        for i, branch in enumerate(node.branches):
            if branch.condition is None and branch.predicate is None:
                text += self._t("conditional-else", indent=indent)
            else:
                condition = branch.condition or self._t("predicate-condition", predicate=branch.predicate)
                text += self._t("conditional-if" if i == 0 else "conditional-elif", indent=indent, condition=condition)
            text += self._statements(branch.body, level + 1) or self._t("empty-body", indent=indent + self._indent)
        return text

    # ------------------------------------------------------------------
    # Interfaces, scaffolds and errors
    # ------------------------------------------------------------------

    def interface_file(self, iface: CollaboratorInterface) -> RenderedFile:
        name = self._type(iface.name)
        blocks = [
            Block("header", "header", self._t("interface-header", name=name)),
            Block(
                "interface",
                name,
                self._t("interface-class", name=name, users=", ".join(self._type(u) for u in iface.users)),
                abstract=True,
            ),
        ]
        blocks.extend(
            Block(
                "interface-method",
                m.name,
                self._t("interface-method", method=m.name, parameters="".join(f", {p}" for p in m.parameters)),
            )
            for m in iface.methods
        )
        return RenderedFile(path=self._path(self._paths.interface_file, iface.name), role=INTERFACE_ROLE, blocks=blocks)

    def scaffold_file(self, scaffold: LeafScaffold) -> RenderedFile:
        name = self._type(scaffold.name)
        blocks = [
            Block("header", "header", self._t("scaffold-header", name=name)),
            Block("scaffold", name, self._t("scaffold-class", name=name)),
        ]
        blocks.extend(
            Block(
                "scaffold-method",
                m.name,
                self._t(
                    "scaffold-method",
                    name=name,
                    method=m.name,
                    parameters="".join(f", {p}" for p in m.parameters),
                    status=scaffold.status,
                ),
            )
            for m in scaffold.methods
        )
        return RenderedFile(
            path=self._path(self._paths.scaffold_file, scaffold.name), role=SCAFFOLD_ROLE, blocks=blocks
        )

    def errors_file(self, exceptions: list[str]) -> RenderedFile:
        blocks = [Block("header", "header", self._t("errors-header"))]
        blocks.extend(Block("exception", e, self._t("exception-class", exception=e)) for e in exceptions)
        return RenderedFile(path=self._path(self._paths.errors_file), role=ERRORS_ROLE, blocks=blocks)
