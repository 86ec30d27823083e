# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Quality gate for synthesized test artifacts.

The gate runs after test synthesis and before anything is persisted. It
cross-references the test-artifact tree with the semantic model and fails
the run with the names of every failed check.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field

from seqtdd.artifacts.tree import (
    DecisionStatus,
    GroupMode,
    MethodUnderTest,
    TestArtifactTree,
    TestGroup,
    VerifyAssertion,
)
from seqtdd.model.entities import ScopeFrame, SemanticModel
from seqtdd.reconcile.reconciler import FileMode, ReconcilePlan

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############

ARROW_PARITY = "arrow-parity"
DATA_FLOW_INTEGRITY = "data-flow-integrity"
PLACEMENT = "placement"
PATTERN_RULES = "pattern-rules"
IMPLEMENTATION_READINESS = "implementation-readiness"


@dataclass(frozen=True)
class GateFailure:
    """A failed gate check.

    Attributes:
        check: Name of the failed check.
        message: Human-readable description of the failure.
    """

    check: str
    message: str


@dataclass
class GateResult:
    """Result of running gate checks.

    Attributes:
        checks: Names of the checks that ran.
        failures: Every failure found.
    """

    checks: list[str] = field(default_factory=list)
    failures: list[GateFailure] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        """Return True if no check failed."""
        return not self.failures

    @property
    def failed_checks(self) -> list[str]:
        return sorted({f.check for f in self.failures})

    def raise_for_failures(self) -> None:
        """Raise QualityGateError when any check failed."""
        if self.failures:
            raise QualityGateError(self.failures)


class QualityGateError(Exception):
    """Raised when one or more gate checks fail."""

    def __init__(self, failures: list[GateFailure]) -> None:
        lines = [f"{f.check}: {f.message}" for f in failures]
        super().__init__("Quality gate failed:\n" + "\n".join(f"  {line}" for line in lines))
        self.failures = list(failures)

    @property
    def failed_checks(self) -> list[str]:
        return sorted({f.check for f in self.failures})


def run_quality_gate(
    tree: TestArtifactTree,
    model: SemanticModel,
    *,
    plan: ReconcilePlan | None = None,
) -> GateResult:
    """Run the gate checks on a synthesized tree.

    Checks performed:

    1. **Arrow parity**: one verification per call, every stub bound to
       exactly one return, no group stubbing a return twice, and at most one
       matching result check per path.

    2. **Data-flow integrity**: every data pipe's consumer argument carries
       the producer's value identity, the producing stub is configured in
       the same group, and verifications follow interaction order.

    3. **Placement**: run when *plan* is given, see :func:`check_placement`.

    4. **Pattern rules**: one mock per collaborator, one group per branch,
       single-element loop data, exception groups that invoke the method
       under test only inside their tests, setup invocations that steer
       clear of every raise, and decision tables for every computational
       leaf.

    Args:
        tree: The test-artifact tree.
        model: The semantic model the tree was synthesized from.
        plan: Planned file operations, when already known.

    Returns:
        A passing :class:`GateResult`.

    Raises:
        QualityGateError: If any check fails.
    """
    result = GateResult(checks=[ARROW_PARITY, DATA_FLOW_INTEGRITY, PATTERN_RULES])
    result.failures.extend(_check_arrow_parity(tree, model))
    result.failures.extend(_check_data_flow(tree, model))
    result.failures.extend(_check_pattern_rules(tree, model))
    if plan is not None:
        placement = check_placement(plan)
        result.checks.append(PLACEMENT)
        result.failures.extend(placement.failures)

    for failure in result.failures:
        logger.debug("Gate check %s failed: %s", failure.check, failure.message)
    result.raise_for_failures()
    return result


def check_placement(plan: ReconcilePlan) -> GateResult:
    """Check that no planned operation alters existing file content.

    A CREATE must target a file that does not exist yet. An UPDATE must keep
    the existing content as an untouched prefix of the new content, so every
    change falls in the new-additions region at the end of the file.
    """
    result = GateResult(checks=[PLACEMENT])
    for op in plan.operations:
        if op.mode == FileMode.CREATE and op.previous is not None:
            result.failures.append(GateFailure(PLACEMENT, f"'{op.path}' exists but is planned as CREATE"))
        if op.mode == FileMode.UPDATE:
            if op.previous is None:
                result.failures.append(GateFailure(PLACEMENT, f"'{op.path}' is planned as UPDATE but does not exist"))
            elif not op.content.startswith(op.previous):
                result.failures.append(
                    GateFailure(PLACEMENT, f"UPDATE of '{op.path}' changes content outside the new-additions region")
                )
    return result


def check_implementation_readiness(tree: TestArtifactTree) -> GateResult:
    """Check that every decision table has been completed by a human.

    Pending tables are fine for generating tests but leave the leaf scaffolds
    without specified behaviour.
    """
    result = GateResult(checks=[IMPLEMENTATION_READINESS])
    for table in tree.pending_tables:
        result.failures.append(
            GateFailure(IMPLEMENTATION_READINESS, f"Decision table for '{table.participant}' is pending human input")
        )
    return result


# ################
# Implementation
# ################


def _groups(tree: TestArtifactTree) -> list[TestGroup]:
    return [g for suite in tree.suites for g in suite.groups]


def _path_key(scope: list[ScopeFrame]) -> tuple[tuple[int, int], ...]:
    return tuple((f.block_id, f.branch_index) for f in scope if f.kind == "branch")


def _check_arrow_parity(tree: TestArtifactTree, model: SemanticModel) -> list[GateFailure]:
    failures: list[GateFailure] = []
    groups = _groups(tree)
    interactions = {i.index: i for i in model.interactions}

    verifies = [v for g in groups for v in g.verifies]
    if len(verifies) != len(model.interactions):
        failures.append(
            GateFailure(
                ARROW_PARITY,
                f"{len(model.interactions)} call arrows but {len(verifies)} verification assertions",
            )
        )
    per_call = Counter(v.call_id for v in verifies)
    for inter in model.interactions:
        if per_call[inter.index] != 1:
            failures.append(
                GateFailure(
                    ARROW_PARITY,
                    f"Call {inter.call.target}.{inter.call.method} (line {inter.call.line}) has "
                    f"{per_call[inter.index]} verification assertions",
                )
            )

    stubbed: set[int] = set()
    for group in groups:
        counts = Counter(s.call_id for s in group.stubs)
        for call_id, count in counts.items():
            if count > 1:
                failures.append(GateFailure(ARROW_PARITY, f"Group '{group.name}' stubs call {call_id} {count} times"))
        for stub in group.stubs:
            inter = interactions.get(stub.call_id)
            if inter is None:
                failures.append(
                    GateFailure(ARROW_PARITY, f"Stub in '{group.name}' refers to unknown call {stub.call_id}")
                )
                continue
            if stub.value is None:
                if stub.raises is None:
                    failures.append(GateFailure(ARROW_PARITY, f"Stub in '{group.name}' neither returns nor raises"))
                continue
            if inter.returns is None or inter.returns.value_id != stub.value_id:
                failures.append(
                    GateFailure(ARROW_PARITY, f"Stub '{stub.variable}' in '{group.name}' matches no return arrow")
                )
            stubbed.add(stub.call_id)
        if len(group.results) > 1:
            failures.append(GateFailure(ARROW_PARITY, f"Group '{group.name}' has {len(group.results)} result checks"))

    for inter in model.interactions:
        if inter.returns is not None and inter.index not in stubbed:
            failures.append(
                GateFailure(ARROW_PARITY, f"Return '{inter.returns.value}' (line {inter.returns.line}) has no stub")
            )

    result_counts = Counter(r.sequence for g in groups for r in g.results)
    throwing_paths = {
        tuple((ref.block, ref.branch) for ref in g.path) for g in groups if g.mode == GroupMode.EXCEPTION_TRIGGERED
    }
    for method in model.methods:
        for expected in method.results:
            count = result_counts[expected.position]
            if count > 1 or (count == 0 and _path_key(expected.scope) not in throwing_paths):
                failures.append(
                    GateFailure(
                        ARROW_PARITY,
                        f"Result '{expected.value}' of {method.owner}.{method.name} has {count} result checks",
                    )
                )
    known_results = {r.position for m in model.methods for r in m.results}
    for group in groups:
        for assertion in group.results:
            if assertion.sequence not in known_results:
                failures.append(
                    GateFailure(ARROW_PARITY, f"Result check in '{group.name}' matches no result of the diagram")
                )
    return failures


def _check_data_flow(tree: TestArtifactTree, model: SemanticModel) -> list[GateFailure]:
    failures: list[GateFailure] = []
    located: dict[int, tuple[TestGroup, VerifyAssertion]] = {}
    for group in _groups(tree):
        stub_ids = {s.value_id for s in group.stubs if s.value_id is not None}
        previous = -1
        for verify in group.verifies:
            located[verify.call_id] = (group, verify)
            if verify.sequence <= previous:
                failures.append(
                    GateFailure(DATA_FLOW_INTEGRITY, f"Verifications in '{group.name}' are out of interaction order")
                )
            previous = verify.sequence
            for arg in verify.arguments:
                if arg.source == "stub" and arg.value_id not in stub_ids:
                    failures.append(
                        GateFailure(
                            DATA_FLOW_INTEGRITY,
                            f"Argument '{arg.text}' of {verify.mock}.{verify.method} in '{group.name}' "
                            f"is not produced by a stub of the group",
                        )
                    )

    for pipe in model.pipes:
        entry = located.get(pipe.consumer)
        if entry is None:
            continue
        _, verify = entry
        if not any(a.text == pipe.variable and a.value_id == pipe.value_id for a in verify.arguments):
            failures.append(
                GateFailure(
                    DATA_FLOW_INTEGRITY,
                    f"Argument '{pipe.variable}' of {verify.mock}.{verify.method} does not carry value {pipe.value_id}",
                )
            )
    for inter in model.interactions:
        entry = located.get(inter.index)
        if entry is not None and entry[1].sequence != inter.position:
            failures.append(
                GateFailure(DATA_FLOW_INTEGRITY, f"Verification of call {inter.index} is out of source order")
            )
    return failures


def _check_pattern_rules(tree: TestArtifactTree, model: SemanticModel) -> list[GateFailure]:
    failures: list[GateFailure] = []
    groups = _groups(tree)

    computational: set[str] = set()
    for suite in tree.suites:
        counts = Counter(m.collaborator for m in suite.mocks)
        for collaborator, count in counts.items():
            if count != 1:
                failures.append(
                    GateFailure(PATTERN_RULES, f"Suite '{suite.subject}' declares {count} mocks for '{collaborator}'")
                )
        mocked = set(counts)
        for group in suite.groups:
            for verify in group.verifies:
                if verify.collaborator not in mocked:
                    failures.append(
                        GateFailure(PATTERN_RULES, f"Suite '{suite.subject}' has no mock for '{verify.collaborator}'")
                    )
        computational |= {m.collaborator for m in suite.mocks if m.kind == "computational"}
        for method in suite.methods:
            failures.extend(_check_setup_avoids_raises(method))

    method_ids = {m.call_index for m in model.methods}
    branch_groups = Counter((g.path[-1].block, g.path[-1].branch) for g in groups if g.path)
    for block in model.branches:
        if block.method not in method_ids:
            continue
        for branch in block.branches:
            count = branch_groups[(block.block_id, branch.index)]
            if count != 1:
                failures.append(
                    GateFailure(
                        PATTERN_RULES,
                        f"Branch {branch.index} of the 'alt' block on line {block.line} has {count} test groups",
                    )
                )

    in_loop = {i.index for i in model.interactions if any(f.kind == "loop" for f in i.scope)}
    for group in groups:
        for fixture in group.loops:
            if fixture.size != 1:
                failures.append(
                    GateFailure(PATTERN_RULES, f"Loop '{fixture.label}' in '{group.name}' has {fixture.size} elements")
                )
        for stub in group.stubs:
            if stub.call_id in in_loop and not stub.single_element:
                failures.append(
                    GateFailure(PATTERN_RULES, f"Stub '{stub.variable}' in '{group.name}' is not single-element")
                )
        failures.extend(_check_throw_placement(group))

    tables = Counter(t.participant for t in tree.decision_tables)
    for participant in sorted(computational):
        if tables[participant] != 1:
            failures.append(
                GateFailure(
                    PATTERN_RULES, f"Computational leaf '{participant}' has {tables[participant]} decision tables"
                )
            )
    for table in tree.decision_tables:
        placeholders = any(row.placeholder for m in table.methods for row in m.rows)
        if table.status == DecisionStatus.COMPLETE and placeholders:
            failures.append(
                GateFailure(
                    PATTERN_RULES, f"Decision table for '{table.participant}' is complete but has placeholder rows"
                )
            )
        if table.status == DecisionStatus.PENDING and not placeholders:
            failures.append(
                GateFailure(PATTERN_RULES, f"Decision table for '{table.participant}' is not marked for human input")
            )
    return failures


def _check_setup_avoids_raises(method: MethodUnderTest) -> list[GateFailure]:
    """A group that invokes the method under test in setup must steer clear of its raises."""
    failures: list[GateFailure] = []
    raises = [t for g in method.groups for t in g.throws]
    for group in method.groups:
        if group.mode != GroupMode.NO_EXCEPTION:
            continue
        taken = {(ref.block, ref.branch) for ref in [*group.path, *group.steering]}
        for throw in raises:
            if {(ref.block, ref.branch) for ref in throw.scope if ref.kind == "branch"} <= taken:
                failures.append(
                    GateFailure(PATTERN_RULES, f"Setup of '{group.name}' reaches the raise of {throw.exception_type}")
                )
                break
    return failures


def _check_throw_placement(group: TestGroup) -> list[GateFailure]:
    """An exception path invokes the method under test only inside its tests, never in setup."""
    failures: list[GateFailure] = []
    names = Counter(c.name for c in group.cases)
    for name, count in names.items():
        if count > 1:
            failures.append(GateFailure(PATTERN_RULES, f"Group '{group.name}' has {count} tests named '{name}'"))

    if group.mode == GroupMode.NO_EXCEPTION:
        if group.throws or any(c.invokes for c in group.cases):
            failures.append(
                GateFailure(PATTERN_RULES, f"Group '{group.name}' invokes the method under test outside setup")
            )
        return failures

    if len(group.throws) != 1:
        failures.append(
            GateFailure(PATTERN_RULES, f"Exception group '{group.name}' has {len(group.throws)} raise checks")
        )
    if group.results:
        failures.append(GateFailure(PATTERN_RULES, f"Exception group '{group.name}' checks a result"))
    if not all(c.invokes for c in group.cases):
        failures.append(
            GateFailure(
                PATTERN_RULES, f"Exception group '{group.name}' relies on setup to invoke the method under test"
            )
        )
    return failures
