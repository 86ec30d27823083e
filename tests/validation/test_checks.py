# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Unit tests for the quality gate."""

import pytest

from seqtdd.artifacts.tree import TestArtifactTree
from seqtdd.compiler.classifier import classify
from seqtdd.compiler.semantic_analysis import build_model
from seqtdd.model.entities import SemanticModel
from seqtdd.parser import parse
from seqtdd.reconcile.reconciler import FileMode, FileOperation, ReconcilePlan
from seqtdd.synthesis.verification import synthesize_tests
from seqtdd.validation.checks import (
    ARROW_PARITY,
    DATA_FLOW_INTEGRITY,
    IMPLEMENTATION_READINESS,
    PATTERN_RULES,
    PLACEMENT,
    QualityGateError,
    check_implementation_readiness,
    check_placement,
    run_quality_gate,
)

# ###############
# Test Helpers
# ###############


def _build(source: str) -> tuple[TestArtifactTree, SemanticModel]:
    model = build_model(parse(source))
    return synthesize_tests(model, classify(model)), model


def _replace_group(tree: TestArtifactTree, index: int, **update: object) -> TestArtifactTree:
    suite = tree.suites[0]
    method = suite.methods[0]
    groups = list(method.groups)
    groups[index] = groups[index].model_copy(update=update)
    method = method.model_copy(update={"groups": groups})
    suite = suite.model_copy(update={"methods": [method]})
    return tree.model_copy(update={"suites": [suite]})


def _failed_checks(tree: TestArtifactTree, model: SemanticModel) -> list[str]:
    with pytest.raises(QualityGateError) as exc_info:
        run_quality_gate(tree, model)
    return exc_info.value.failed_checks


BRANCHES = """\
[-> Svc : handle(req)
Svc -> ARepository : a0(req)
ARepository --> Svc : r0
alt [r0.valid]
Svc -> ARepository : a1(r0)
ARepository --> Svc : r1
Svc -> ARepository : a2(r1)
ARepository --> Svc : r2
else
Svc -> BGateway : b1(req)
BGateway --> Svc : s1
end
"""

CANCEL = """\
[-> OrderService : cancel(id)
OrderService -> OrderRepository : load(id)
OrderRepository --> OrderService : order
alt [order.shipped]
OrderService -> OrderService : <<throws>> AlreadyShipped("Order {id} already shipped")
else
OrderService -> OrderRepository : delete(order.id)
end
"""

PRICING = """\
[-> Checkout : total(cart)
Checkout -> CartRepository : load(cart.id)
CartRepository --> Checkout : order
loop for each item in order.items
Checkout -> PriceCalculator : price(item)
PriceCalculator --> Checkout : amount
end
"""


# ###############
# Passing Trees
# ###############


class TestPassingTrees:
    @pytest.mark.parametrize("source", [BRANCHES, CANCEL, PRICING])
    def test_synthesized_tree_passes(self, source: str) -> None:
        tree, model = _build(source)
        result = run_quality_gate(tree, model)
        assert result.passed
        assert result.checks == [ARROW_PARITY, DATA_FLOW_INTEGRITY, PATTERN_RULES]

    def test_placement_runs_when_plan_given(self) -> None:
        tree, model = _build(CANCEL)
        plan = ReconcilePlan(operations=[FileOperation(path="a.py", mode=FileMode.CREATE, content="x\n")])
        result = run_quality_gate(tree, model, plan=plan)
        assert PLACEMENT in result.checks


# ###############
# Arrow Parity
# ###############


class TestArrowParity:
    def test_missing_verification(self) -> None:
        tree, model = _build(BRANCHES)
        group = tree.suites[0].groups[1]
        tree = _replace_group(tree, 1, cases=group.cases[1:])
        assert ARROW_PARITY in _failed_checks(tree, model)

    def test_return_stubbed_twice(self) -> None:
        tree, model = _build(BRANCHES)
        group = tree.suites[0].groups[0]
        tree = _replace_group(tree, 0, stubs=[*group.stubs, group.stubs[0]])
        assert ARROW_PARITY in _failed_checks(tree, model)

    def test_missing_result_check(self) -> None:
        tree, model = _build(PRICING)
        group = tree.suites[0].groups[0]
        tree = _replace_group(tree, 0, cases=[c for c in group.cases if c.assertion.kind != "result"])
        assert _failed_checks(tree, model) == [ARROW_PARITY]

    def test_failure_message_names_the_call(self) -> None:
        tree, model = _build(BRANCHES)
        group = tree.suites[0].groups[1]
        tree = _replace_group(tree, 1, cases=group.cases[1:])
        with pytest.raises(QualityGateError) as exc_info:
            run_quality_gate(tree, model)
        assert "ARepository.a1" in str(exc_info.value)


# ###############
# Data Flow
# ###############


class TestDataFlow:
    def test_verifications_out_of_order(self) -> None:
        tree, model = _build(BRANCHES)
        group = tree.suites[0].groups[1]
        tree = _replace_group(tree, 1, cases=list(reversed(group.cases[:2])) + group.cases[2:])
        assert DATA_FLOW_INTEGRITY in _failed_checks(tree, model)

    def test_argument_without_producing_stub(self) -> None:
        tree, model = _build(BRANCHES)
        group = tree.suites[0].groups[1]
        tree = _replace_group(tree, 1, stubs=[s for s in group.stubs if s.method != "a1"])
        assert DATA_FLOW_INTEGRITY in _failed_checks(tree, model)


# ###############
# Pattern Rules
# ###############


class TestPatternRules:
    def test_exception_group_invoking_in_setup(self) -> None:
        tree, model = _build(CANCEL)
        group = tree.suites[0].groups[1]
        cases = [c.model_copy(update={"invokes": False}) for c in group.cases]
        tree = _replace_group(tree, 1, cases=cases)
        assert _failed_checks(tree, model) == [PATTERN_RULES]

    def test_missing_decision_table(self) -> None:
        tree, model = _build(PRICING)
        tree = tree.model_copy(update={"decision_tables": []})
        assert _failed_checks(tree, model) == [PATTERN_RULES]

    def test_multi_element_loop_stub(self) -> None:
        tree, model = _build(PRICING)
        group = tree.suites[0].groups[0]
        stubs = [s.model_copy(update={"single_element": False}) for s in group.stubs]
        tree = _replace_group(tree, 0, stubs=stubs)
        assert _failed_checks(tree, model) == [PATTERN_RULES]

    def test_merged_branch_groups(self) -> None:
        tree, model = _build(CANCEL)
        method = tree.suites[0].methods[0]
        method = method.model_copy(update={"groups": method.groups[:2]})
        suite = tree.suites[0].model_copy(update={"methods": [method]})
        tree = tree.model_copy(update={"suites": [suite]})
        assert PATTERN_RULES in _failed_checks(tree, model)

    def test_setup_steered_into_raise(self) -> None:
        tree, model = _build(CANCEL)
        raising = tree.suites[0].groups[1]
        tree = _replace_group(tree, 0, steering=list(raising.path))
        assert _failed_checks(tree, model) == [PATTERN_RULES]


# ###############
# Placement and Readiness
# ###############


class TestPlacementAndReadiness:
    def test_append_only_update_passes(self) -> None:
        plan = ReconcilePlan(
            operations=[FileOperation(path="a.py", mode=FileMode.UPDATE, content="old\nnew\n", previous="old\n")]
        )
        assert check_placement(plan).passed

    def test_update_rewriting_existing_content_fails(self) -> None:
        plan = ReconcilePlan(
            operations=[FileOperation(path="a.py", mode=FileMode.UPDATE, content="changed\nnew\n", previous="old\n")]
        )
        result = check_placement(plan)
        assert result.failed_checks == [PLACEMENT]
        with pytest.raises(QualityGateError):
            result.raise_for_failures()

    def test_create_over_existing_file_fails(self) -> None:
        plan = ReconcilePlan(
            operations=[FileOperation(path="a.py", mode=FileMode.CREATE, content="x\n", previous="y\n")]
        )
        assert not check_placement(plan).passed

    def test_pending_tables_block_readiness(self) -> None:
        tree, _ = _build(PRICING)
        result = check_implementation_readiness(tree)
        assert result.failed_checks == [IMPLEMENTATION_READINESS]
        assert "PriceCalculator" in result.failures[0].message

    def test_no_tables_means_ready(self) -> None:
        tree, _ = _build(CANCEL)
        assert check_implementation_readiness(tree).passed
