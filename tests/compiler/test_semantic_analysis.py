# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for the semantic model builder."""

import pytest

from seqtdd.compiler.semantic_analysis import ModelError, ModelErrorKind, build_model, root_name
from seqtdd.model.entities import ArgumentSource, SemanticModel
from seqtdd.parser import parse

# ###############
# Test Helpers
# ###############


def _model(source: str, **kwargs: object) -> SemanticModel:
    return build_model(parse(source), **kwargs)


def _error(source: str, **kwargs: object) -> ModelError:
    with pytest.raises(ModelError) as exc_info:
        _model(source, **kwargs)
    return exc_info.value


SIMPLE = """\
A -> B : f(x)
B --> A : y
A -> C : g(y)
C --> A : z
"""

ALT_AFTER_RETURN = """\
[-> A : run(id)
A -> B : f(id)
B --> A : y
alt [y.ok]
A -> C : g(y)
C --> A : z
else
A -> D : h(y)
D --> A : w
end
"""


# ###############
# Participants and Interactions
# ###############


class TestParticipantsAndInteractions:
    def test_participants_in_order_of_appearance(self) -> None:
        model = _model(SIMPLE)
        assert [p.name for p in model.participants] == ["A", "B", "C"]
        assert model.component_under_test.name == "A"

    def test_declared_participant_order_wins(self) -> None:
        model = _model("participant B\nparticipant A\nB -> A : f()")
        assert model.component_under_test.name == "B"

    def test_entry_target_is_component_under_test(self) -> None:
        model = _model("participant B\n[-> A : run()\nA -> B : f()")
        assert model.component_under_test.name == "A"

    def test_interactions_follow_source_order(self) -> None:
        model = _model(SIMPLE)
        assert [i.call.method for i in model.interactions] == ["f", "g"]
        assert [i.index for i in model.interactions] == [0, 1]

    def test_return_value_identity_and_inferred_type(self) -> None:
        returns = _model(SIMPLE).interactions[0].returns
        assert returns is not None
        assert returns.value == "y"
        assert returns.value_id == "y@0"
        assert returns.type_name == "Y"
        assert not returns.explicit_type

    def test_explicit_return_type(self) -> None:
        model = _model("A -> B : load(id)\nB --> A : order : OrderRecord", external_inputs=["id"])
        assert model.interactions[0].returns.type_name == "OrderRecord"
        assert model.interactions[0].returns.explicit_type

    def test_void_call_has_no_return(self) -> None:
        model = _model("A -> B : notify()")
        assert model.interactions[0].is_void

    def test_empty_diagram(self) -> None:
        assert _error("participant A").kind == ModelErrorKind.EMPTY_DIAGRAM


# ###############
# Data Flow
# ###############


class TestDataFlow:
    def test_pipe_links_return_to_argument(self) -> None:
        [pipe] = _model(SIMPLE).pipes
        assert (pipe.producer, pipe.consumer, pipe.variable, pipe.value_id) == (0, 1, "y", "y@0")

    def test_unbound_argument_is_inferred_input_with_warning(self) -> None:
        model = _model(SIMPLE)
        root = model.method(None)
        assert root.parameters == ["x"]
        assert root.inferred_parameters
        assert any("'x'" in w.message for w in model.warnings)

    def test_external_inputs_override_inference(self) -> None:
        model = _model(SIMPLE, external_inputs=["x"])
        assert model.method(None).parameters == ["x"]
        assert not model.method(None).inferred_parameters
        assert model.warnings == []

    def test_entry_arguments_are_inputs(self) -> None:
        model = _model("[-> A : run(order)\nA -> B : save(order.id)")
        arg = model.interactions[0].call.arguments[0]
        assert arg.source == ArgumentSource.INPUT
        assert arg.name == "order.id"

    def test_unresolved_argument_with_entry(self) -> None:
        error = _error("[-> A : run()\nA -> B : f(x)")
        assert error.kind == ModelErrorKind.UNRESOLVED_REFERENCE
        assert error.line == 2
        assert str(error).startswith("Line 2: unresolved-reference:")

    def test_literal_argument(self) -> None:
        model = _model('A -> B : f("USD")')
        assert model.interactions[0].call.arguments[0].source == ArgumentSource.LITERAL

    def test_sibling_branch_binding_is_not_visible(self) -> None:
        source = "[-> A : run(id)\nalt [fast]\nA -> B : f(id)\nB --> A : y\nelse\nA -> C : g(y)\nend"
        assert _error(source).kind == ModelErrorKind.UNRESOLVED_REFERENCE

    def test_outer_binding_is_visible_inside_branch(self) -> None:
        model = _model(ALT_AFTER_RETURN)
        assert [(p.producer, p.consumer) for p in model.pipes] == [(0, 1), (0, 2)]

    def test_duplicate_binding_uses_most_recent_with_warning(self) -> None:
        source = "[-> A : run(id)\nA -> B : f(id)\nB --> A : y\nA -> C : g(id)\nC --> A : y\nA -> D : h(y)"
        model = _model(source)
        assert model.interactions[2].call.arguments[0].producer == 1
        assert any("2 earlier returns" in w.message for w in model.warnings)

    def test_duplicate_binding_is_fatal_when_strict(self) -> None:
        source = "[-> A : run(id)\nA -> B : f(id)\nB --> A : y\nA -> C : g(id)\nC --> A : y\nA -> D : h(y)"
        assert _error(source, strict_bindings=True).kind == ModelErrorKind.AMBIGUOUS_BINDING

    def test_root_name(self) -> None:
        assert root_name("order.items.first") == "order"
        assert root_name("order") == "order"


# ###############
# Blocks
# ###############


class TestBlocks:
    def test_loop_element_and_collection(self) -> None:
        source = (
            "[-> A : run(cart)\n"
            "A -> Repo : load(cart.id)\n"
            "Repo --> A : order\n"
            "loop for each item in order.items\n"
            "A -> Calc : price(item)\n"
            "Calc --> A : amount\n"
            "end\n"
        )
        model = _model(source)
        [loop] = model.loops
        assert loop.element == "item"
        assert loop.collection == "order.items"
        assert loop.collection_producer == 0
        assert loop.method is None
        inner = model.interactions[1]
        assert inner.call.arguments[0].source == ArgumentSource.LOOP_ELEMENT
        assert [f.kind for f in inner.scope] == ["loop"]

    def test_loop_without_element(self) -> None:
        model = _model("loop retry\nA -> B : ping()\nend")
        assert model.loops[0].element is None
        assert model.loops[0].collection is None

    def test_branch_block(self) -> None:
        model = _model(ALT_AFTER_RETURN)
        [block] = model.branches
        assert [b.guard for b in block.branches] == ["y.ok", None]
        assert block.depth == 1
        assert model.interactions[2].scope[0].branch_index == 1

    def test_three_nested_alts_are_refused(self) -> None:
        source = "alt [a]\nalt [b]\nalt [c]\nA -> B : f()\nend\nend\nend"
        error = _error(source)
        assert error.kind == ModelErrorKind.EXCESSIVE_NESTING
        assert error.line == 3

    def test_deep_nesting_override_records_warning(self) -> None:
        source = "alt [a]\nalt [b]\nalt [c]\nA -> B : f()\nend\nend\nend"
        model = _model(source, allow_deep_nesting=True)
        assert sorted(b.depth for b in model.branches) == [1, 2, 3]
        assert any("3 levels" in w.message for w in model.warnings)

    def test_two_nested_alts_are_accepted(self) -> None:
        model = _model("alt [a]\nalt [b]\nA -> B : f()\nend\nend")
        assert max(b.depth for b in model.branches) == 2

    def test_call_cycle(self) -> None:
        source = "A -> B : f()\nB -> A : g()\nA --> B : z\nB --> A : y"
        error = _error(source)
        assert error.kind == ModelErrorKind.CIRCULAR_CALL
        assert "A -> B -> A" in str(error)


# ###############
# Methods and Results
# ###############


class TestMethodsAndResults:
    def test_last_return_is_result(self) -> None:
        [result] = _model(SIMPLE).method(None).results
        assert result.value == "z"
        assert result.value_id == "z@1"
        assert not result.explicit

    def test_method_name_from_entry_or_default(self) -> None:
        assert _model("[-> A : place()\nA -> B : f()").method(None).name == "place"
        assert _model("A -> B : f()", method_name="handle").method(None).name == "handle"

    def test_one_result_per_branch_path(self) -> None:
        results = _model(ALT_AFTER_RETURN).method(None).results
        assert [r.value for r in results] == ["z", "w"]

    def test_explicit_result_wins(self) -> None:
        source = SIMPLE + "A -->] : y\n"
        [result] = _model(source).method(None).results
        assert result.value == "y"
        assert result.value_id == "y@0"
        assert result.explicit

    def test_explicit_literal_result(self) -> None:
        [result] = _model("A -> B : f(x)\nA -->] : true").method(None).results
        assert result.value == "true"
        assert result.value_id is None

    def test_explicit_result_must_resolve(self) -> None:
        error = _error("[-> A : run()\nA -> B : f()\nA -->] : total")
        assert error.kind == ModelErrorKind.UNRESOLVED_REFERENCE

    def test_collaborator_orchestrator_method(self) -> None:
        source = "[-> A : run(id)\nA -> B : f(id)\nB -> C : g(id)\nC --> B : z\nB --> A : y"
        model = _model(source)
        nested = model.method(0)
        assert nested is not None
        assert (nested.owner, nested.name, nested.parameters) == ("B", "f", ["id"])
        assert [r.value for r in nested.results] == ["z"]
        assert model.interactions[1].call.arguments[0].source == ArgumentSource.INPUT
        assert [r.value for r in model.method(None).results] == ["y"]


# ###############
# Throws
# ###############


class TestThrows:
    def test_unconditional_throw_propagates_to_caller(self) -> None:
        source = '[-> A : run(id)\nA -> B : load(id)\nB -> B : <<throws>> NotFound("Order {id} missing")'
        [throw] = _model(source).throws
        assert throw.participant == "B"
        assert throw.method == 0
        assert throw.propagates_through == [0]
        assert throw.message_template == "Order {id} missing"

    def test_conditional_throw_stays_in_method(self) -> None:
        source = (
            "[-> A : run(id)\n"
            "A -> B : check(id)\n"
            "B --> A : ok\n"
            "alt [not ok]\n"
            'A -> A : <<throws>> Invalid("Bad {id}")\n'
            "end\n"
        )
        [throw] = _model(source).throws
        assert throw.method is None
        assert throw.propagates_through == []
        assert [f.kind for f in throw.scope] == ["branch"]
