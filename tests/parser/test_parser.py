# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for the diagram parser."""

import pytest

from seqtdd.model.elements import (
    AltStart,
    BlockEnd,
    CallElement,
    ElseBranch,
    EntryCall,
    LoopStart,
    ParsedDiagram,
    ParticipantDecl,
    ResultElement,
    ReturnElement,
    ThrowElement,
)
from seqtdd.parser import ParseError, ParseIssue, parse

# ###############
# Test Helpers
# ###############


def _elements(source: str, kind: type) -> list:
    return [e for e in parse(source).elements if isinstance(e, kind)]


def _issue(source: str) -> ParseIssue:
    with pytest.raises(ParseError) as exc_info:
        parse(source)
    return exc_info.value.issue


# ###############
# Calls and Returns
# ###############


class TestCallsAndReturns:
    def test_empty_source_yields_empty_diagram(self) -> None:
        result = parse("")
        assert isinstance(result, ParsedDiagram)
        assert result.elements == []

    def test_call_then_return(self) -> None:
        source = "A -> B : f(x)\nB --> A : y"
        [call] = _elements(source, CallElement)
        [ret] = _elements(source, ReturnElement)
        assert call.call_id == 0
        assert call.parent_call is None
        assert call.method == "f"
        assert [a.name for a in call.arguments] == ["x"]
        assert ret.call_id == 0
        assert ret.value == "y"
        assert ret.type_name is None

    def test_return_with_explicit_type(self) -> None:
        [ret] = _elements("A -> B : load(id)\nB --> A : order : Order", ReturnElement)
        assert ret.value == "order"
        assert ret.type_name == "Order"

    def test_call_ids_follow_source_order(self) -> None:
        source = "A -> B : f()\nB --> A : y\nA -> C : g(y)\nC --> A : z"
        assert [c.call_id for c in _elements(source, CallElement)] == [0, 1]

    def test_nested_call_records_parent(self) -> None:
        source = "A -> B : f()\nB -> C : g()\nC --> B : z\nB --> A : y"
        calls = _elements(source, CallElement)
        assert calls[1].parent_call == 0

    def test_void_activation_is_closed_by_caller_arrow(self) -> None:
        source = "A -> B : notify()\nA -> C : g()"
        calls = _elements(source, CallElement)
        assert calls[1].parent_call is None

    def test_return_arrow_glyph_does_not_matter(self) -> None:
        [ret] = _elements("A -> B : f()\nB -> A : y", ReturnElement)
        assert ret.glyph == "->"

    def test_literal_arguments_are_marked(self) -> None:
        [call] = _elements('A -> B : f("USD", 42, true, amount)', CallElement)
        assert [(a.name, a.is_literal) for a in call.arguments] == [
            ('"USD"', True),
            ("42", True),
            ("true", True),
            ("amount", False),
        ]

    def test_arguments_split_on_top_level_commas_only(self) -> None:
        [call] = _elements('A -> B : f("a, b", x)', CallElement)
        assert [a.name for a in call.arguments] == ['"a, b"', "x"]

    def test_typed_argument_keeps_name(self) -> None:
        [call] = _elements("A -> B : f(order: Order)", CallElement)
        assert call.arguments[0].name == "order"

    def test_dotted_argument(self) -> None:
        [call] = _elements("A -> B : f(order.id)", CallElement)
        assert call.arguments[0].name == "order.id"


# ###############
# Entry, Results and Throws
# ###############


class TestEntryResultsAndThrows:
    def test_entry_message(self) -> None:
        source = "[-> OrderService : place(cart, customer)\nOrderService -> Repo : save(cart)"
        [entry] = _elements(source, EntryCall)
        assert entry.target == "OrderService"
        assert entry.method == "place"
        assert [a.name for a in entry.arguments] == ["cart", "customer"]

    def test_entry_message_must_come_first(self) -> None:
        assert _issue("A -> B : f()\n[-> A : run()") == ParseIssue.MALFORMED_LINE

    def test_entry_message_needs_method(self) -> None:
        assert _issue("[-> A : go") == ParseIssue.MISSING_METHOD_LABEL

    def test_lost_message_is_result(self) -> None:
        [result] = _elements("A -> B : f()\nB --> A : y\nA -->] : y", ResultElement)
        assert result.source == "A"
        assert result.value == "y"
        assert result.parent_call is None

    def test_result_inside_callee_belongs_to_its_activation(self) -> None:
        source = "A -> B : f()\nB -> C : g()\nC --> B : z\nB -->] : z\nB --> A : y"
        [result] = _elements(source, ResultElement)
        assert result.parent_call == 0

    def test_throw_with_message_template(self) -> None:
        source = 'A -> B : load(id)\nB -> B : <<throws>> NotFound("Order {id} missing")'
        [throw] = _elements(source, ThrowElement)
        assert throw.participant == "B"
        assert throw.exception_type == "NotFound"
        assert throw.message_template == "Order {id} missing"
        assert throw.parent_call == 0

    def test_throw_without_message(self) -> None:
        [throw] = _elements("A -> A : <<throws>> Invalid", ThrowElement)
        assert throw.message_template is None
        assert throw.parent_call is None

    def test_throw_must_be_self_arrow(self) -> None:
        assert _issue("A -> B : <<throws>> Invalid") == ParseIssue.MALFORMED_LINE

    def test_other_stereotypes_are_unsupported(self) -> None:
        assert _issue("A -> A : <<creates>> Thing") == ParseIssue.UNSUPPORTED_FRAGMENT


# ###############
# Blocks
# ###############


class TestBlocks:
    def test_loop_block(self) -> None:
        source = "loop for each item in items\nA -> B : f(item)\nend"
        [loop] = _elements(source, LoopStart)
        assert loop.label == "for each item in items"
        assert len(_elements(source, BlockEnd)) == 1

    def test_alt_else_guards_lose_brackets(self) -> None:
        source = "alt [paid]\nA -> B : ship()\nelse [declined]\nA -> C : notify()\nelse\nA -> D : log()\nend"
        [alt] = _elements(source, AltStart)
        elses = _elements(source, ElseBranch)
        assert alt.guard == "paid"
        assert [e.guard for e in elses] == ["declined", None]

    @pytest.mark.parametrize("keyword", ["opt", "par", "break", "critical", "group", "ref"])
    def test_unsupported_fragments(self, keyword: str) -> None:
        assert _issue(f"{keyword} something\nA -> B : f()\nend") == ParseIssue.UNSUPPORTED_FRAGMENT

    def test_unsupported_fragment_suggests_rewrite(self) -> None:
        with pytest.raises(ParseError) as exc_info:
            parse("opt [x]\nA -> B : f()\nend")
        assert "alt" in (exc_info.value.suggestion or "")

    def test_else_outside_alt(self) -> None:
        assert _issue("loop retry\nelse\nend") == ParseIssue.UNEXPECTED_BLOCK_KEYWORD

    def test_stray_end(self) -> None:
        assert _issue("A -> B : f()\nend") == ParseIssue.UNEXPECTED_BLOCK_KEYWORD

    def test_unterminated_block_names_opening_line(self) -> None:
        with pytest.raises(ParseError) as exc_info:
            parse("A -> B : f()\nalt [x]\nA -> C : g()")
        assert exc_info.value.issue == ParseIssue.UNTERMINATED_BLOCK
        assert exc_info.value.line == 2


# ###############
# Ambiguity
# ###############


class TestAmbiguity:
    def test_missing_label(self) -> None:
        assert _issue("A -> B") == ParseIssue.MISSING_METHOD_LABEL

    def test_call_without_method_name(self) -> None:
        assert _issue("A -> B : (x)") == ParseIssue.MISSING_METHOD_LABEL

    def test_bare_label_without_open_caller_is_ambiguous(self) -> None:
        assert _issue("A -> B : refresh") == ParseIssue.AMBIGUOUS_ARROW

    def test_bare_label_to_wrong_participant_is_ambiguous(self) -> None:
        assert _issue("A -> B : f()\nB --> C : y") == ParseIssue.AMBIGUOUS_ARROW

    def test_ambiguous_arrow_suggests_parentheses(self) -> None:
        with pytest.raises(ParseError) as exc_info:
            parse("A -> B : refresh")
        assert "refresh()" in (exc_info.value.suggestion or "")

    def test_inactive_participant(self) -> None:
        assert _issue("A -> B : f()\nB --> A : y\nB -> C : g()") == ParseIssue.INACTIVE_PARTICIPANT

    def test_declared_participants_are_kept(self) -> None:
        source = "participant A\nparticipant B\nA -> B : f()"
        assert [p.name for p in _elements(source, ParticipantDecl)] == ["A", "B"]
