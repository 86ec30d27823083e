# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for identifier case conversion."""

import pytest

from seqtdd.workspace.naming import (
    capitalize_type,
    convert_case,
    placeholders,
    simple_guard,
    split_words,
    to_camel,
    to_pascal,
    to_snake,
    to_upper_snake,
    unique_name,
)


@pytest.mark.parametrize("text", ["placeOrder", "place_order", "PlaceOrder", "place order", "place-order"])
def test_split_words_accepts_any_style(text: str) -> None:
    assert split_words(text) == ["place", "order"]


def test_acronyms_are_split() -> None:
    assert split_words("HTTPClient") == ["http", "client"]


def test_case_styles() -> None:
    assert to_snake("OrderService") == "order_service"
    assert to_upper_snake("AlreadyShipped message") == "ALREADY_SHIPPED_MESSAGE"
    assert to_pascal("test cancel when order.shipped") == "TestCancelWhenOrderShipped"
    assert to_camel("place_order") == "placeOrder"
    assert convert_case("Keep_This", "keep") == "Keep_This"


def test_unknown_case_style() -> None:
    with pytest.raises(ValueError, match="kebab"):
        convert_case("x", "kebab")


def test_capitalize_type() -> None:
    assert capitalize_type("order") == "Order"
    assert capitalize_type("orderLine") == "OrderLine"


def test_placeholders_in_order_without_duplicates() -> None:
    assert placeholders("Order {id} of {customer} ({id})") == ["id", "customer"]


def test_unique_name_adds_suffix() -> None:
    taken = {"order"}
    assert unique_name("order", taken) == "order_2"
    assert unique_name("order", taken) == "order_3"
    assert taken == {"order", "order_2", "order_3"}


@pytest.mark.parametrize(
    ("guard", "expected"),
    [
        ("order.shipped", (False, "order", ".shipped")),
        ("  not paid ", (True, "paid", "")),
        ("a.b.c", (False, "a", ".b.c")),
    ],
)
def test_simple_guard(guard: str, expected: tuple[bool, str, str]) -> None:
    assert simple_guard(guard) == expected


@pytest.mark.parametrize("guard", ['state.code == "PAID"', 'customer is "vip"', "a and b", "None", "not", "x[0]"])
def test_other_guards_are_not_simple(guard: str) -> None:
    assert simple_guard(guard) is None
