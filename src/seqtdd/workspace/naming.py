# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Identifier case conversion shared by the synthesizers and the renderer."""

from __future__ import annotations

import re

# ###############
# Public Interface
# ###############


def split_words(text: str) -> list[str]:
    """Split free text or an identifier in any case style into lowercase words.

    ``"placeOrder"``, ``"place_order"``, ``"PlaceOrder"`` and ``"place order"``
    all yield ``["place", "order"]``.
    """
    spaced = _CAMEL_BOUNDARY.sub(" ", text)
    spaced = _ACRONYM_BOUNDARY.sub(" ", spaced)
    return [w.lower() for w in _NON_WORD.split(spaced) if w]


def to_snake(text: str) -> str:
    """Return *text* as ``snake_case``."""
    return "_".join(split_words(text))


def to_upper_snake(text: str) -> str:
    """Return *text* as ``UPPER_SNAKE_CASE``."""
    return to_snake(text).upper()


def to_pascal(text: str) -> str:
    """Return *text* as ``PascalCase``."""
    return "".join(w[:1].upper() + w[1:] for w in split_words(text))


def to_camel(text: str) -> str:
    """Return *text* as ``camelCase``."""
    pascal = to_pascal(text)
    return pascal[:1].lower() + pascal[1:]


def convert_case(text: str, style: str) -> str:
    """Convert *text* to the named case style.

    Args:
        text: The identifier or free text to convert.
        style: One of ``"snake"``, ``"camel"``, ``"pascal"``, ``"upper-snake"``
            or ``"keep"``.

    Raises:
        ValueError: If *style* is not a known case style.
    """
    try:
        converter = _CONVERTERS[style]
    except KeyError:
        raise ValueError(f"Unknown case style: {style!r}") from None
    return converter(text)


def capitalize_type(name: str) -> str:
    """Infer a type name from a value name by capitalising its first letter."""
    return name[:1].upper() + name[1:]


def placeholders(template: str) -> list[str]:
    """Return the ``{name}`` placeholders of a message template in order, without duplicates."""
    seen: list[str] = []
    for match in _PLACEHOLDER.finditer(template):
        if match.group(1) not in seen:
            seen.append(match.group(1))
    return seen


def unique_name(name: str, taken: set[str]) -> str:
    """Return *name*, or *name* with a numeric suffix when it is already taken.

    The returned name is added to *taken*.
    """
    candidate = name
    counter = 2
    while candidate in taken:
        candidate = f"{name}_{counter}"
        counter += 1
    taken.add(candidate)
    return candidate


def simple_guard(text: str) -> tuple[bool, str, str] | None:
    """Split a guard that tests one value, such as ``order.shipped`` or ``not paid``.

    Returns:
        ``(negated, root, attribute)`` with the attribute path including its
        leading dot, or None for any other guard.
    """
    match = _SIMPLE_GUARD.match(text.strip())
    if match is None or match.group("root") in _GUARD_KEYWORDS:
        return None
    return bool(match.group("negated")), match.group("root"), match.group("attribute")


# ################
# Implementation
# ################

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_ACRONYM_BOUNDARY = re.compile(r"(?<=[A-Z])(?=[A-Z][a-z])")
_NON_WORD = re.compile(r"[^A-Za-z0-9]+")
_PLACEHOLDER = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")
_SIMPLE_GUARD = re.compile(r"^(?P<negated>not\s+)?(?P<root>[A-Za-z_]\w*)(?P<attribute>(?:\.[A-Za-z_]\w*)*)$")
_GUARD_KEYWORDS = frozenset({"not", "and", "or", "is", "in", "True", "False", "None"})

_CONVERTERS = {
    "snake": to_snake,
    "camel": to_camel,
    "pascal": to_pascal,
    "upper-snake": to_upper_snake,
    "keep": lambda text: text,
}
