# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for language profiles."""

from pathlib import Path

import pytest

from seqtdd.workspace.profile import (
    DEFAULT_DECLARATIONS,
    DEFAULT_TEMPLATES,
    LanguageProfile,
    NamePattern,
    NamingRules,
    ProfileError,
    default_profile,
    load_profile,
)

# ###############
# Test Helpers
# ###############


def _write_profile(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "profile.yaml"
    path.write_text(content, encoding="utf-8")
    return path


# ###############
# Defaults
# ###############


class TestDefaults:
    def test_default_profile_is_complete(self) -> None:
        profile = default_profile()
        assert profile.templates == DEFAULT_TEMPLATES
        assert profile.declarations == DEFAULT_DECLARATIONS
        assert profile.paths.test_file == "tests/test_{subject_snake}.py"

    def test_name_pattern_applies_case(self) -> None:
        pattern = NamePattern(pattern="test {method} {qualifier}", case="pascal")
        assert pattern.apply(method="placeOrder", qualifier="when paid") == "TestPlaceOrderWhenPaid"

    def test_naming_rules(self) -> None:
        naming = NamingRules()
        assert naming.method("placeOrder") == "place_order"
        assert naming.variable("orderId") == "order_id"
        assert naming.type_name("order_service") == "OrderService"
        assert naming.mock.apply(collaborator="PaymentGateway") == "payment_gateway"


# ###############
# Loading
# ###############


class TestLoading:
    def test_partial_profile_keeps_defaults(self, tmp_path: Path) -> None:
        content = """\
name: camel
naming:
  method-case: camel
templates:
  literal-null: "null"
leaf-suffixes:
  io-boundary: [Store]
"""
        profile = load_profile(_write_profile(tmp_path, content))
        assert profile.name == "camel"
        assert profile.naming.method("place_order") == "placeOrder"
        assert profile.template("literal-null") == "null"
        assert profile.template("literal-true") == "True"
        assert profile.leaf_suffixes.io_boundary == ["Store"]
        assert "Calculator" in profile.leaf_suffixes.computational

    def test_empty_file_is_default_profile(self, tmp_path: Path) -> None:
        assert load_profile(_write_profile(tmp_path, "")) == LanguageProfile()

    def test_unknown_template_key(self, tmp_path: Path) -> None:
        with pytest.raises(ProfileError, match="Unknown template key"):
            load_profile(_write_profile(tmp_path, "templates:\n  bogus: x\n"))

    def test_unknown_section(self, tmp_path: Path) -> None:
        with pytest.raises(ProfileError):
            load_profile(_write_profile(tmp_path, "colours: red\n"))

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        with pytest.raises(ProfileError, match="Invalid YAML"):
            load_profile(_write_profile(tmp_path, "naming: [\n"))

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ProfileError, match="Cannot read"):
            load_profile(tmp_path / "absent.yaml")

    def test_unknown_case_style_fails_on_use(self) -> None:
        with pytest.raises(ValueError):
            NamePattern(pattern="{x}", case="kebab").apply(x="a")
