# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Language profile: naming rules, file-path rules and code-template bindings.

The profile is the only place where a target language shows up. The
synthesizers read naming rules from it, the renderer reads template bindings
and the reconciler reads declaration patterns. The built-in profile renders
pytest tests that use ``unittest.mock``.
"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from seqtdd.workspace.naming import convert_case

# ###############
# Public Interface
# ###############


class ProfileError(Exception):
    """Raised when a language profile cannot be read or is invalid."""


class NamePattern(BaseModel):
    """A word template such as ``"test {method} {qualifier}"`` plus the case style of the result."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    pattern: str
    case: str = "snake"

    def apply(self, **words: str) -> str:
        """Fill the pattern with *words* and convert the result to the configured case."""
        return convert_case(self.pattern.format(**words), self.case)


class NamingRules(BaseModel):
    """Naming-convention table."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    method_case: str = Field(alias="method-case", default="snake")
    variable_case: str = Field(alias="variable-case", default="snake")
    type_case: str = Field(alias="type-case", default="pascal")
    test_group: NamePattern = Field(
        alias="test-group", default=NamePattern(pattern="test {method} {qualifier}", case="pascal")
    )
    branch_qualifier: str = Field(alias="branch-qualifier", default="when {guard}")
    verify_test: NamePattern = Field(
        alias="verify-test", default=NamePattern(pattern="test {method} calls {collaborator} {call}")
    )
    result_test: NamePattern = Field(
        alias="result-test", default=NamePattern(pattern="test {method} returns {value}")
    )
    throw_test: NamePattern = Field(
        alias="throw-test", default=NamePattern(pattern="test {method} raises {exception}")
    )
    message_constant: NamePattern = Field(
        alias="message-constant", default=NamePattern(pattern="{exception} message", case="upper-snake")
    )
    mock: NamePattern = Field(alias="mock", default=NamePattern(pattern="{collaborator}"))
    predicate: NamePattern = Field(alias="predicate", default=NamePattern(pattern="is {guard}"))
    loop_source: NamePattern = Field(alias="loop-source", default=NamePattern(pattern="items for {label}"))

    def method(self, name: str) -> str:
        return convert_case(name, self.method_case)

    def variable(self, name: str) -> str:
        return convert_case(name, self.variable_case)

    def type_name(self, name: str) -> str:
        return convert_case(name, self.type_case)


class PathRules(BaseModel):
    """File-path templates.

    Every template may use ``{base}`` (dotted base namespace), ``{base_path}``
    (base namespace as a directory path), ``{subject}`` and ``{subject_snake}``.
    """

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    test_file: str = Field(alias="test-file", default="tests/test_{subject_snake}.py")
    implementation_file: str = Field(alias="implementation-file", default="src/{base_path}/{subject_snake}.py")
    interface_file: str = Field(alias="interface-file", default="src/{base_path}/{subject_snake}.py")
    scaffold_file: str = Field(alias="scaffold-file", default="src/{base_path}/{subject_snake}.py")
    decision_table_file: str = Field(alias="decision-table-file", default="tests/test_{subject_snake}_decisions.py")
    errors_file: str = Field(alias="errors-file", default="src/{base_path}/errors.py")
    module: str = Field(alias="module", default="{base}.{subject_snake}")
    errors_module: str = Field(alias="errors-module", default="{base}.errors")


class LeafSuffixes(BaseModel):
    """Suffix table that sub-classifies leaf participants."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    computational: list[str] = Field(
        default_factory=lambda: ["Mapper", "Factory", "Calculator", "Converter", "Builder"]
    )
    io_boundary: list[str] = Field(
        alias="io-boundary", default_factory=lambda: ["Repository", "Client", "Gateway", "Adapter"]
    )


class LanguageProfile(BaseModel):
    """The full language profile consumed by synthesis, rendering and reconciliation."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    name: str = "python-pytest"
    naming: NamingRules = Field(default_factory=NamingRules)
    paths: PathRules = Field(default_factory=PathRules)
    leaf_suffixes: LeafSuffixes = Field(alias="leaf-suffixes", default_factory=LeafSuffixes)
    templates: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_TEMPLATES))
    declarations: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_DECLARATIONS))

    @field_validator("templates")
    @classmethod
    def _merge_templates(cls, value: dict[str, str]) -> dict[str, str]:
        return _merge_with_defaults(value, DEFAULT_TEMPLATES, "template")

    @field_validator("declarations")
    @classmethod
    def _merge_declarations(cls, value: dict[str, str]) -> dict[str, str]:
        return _merge_with_defaults(value, DEFAULT_DECLARATIONS, "declaration pattern")

    def template(self, key: str) -> str:
        """Return the template bound to *key*."""
        return self.templates[key]


def default_profile() -> LanguageProfile:
    """Return the built-in pytest profile."""
    return LanguageProfile()


def load_profile(path: Path) -> LanguageProfile:
    """Load and validate a language profile from a YAML file.

    Sections missing from the file keep their built-in defaults. Templates and
    declaration patterns are merged key by key with the defaults.

    Args:
        path: Path to the profile YAML file.

    Returns:
        A validated LanguageProfile instance.

    Raises:
        ProfileError: If the file cannot be read, contains invalid YAML,
            or does not conform to the profile schema.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ProfileError(f"Cannot read language profile '{path}': {exc}") from exc

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ProfileError(f"Invalid YAML in language profile '{path}': {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ProfileError(f"Language profile '{path}' must be a YAML mapping")

    try:
        return LanguageProfile.model_validate(data)
    except ValidationError as exc:
        raise ProfileError(f"Invalid language profile '{path}': {exc}") from exc


# ################
# Implementation
# ################


def _merge_with_defaults(value: dict[str, str], defaults: dict[str, str], label: str) -> dict[str, str]:
    unknown = sorted(set(value) - set(defaults))
    if unknown:
        raise ValueError(f"Unknown {label} key(s): {', '.join(unknown)}")
    merged = dict(defaults)
    merged.update(value)
    return merged


DEFAULT_TEMPLATES: dict[str, str] = {
    # Test files
    "test-header": (
        '"""Interaction tests for {subject}."""\n'
        "\n"
        "from contextlib import suppress\n"
        "from unittest.mock import MagicMock\n"
        "\n"
        "import pytest\n"
        "\n"
    ),
    "import": "from {module} import {name}\n",
    "mock-declaration": '\n\n@pytest.fixture\ndef {mock}():\n    return MagicMock(name="{mock}")\n',
    "group-header": (
        "\n\nclass {group}:\n"
        '    """{description}"""\n'
        "\n"
        "    @pytest.fixture(autouse=True)\n"
        "    def setup(self{fixtures}):\n"
    ),
    "setup-mock": "        self.{mock} = {mock}\n",
    "fixture-value": '        self.{name} = MagicMock(name="{name}")\n',
    "fixture-collection": "        self.{collection} = [self.{element}]\n",
    "stub": "        self.{mock}.{method}.return_value = self.{value}\n",
    "stub-raises": "        self.{mock}.{method}.side_effect = {exception}\n",
    "stub-sequence": "        self.{mock}.{method}.side_effect = [{values}]\n",
    "stub-guard-note": "        # drives branch [{guard}]\n",
    "guard-fixture": "        self.{target} = {value}\n",
    "subject-construction": "        self.subject = {subject}({arguments})\n",
    "helper-stub": "        self.subject.{name} = MagicMock(return_value={value})\n",
    "setup-invoke": "        self.result = self.subject.{method}({arguments})\n",
    "value-ref": "self.{name}",
    "literal-true": "True",
    "literal-false": "False",
    "literal-null": "None",
    "keyword-argument": "{name}={value}",
    "verify-test": "\n    def {test}(self):\n{invoke}        self.{mock}.{method}.{check}({arguments})\n",
    "verify-once": "assert_called_once_with",
    "verify-any": "assert_any_call",
    "invoke-suppressed": "        with suppress({exception}):\n            self.subject.{method}({arguments})\n",
    "result-test": "\n    def {test}(self):\n        assert self.result == {expected}\n",
    "throw-test": (
        "\n    def {test}(self):\n"
        "        with pytest.raises({exception}) as exc_info:\n"
        "            self.subject.{method}({arguments})\n"
        "{message_check}"
    ),
    "throw-message-check": "        assert str(exc_info.value) == {subject}.{constant}.format({arguments})\n",
    # Decision tables
    "decision-header": (
        '"""Decision table for {participant}. Rows marked PENDING need human input."""\n'
        "\n"
        "import pytest\n"
        "\n"
        "from {module} import {participant}\n"
        "\n"
        "PENDING = {pending}\n"
    ),
    "decision-method": (
        "\n\n"
        '@pytest.mark.skipif(PENDING, reason="decision table pending human input")\n'
        "@pytest.mark.parametrize(\n"
        '    "{argnames}",\n'
        "    [\n"
        "{rows}"
        "    ],\n"
        ")\n"
        "def test_{method}({argnames}):\n"
        "    assert {participant}().{method}({arguments}) == expected\n"
    ),
    "decision-row": "        ({values}),\n",
    # Implementation files
    "impl-header": '"""{subject} implementation."""\n\nimport {errors_module} as errors\n',
    "class-header": (
        "\n\nclass {subject}:\n"
        '    """{description}"""\n'
        "\n"
        "    def __init__(self{parameters}):\n"
        "{assignments}"
    ),
    "assignment": "        self.{name} = {name}\n",
    "constant": "\n    {constant} = {literal}\n",
    "method-signature": "\n    def {method}(self{parameters}):\n",
    "call-statement": "{indent}{binding}self.{mock}.{method}({arguments})\n",
    "binding": "{name} = ",
    "return-statement": "{indent}return {value}\n",
    "raise-statement": "{indent}raise {exception}({message})\n",
    "raise-message": "self.{constant}.format({arguments})",
    "exception-ref": "errors.{exception}",
    "conditional-if": "{indent}if {condition}:\n",
    "conditional-elif": "{indent}elif {condition}:\n",
    "conditional-else": "{indent}else:\n",
    "predicate-condition": "self.{predicate}()",
    "predicate": (
        "\n    def {predicate}(self):\n"
        '        raise NotImplementedError("Decide branch condition: [{guard}]")\n'
    ),
    "iteration": "{indent}for {element} in {collection}:\n",
    "empty-body": "{indent}pass\n",
    "iteration-source": "self.{name}()",
    "iteration-source-method": (
        "\n    def {name}(self):\n"
        '        raise NotImplementedError("Provide the items of loop [{label}]")\n'
    ),
    "indent": "    ",
    # Collaborator interfaces, scaffolds and errors
    "interface-header": '"""{name} boundary port."""\n\nfrom abc import ABC, abstractmethod\n',
    "interface-class": "\n\nclass {name}(ABC):\n" '    """Port used by {users}."""\n',
    "interface-method": "\n    @abstractmethod\n    def {method}(self{parameters}):\n        ...\n",
    "scaffold-header": '"""{name} computation. Behaviour is fixed by its decision table."""\n',
    "scaffold-class": "\n\nclass {name}:\n",
    "scaffold-method": (
        "\n    def {method}(self{parameters}):\n"
        '        raise NotImplementedError("{name}.{method} follows its decision table ({status})")\n'
    ),
    "errors-header": '"""Exceptions raised by generated components."""\n',
    "exception-class": "\n\nclass {exception}(Exception):\n    pass\n",
}

DEFAULT_DECLARATIONS: dict[str, str] = {
    "import": r"^(?:from\s+\S+\s+)?import\s+.*\b{name}\b",
    "mock": r"^def {name}\(",
    "group": r"^class {name}\b",
    "class": r"^class {name}\b",
    "constant": r"^\s+{name}\s*=",
    "method": r"^\s+def {name}\(",
    "predicate": r"^\s+def {name}\(",
    "loop-source": r"^\s+def {name}\(",
    "exception": r"^class {name}\b",
    "interface": r"^class {name}\b",
    "interface-method": r"^\s+def {name}\(",
    "scaffold": r"^class {name}\b",
    "scaffold-method": r"^\s+def {name}\(",
    "decision": r"^def test_{name}\(",
    "abstract-type": r"^class {name}\((?:ABC|Protocol)\)",
    "concrete-type": r"^class {name}\b",
}
