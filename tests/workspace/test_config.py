# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for the run configuration module."""

from pathlib import Path

import pytest

from seqtdd.workspace import (
    CONFIG_FILE_NAME,
    RunConfig,
    RunConfigError,
    load_run_config,
)

# ###############
# Helpers
# ###############


def _write_config(tmp_path: Path, content: str) -> Path:
    """Write a run config file and return its path."""
    config_file = tmp_path / CONFIG_FILE_NAME
    config_file.write_text(content, encoding="utf-8")
    return config_file


# ###############
# Normal Cases
# ###############


def test_empty_config_uses_defaults(tmp_path: Path) -> None:
    """An empty file yields the default configuration rooted next to the file."""
    config = load_run_config(_write_config(tmp_path, ""))

    assert isinstance(config, RunConfig)
    assert config.target_root == tmp_path
    assert config.base_namespace == "app"
    assert config.method_name == "execute"
    assert config.external_inputs is None
    assert not config.dry_run
    assert config.profile.name == "python-pytest"


def test_full_config(tmp_path: Path) -> None:
    """Every known field is read."""
    content = """\
base-namespace: shop.orders
method-name: handle
external-inputs: [order, customer]
allow-deep-nesting: true
strict-bindings: true
dry-run: true
"""
    config = load_run_config(_write_config(tmp_path, content))

    assert config.base_namespace == "shop.orders"
    assert config.base_path == "shop/orders"
    assert config.method_name == "handle"
    assert config.external_inputs == ("order", "customer")
    assert config.allow_deep_nesting
    assert config.strict_bindings
    assert config.dry_run


def test_explicit_target_root(tmp_path: Path) -> None:
    """An explicit target root overrides the config file's directory."""
    target = tmp_path / "out"
    config = load_run_config(_write_config(tmp_path, ""), target_root=target)
    assert config.target_root == target


def test_profile_is_loaded_relative_to_target_root(tmp_path: Path) -> None:
    """The profile path resolves against the target root."""
    (tmp_path / "profile.yaml").write_text("name: custom\n", encoding="utf-8")
    config = load_run_config(_write_config(tmp_path, "profile: profile.yaml\n"))
    assert config.profile.name == "custom"


# ###############
# Error Cases
# ###############


def test_missing_file(tmp_path: Path) -> None:
    """A missing config file raises RunConfigError."""
    with pytest.raises(RunConfigError, match="not found"):
        load_run_config(tmp_path / CONFIG_FILE_NAME)


def test_invalid_yaml(tmp_path: Path) -> None:
    """Malformed YAML raises RunConfigError."""
    with pytest.raises(RunConfigError, match="Invalid YAML"):
        load_run_config(_write_config(tmp_path, "base-namespace: [unclosed\n"))


def test_non_mapping(tmp_path: Path) -> None:
    """A YAML list is not a run config."""
    with pytest.raises(RunConfigError, match="mapping"):
        load_run_config(_write_config(tmp_path, "- a\n- b\n"))


def test_unknown_field(tmp_path: Path) -> None:
    """Unknown keys are rejected by name."""
    with pytest.raises(RunConfigError, match="build-directory"):
        load_run_config(_write_config(tmp_path, "build-directory: .build\n"))


@pytest.mark.parametrize(
    "content",
    [
        "base-namespace: 42\n",
        "base-namespace: shop.2orders\n",
        "dry-run: sometimes\n",
        "external-inputs: order\n",
        "external-inputs: [1, 2]\n",
    ],
)
def test_wrongly_typed_fields(tmp_path: Path, content: str) -> None:
    """Fields of the wrong type raise RunConfigError."""
    with pytest.raises(RunConfigError):
        load_run_config(_write_config(tmp_path, content))


def test_broken_profile(tmp_path: Path) -> None:
    """A profile that fails to load is reported as a config error."""
    (tmp_path / "profile.yaml").write_text("templates:\n  no-such-template: x\n", encoding="utf-8")
    with pytest.raises(RunConfigError, match="no-such-template"):
        load_run_config(_write_config(tmp_path, "profile: profile.yaml\n"))
