# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Per-run configuration and its YAML loader."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from seqtdd.workspace.profile import LanguageProfile, ProfileError, default_profile, load_profile

# ###############
# Public Interface
# ###############

CONFIG_FILE_NAME = ".seqtdd.yaml"


class RunConfigError(Exception):
    """Raised when a run configuration file is invalid or cannot be loaded."""


@dataclass(frozen=True)
class RunConfig:
    """Everything one pipeline run needs besides the diagram text.

    The base namespace is resolved once here and passed explicitly to every
    stage that derives paths or module names from it.

    Attributes:
        target_root: Directory that generated file paths are relative to.
        base_namespace: Dotted root namespace of the generated code (e.g. ``"shop.orders"``).
        profile: Language profile used for naming, rendering and reconciliation.
        method_name: Name of the method under test when the diagram has no entry message.
        external_inputs: Names declared as inputs of the method under test. ``None``
            means they are taken from the entry message or inferred.
        allow_deep_nesting: Expand branch blocks nested three or more levels deep
            instead of refusing the run.
        strict_bindings: Treat duplicate return-variable bindings as errors.
        dry_run: Compute and report the plan without writing any file.
    """

    target_root: Path
    base_namespace: str = "app"
    profile: LanguageProfile = field(default_factory=default_profile)
    method_name: str = "execute"
    external_inputs: tuple[str, ...] | None = None
    allow_deep_nesting: bool = False
    strict_bindings: bool = False
    dry_run: bool = False

    @property
    def base_path(self) -> str:
        """The base namespace as a relative directory path."""
        return self.base_namespace.replace(".", "/")


def load_run_config(path: Path, *, target_root: Path | None = None) -> RunConfig:
    """Load a run configuration file.

    Args:
        path: Path to the ``.seqtdd.yaml`` file.
        target_root: Directory that generated paths are relative to. Defaults
            to the directory containing *path*.

    Returns:
        A RunConfig instance populated from the file.

    Raises:
        RunConfigError: If the file cannot be read, the configuration is
            invalid, or the referenced language profile cannot be loaded.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise RunConfigError(f"Run config file not found: {path}") from None
    except OSError as exc:
        raise RunConfigError(f"Cannot read run config file: {exc}") from exc

    root = target_root if target_root is not None else path.parent
    return _parse_run_config(text, root, source_label=str(path))


# ################
# Implementation
# ################


def _parse_run_config(text: str, target_root: Path, source_label: str = "<string>") -> RunConfig:
    """Parse run config YAML text into a RunConfig.

    Raises:
        RunConfigError: If the YAML is invalid or a field has the wrong type.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise RunConfigError(f"Invalid YAML in {source_label}: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise RunConfigError(f"{source_label}: run config must be a YAML mapping")

    unknown = sorted(set(data) - _KNOWN_KEYS)
    if unknown:
        raise RunConfigError(f"{source_label}: unknown field(s): {', '.join(unknown)}")

    profile = default_profile()
    if "profile" in data:
        profile_path = target_root / _optional_string(data, "profile", source_label, "")
        try:
            profile = load_profile(profile_path)
        except ProfileError as exc:
            raise RunConfigError(f"{source_label}: {exc}") from exc

    external_inputs: tuple[str, ...] | None = None
    if "external-inputs" in data:
        raw_inputs = data["external-inputs"]
        if not isinstance(raw_inputs, list) or not all(isinstance(i, str) for i in raw_inputs):
            raise RunConfigError(f"{source_label}: 'external-inputs' must be a list of strings")
        external_inputs = tuple(raw_inputs)

    base_namespace = _optional_string(data, "base-namespace", source_label, "app")
    if not base_namespace or any(not part.isidentifier() for part in base_namespace.split(".")):
        raise RunConfigError(f"{source_label}: 'base-namespace' must be a dotted identifier")

    return RunConfig(
        target_root=target_root,
        base_namespace=base_namespace,
        profile=profile,
        method_name=_optional_string(data, "method-name", source_label, "execute"),
        external_inputs=external_inputs,
        allow_deep_nesting=_optional_bool(data, "allow-deep-nesting", source_label),
        strict_bindings=_optional_bool(data, "strict-bindings", source_label),
        dry_run=_optional_bool(data, "dry-run", source_label),
    )


_KNOWN_KEYS = frozenset(
    {
        "base-namespace",
        "profile",
        "method-name",
        "external-inputs",
        "allow-deep-nesting",
        "strict-bindings",
        "dry-run",
    }
)


def _optional_string(mapping: dict[str, object], key: str, source_label: str, default: str) -> str:
    """Extract an optional string field from a mapping."""
    if key not in mapping:
        return default
    value = mapping[key]
    if not isinstance(value, str):
        raise RunConfigError(f"{source_label}: '{key}' must be a string")
    return value


def _optional_bool(mapping: dict[str, object], key: str, source_label: str) -> bool:
    """Extract an optional boolean field from a mapping, defaulting to False."""
    value = mapping.get(key, False)
    if not isinstance(value, bool):
        raise RunConfigError(f"{source_label}: '{key}' must be true or false")
    return value
