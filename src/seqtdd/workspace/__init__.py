# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Run configuration, language profiles and naming rules."""

from seqtdd.workspace.config import CONFIG_FILE_NAME, RunConfig, RunConfigError, load_run_config
from seqtdd.workspace.profile import (
    DEFAULT_DECLARATIONS,
    DEFAULT_TEMPLATES,
    LanguageProfile,
    LeafSuffixes,
    NamePattern,
    NamingRules,
    PathRules,
    ProfileError,
    default_profile,
    load_profile,
)

__all__ = [
    "CONFIG_FILE_NAME",
    "RunConfig",
    "RunConfigError",
    "load_run_config",
    "DEFAULT_DECLARATIONS",
    "DEFAULT_TEMPLATES",
    "LanguageProfile",
    "LeafSuffixes",
    "NamePattern",
    "NamingRules",
    "PathRules",
    "ProfileError",
    "default_profile",
    "load_profile",
]
