# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Quality gate run between test synthesis and persistence."""

from seqtdd.validation.checks import (
    ARROW_PARITY,
    DATA_FLOW_INTEGRITY,
    IMPLEMENTATION_READINESS,
    PATTERN_RULES,
    PLACEMENT,
    GateFailure,
    GateResult,
    QualityGateError,
    check_implementation_readiness,
    check_placement,
    run_quality_gate,
)

__all__ = [
    "ARROW_PARITY",
    "DATA_FLOW_INTEGRITY",
    "PLACEMENT",
    "PATTERN_RULES",
    "IMPLEMENTATION_READINESS",
    "GateFailure",
    "GateResult",
    "QualityGateError",
    "run_quality_gate",
    "check_placement",
    "check_implementation_readiness",
]
