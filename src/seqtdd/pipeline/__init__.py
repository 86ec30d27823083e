# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""The end-to-end pipeline."""

from seqtdd.pipeline.run import STAGES, PipelineError, PipelineReport, PipelineResult, run_pipeline

__all__ = [
    "STAGES",
    "PipelineError",
    "PipelineReport",
    "PipelineResult",
    "run_pipeline",
]
