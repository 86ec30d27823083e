# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""End-to-end run: diagram text in, test and implementation files out.

Stages run strictly in order. Every stage completes before the next starts,
and nothing is written until the plan of the whole run is known and has
passed the placement check.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

from seqtdd.artifacts.tree import TestArtifactTree
from seqtdd.compiler.classifier import Classification, classify
from seqtdd.compiler.semantic_analysis import build_model
from seqtdd.implementation.synthesizer import synthesize_implementation
from seqtdd.implementation.tree import ImplementationTree
from seqtdd.model.elements import ParsedDiagram
from seqtdd.model.entities import SemanticModel
from seqtdd.parser.parser import parse
from seqtdd.reconcile.filesystem import FileSystemAdapter, LocalFileSystem
from seqtdd.reconcile.reconciler import ReconcilePlan, commit, plan_operations
from seqtdd.rendering.renderer import RenderedFile, render_files
from seqtdd.synthesis.verification import synthesize_tests
from seqtdd.validation.checks import check_implementation_readiness, check_placement, run_quality_gate
from seqtdd.workspace.config import RunConfig

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############

PARSE = "parse"
BUILD = "build"
CLASSIFY = "classify"
SYNTHESIZE_TESTS = "synthesize-tests"
GATE = "quality-gate"
SYNTHESIZE_IMPLEMENTATION = "synthesize-implementation"
RENDER = "render"
PLAN = "plan"
PLACEMENT = "placement"
COMMIT = "commit"

STAGES = (
    PARSE,
    BUILD,
    CLASSIFY,
    SYNTHESIZE_TESTS,
    GATE,
    SYNTHESIZE_IMPLEMENTATION,
    RENDER,
    PLAN,
    PLACEMENT,
    COMMIT,
)


class PipelineError(Exception):
    """Raised when a stage fails. ``cause`` is the stage's own exception."""

    def __init__(self, stage: str, cause: Exception) -> None:
        self.stage = stage
        self.cause = cause
        super().__init__(f"{stage} failed: {cause}")


@dataclass
class PipelineReport:
    """Summary of one run.

    Attributes:
        arrows: Call, return and raise arrows in the diagram.
        orchestrators: Participants classified as orchestrators.
        leaves: Participants classified as leaves.
        decision_tables: Decision-table skeletons generated.
        tests: Generated test cases.
        files: Planned mode per path (``"create"`` or ``"update"``).
        unchanged: Paths that already held every declaration.
        warnings: Non-fatal findings of every stage.
        dry_run: True when nothing was written.
    """

    arrows: int = 0
    orchestrators: int = 0
    leaves: int = 0
    decision_tables: int = 0
    tests: int = 0
    files: dict[str, str] = field(default_factory=dict)
    unchanged: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    dry_run: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "arrows": self.arrows,
            "orchestrators": self.orchestrators,
            "leaves": self.leaves,
            "decision_tables": self.decision_tables,
            "tests": self.tests,
            "files": dict(self.files),
            "unchanged": list(self.unchanged),
            "warnings": list(self.warnings),
            "dry_run": self.dry_run,
        }

    def format(self) -> str:
        lines = [
            f"Arrows:          {self.arrows}",
            f"Orchestrators:   {self.orchestrators}",
            f"Leaves:          {self.leaves}",
            f"Decision tables: {self.decision_tables}",
            f"Tests:           {self.tests}",
        ]
        if self.files:
            lines.append("Files (dry run):" if self.dry_run else "Files:")
            lines.extend(f"  {mode:<7} {path}" for path, mode in self.files.items())
        if self.unchanged:
            lines.append(f"Unchanged:       {len(self.unchanged)}")
        if self.warnings:
            lines.append("Warnings:")
            lines.extend(f"  - {w}" for w in self.warnings)
        return "\n".join(lines)


@dataclass
class PipelineResult:
    diagram: ParsedDiagram
    model: SemanticModel
    classification: Classification
    tests: TestArtifactTree
    implementation: ImplementationTree
    files: list[RenderedFile]
    plan: ReconcilePlan
    report: PipelineReport
    written: list[str] = field(default_factory=list)


def run_pipeline(source: str, config: RunConfig, fs: FileSystemAdapter | None = None) -> PipelineResult:
    """Run every stage on one diagram.

    Args:
        source: The diagram text.
        config: Run configuration; its base namespace and profile are passed
            explicitly to every stage that needs them.
        fs: Access to the target tree; a LocalFileSystem rooted at
            ``config.target_root`` when omitted.

    Returns:
        The PipelineResult holding every intermediate product and the report.

    Raises:
        PipelineError: If any stage fails. Failures before the commit stage
            leave the target tree untouched; a failed commit is rolled back.
    """
    fs = fs if fs is not None else LocalFileSystem(config.target_root)
    profile = config.profile
    report = PipelineReport(dry_run=config.dry_run)

    diagram = _stage(PARSE, parse, source)
    model = _stage(
        BUILD,
        build_model,
        diagram,
        external_inputs=config.external_inputs,
        allow_deep_nesting=config.allow_deep_nesting,
        strict_bindings=config.strict_bindings,
        method_name=config.method_name,
    )
    report.warnings.extend(w.message if w.line is None else f"Line {w.line}: {w.message}" for w in model.warnings)

    classification = _stage(CLASSIFY, classify, model, profile.leaf_suffixes)
    report.warnings.extend(f"{w.participant}: {w.message}" for w in classification.warnings)

    tests = _stage(SYNTHESIZE_TESTS, synthesize_tests, model, classification, profile)
    _stage(GATE, run_quality_gate, tests, model)
    readiness = check_implementation_readiness(tests)
    for failure in readiness.failures:
        logger.warning("%s", failure.message)
        report.warnings.append(failure.message)

    implementation = _stage(SYNTHESIZE_IMPLEMENTATION, synthesize_implementation, tests, profile)
    files = _stage(RENDER, render_files, tests, implementation, profile, config.base_namespace)
    plan = _stage(PLAN, plan_operations, files, fs, profile)
    report.warnings.extend(f"{w.path}: {w.message}" for w in plan.warnings)
    _stage(PLACEMENT, _check_placement, plan)

    report.arrows = sum(1 for e in diagram.elements if e.kind in ("call", "return", "throw"))
    report.orchestrators = len(classification.orchestrators)
    report.leaves = len(classification.leaves)
    report.decision_tables = len(tests.decision_tables)
    report.tests = tests.test_count
    report.files = {op.path: op.mode.value for op in plan.operations}
    report.unchanged = list(plan.unchanged)

    written: list[str] = []
    if config.dry_run:
        logger.info("Dry run: %s file operations planned, nothing written", len(plan.operations))
    else:
        written = _stage(COMMIT, commit, plan, fs)

    return PipelineResult(
        diagram=diagram,
        model=model,
        classification=classification,
        tests=tests,
        implementation=implementation,
        files=files,
        plan=plan,
        report=report,
        written=written,
    )


# ################
# Implementation
# ################


_T = TypeVar("_T")


def _stage(name: str, func: Callable[..., _T], *args: object, **kwargs: object) -> _T:
    """Run one stage, wrapping its failure in a PipelineError."""
    logger.debug("Stage %s", name)
    try:
        return func(*args, **kwargs)
    except PipelineError:
        raise
    except Exception as exc:
        raise PipelineError(name, exc) from exc


def _check_placement(plan: ReconcilePlan) -> None:
    check_placement(plan).raise_for_failures()
