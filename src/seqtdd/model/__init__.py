# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Parsed elements and the semantic model of an interaction diagram."""

from seqtdd.model.elements import (
    AltStart,
    Argument,
    BlockEnd,
    CallElement,
    DiagramElement,
    ElseBranch,
    EntryCall,
    LoopStart,
    ParsedDiagram,
    ParticipantDecl,
    ResultElement,
    ReturnElement,
    ThrowElement,
)
from seqtdd.model.entities import (
    ArgumentRef,
    ArgumentSource,
    Branch,
    BranchBlock,
    CallArrow,
    DataPipe,
    Interaction,
    LoopBlock,
    Method,
    MethodResult,
    ModelWarning,
    Participant,
    ReturnArrow,
    ScopeFrame,
    SemanticModel,
    ThrowArrow,
)

__all__ = [
    # Parsed elements
    "Argument",
    "ParticipantDecl",
    "EntryCall",
    "CallElement",
    "ReturnElement",
    "ThrowElement",
    "ResultElement",
    "LoopStart",
    "AltStart",
    "ElseBranch",
    "BlockEnd",
    "DiagramElement",
    "ParsedDiagram",
    # Semantic model
    "ArgumentSource",
    "ArgumentRef",
    "Participant",
    "CallArrow",
    "ReturnArrow",
    "ScopeFrame",
    "Interaction",
    "DataPipe",
    "LoopBlock",
    "Branch",
    "BranchBlock",
    "ThrowArrow",
    "MethodResult",
    "ModelWarning",
    "Method",
    "SemanticModel",
]
