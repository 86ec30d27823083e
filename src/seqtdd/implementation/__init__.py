# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Implementation synthesis.

Everything in this package works from the test-artifact tree alone. It never
imports the semantic model or the compiler.
"""

from seqtdd.implementation.synthesizer import synthesize_implementation
from seqtdd.implementation.tree import (
    CallStatement,
    CollaboratorInterface,
    ConditionalBranch,
    ConditionalNode,
    ConstantDeclaration,
    HelperMethod,
    ImplementationClass,
    ImplementationMethod,
    ImplementationTree,
    InterfaceMethod,
    IterationNode,
    LeafScaffold,
    RaiseStatement,
    ReturnStatement,
    Statement,
)

__all__ = [
    "synthesize_implementation",
    "CallStatement",
    "CollaboratorInterface",
    "ConditionalBranch",
    "ConditionalNode",
    "ConstantDeclaration",
    "HelperMethod",
    "ImplementationClass",
    "ImplementationMethod",
    "ImplementationTree",
    "InterfaceMethod",
    "IterationNode",
    "LeafScaffold",
    "RaiseStatement",
    "ReturnStatement",
    "Statement",
]
