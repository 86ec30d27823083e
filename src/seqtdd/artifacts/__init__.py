# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""The test-artifact tree and its persisted form."""

from seqtdd.artifacts.serialization import (
    TREE_FORMAT_VERSION,
    ArtifactError,
    deserialize_tree,
    read_tree,
    serialize_tree,
    write_tree,
)
from seqtdd.artifacts.tree import (
    Assertion,
    DecisionMethod,
    DecisionRow,
    DecisionStatus,
    DecisionTableSkeleton,
    GroupMode,
    LoopFixture,
    MessageArgument,
    MethodUnderTest,
    MockDeclaration,
    MockedMethod,
    ResultAssertion,
    ScopeRef,
    Stub,
    TestArtifactTree,
    TestCase,
    TestGroup,
    TestSuite,
    ThrowAssertion,
    ValueRef,
    VerifyAssertion,
)

__all__ = [
    "Assertion",
    "DecisionMethod",
    "DecisionRow",
    "DecisionStatus",
    "DecisionTableSkeleton",
    "GroupMode",
    "LoopFixture",
    "MessageArgument",
    "MethodUnderTest",
    "MockDeclaration",
    "MockedMethod",
    "ResultAssertion",
    "ScopeRef",
    "Stub",
    "TestArtifactTree",
    "TestCase",
    "TestGroup",
    "TestSuite",
    "ThrowAssertion",
    "ValueRef",
    "VerifyAssertion",
    "TREE_FORMAT_VERSION",
    "ArtifactError",
    "serialize_tree",
    "deserialize_tree",
    "write_tree",
    "read_tree",
]
