# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Participant classification.

Every participant is either an orchestrator (it makes at least one call) or
a leaf. Leaves are split into computational and I/O-boundary leaves by the
name-suffix table of the language profile.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from seqtdd.model.entities import SemanticModel
from seqtdd.workspace.profile import LeafSuffixes

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############


class ParticipantRole(enum.Enum):
    ORCHESTRATOR = "orchestrator"
    LEAF = "leaf"


class LeafKind(enum.Enum):
    COMPUTATIONAL = "computational"
    IO_BOUNDARY = "io-boundary"


@dataclass(frozen=True)
class ParticipantClass:
    """The role assigned to one participant.

    Attributes:
        name: Participant name.
        role: Orchestrator or leaf.
        leaf_kind: Sub-kind for leaves, ``None`` for orchestrators.
        is_component_under_test: True for the first participant of the diagram.
    """

    name: str
    role: ParticipantRole
    leaf_kind: LeafKind | None = None
    is_component_under_test: bool = False

    @property
    def is_orchestrator(self) -> bool:
        return self.role == ParticipantRole.ORCHESTRATOR


@dataclass(frozen=True)
class ClassificationWarning:
    """A participant whose name matched no leaf suffix.

    Attributes:
        participant: The participant name.
        message: Human-readable description of the warning.
    """

    participant: str
    message: str


@dataclass(frozen=True)
class Classification:
    """Roles of all participants, in participant order."""

    participants: tuple[ParticipantClass, ...]
    warnings: tuple[ClassificationWarning, ...] = ()

    def of(self, name: str) -> ParticipantClass:
        for participant in self.participants:
            if participant.name == name:
                return participant
        raise KeyError(name)

    @property
    def orchestrators(self) -> list[ParticipantClass]:
        return [p for p in self.participants if p.is_orchestrator]

    @property
    def leaves(self) -> list[ParticipantClass]:
        return [p for p in self.participants if p.role == ParticipantRole.LEAF]

    @property
    def computational_leaves(self) -> list[ParticipantClass]:
        return [p for p in self.leaves if p.leaf_kind == LeafKind.COMPUTATIONAL]


class ClassificationError(Exception):
    """Raised when a participant is left without a role."""


def classify(model: SemanticModel, leaf_suffixes: LeafSuffixes | None = None) -> Classification:
    """Assign a role to every participant of *model*.

    The component under test is always an orchestrator, even when it makes
    no calls. Among the configured suffixes the longest match decides the
    leaf kind; a leaf matching no suffix is computational and yields a
    warning.

    Args:
        model: The semantic model.
        leaf_suffixes: The suffix table; the default table when omitted.

    Returns:
        The Classification of every participant.

    Raises:
        ClassificationError: If a participant was not classified.
    """
    suffixes = leaf_suffixes or LeafSuffixes()
    callers = {i.call.source for i in model.interactions}

    classes: list[ParticipantClass] = []
    warnings: list[ClassificationWarning] = []
    for participant in model.participants:
        if participant.is_component_under_test or participant.name in callers:
            classes.append(
                ParticipantClass(
                    name=participant.name,
                    role=ParticipantRole.ORCHESTRATOR,
                    is_component_under_test=participant.is_component_under_test,
                )
            )
            continue
        kind = _leaf_kind(participant.name, suffixes)
        if kind is None:
            warning = ClassificationWarning(
                participant=participant.name,
                message=f"'{participant.name}' matches no leaf suffix; classified as computational",
            )
            logger.warning(warning.message)
            warnings.append(warning)
            kind = LeafKind.COMPUTATIONAL
        classes.append(ParticipantClass(name=participant.name, role=ParticipantRole.LEAF, leaf_kind=kind))

    classified = {c.name for c in classes}
    missing = [p.name for p in model.participants if p.name not in classified]
    if missing:
        raise ClassificationError(f"Unclassified participants: {', '.join(missing)}")

    result = Classification(participants=tuple(classes), warnings=tuple(warnings))
    logger.debug(
        "Classified %s orchestrators and %s leaves",
        len(result.orchestrators),
        len(result.leaves),
    )
    return result


# ################
# Implementation
# ################


def _leaf_kind(name: str, suffixes: LeafSuffixes) -> LeafKind | None:
    table = [(s, LeafKind.COMPUTATIONAL) for s in suffixes.computational]
    table += [(s, LeafKind.IO_BOUNDARY) for s in suffixes.io_boundary]
    matches = [(len(suffix), kind) for suffix, kind in table if name.endswith(suffix)]
    if not matches:
        return None
    return max(matches, key=lambda m: m[0])[1]
