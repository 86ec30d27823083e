# Copyright 2026 seqtdd Contributors
# SPDX-License-Identifier: Apache-2.0

"""Semantic model builder.

Resolves the parsed element stream into participants, interactions, control
blocks, data pipes and method results. Structural problems that make the
diagram unusable (unresolved arguments, circular calls, excessive branch
nesting) are fatal; heuristics that may have picked the wrong reading are
recorded as warnings.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass, field

from seqtdd.model.elements import (
    AltStart,
    Argument,
    BlockEnd,
    CallElement,
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
from seqtdd.workspace.naming import capitalize_type

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############

MAX_BRANCH_DEPTH = 2


class ModelErrorKind(enum.Enum):
    UNRESOLVED_REFERENCE = "unresolved-reference"
    CIRCULAR_CALL = "circular-call"
    EXCESSIVE_NESTING = "excessive-nesting"
    AMBIGUOUS_BINDING = "ambiguous-binding"
    EMPTY_DIAGRAM = "empty-diagram"


class ModelError(Exception):
    """Raised when a parsed diagram cannot be turned into a semantic model."""

    def __init__(self, kind: ModelErrorKind, message: str, line: int | None = None) -> None:
        location = f"Line {line}: " if line is not None else ""
        super().__init__(f"{location}{kind.value}: {message}")
        self.kind = kind
        self.line = line


def build_model(
    diagram: ParsedDiagram,
    *,
    external_inputs: list[str] | tuple[str, ...] | None = None,
    allow_deep_nesting: bool = False,
    strict_bindings: bool = False,
    method_name: str = "execute",
) -> SemanticModel:
    """Build the semantic model of a parsed diagram.

    Args:
        diagram: The parser output.
        external_inputs: Names the method under test receives as parameters.
            Overrides the arguments of an entry message when given.
        allow_deep_nesting: Accept branch blocks nested three or more levels
            deep, recording a warning instead of failing.
        strict_bindings: Fail instead of warning when two earlier returns
            bind the same name an argument refers to.
        method_name: Name of the method under test when the diagram has no
            entry message.

    Returns:
        The immutable SemanticModel.

    Raises:
        ModelError: If the diagram is empty, references an unbound name,
            contains a call cycle or nests branches too deeply.
    """
    return _ModelBuilder(
        diagram,
        external_inputs=list(external_inputs) if external_inputs is not None else None,
        allow_deep_nesting=allow_deep_nesting,
        strict_bindings=strict_bindings,
        method_name=method_name,
    ).build()


def root_name(argument: str) -> str:
    """Return the variable an argument refers to (``order`` for ``order.id``)."""
    return argument.split(".", 1)[0]


# ################
# Implementation
# ################

_LITERAL_WORDS = frozenset({"true", "false", "null", "none", "nil"})
_LOOP_LABEL_RE = re.compile(r"^(?:for\s+each|for|each)\s+(?P<element>\w+)\s+in\s+(?P<collection>[\w.]+)", re.IGNORECASE)


@dataclass(eq=False)
class _Block:
    """A loop or alt block while the element stream is walked."""

    block_id: int
    kind: str
    position: int
    line: int
    label: str = ""
    guards: list[tuple[str | None, int]] = field(default_factory=list)
    parents: list[tuple[_Block, int]] = field(default_factory=list)
    owner: int | None = None
    owned: bool = False
    branch_index: int = 0


# A block frame as seen by an element: the block and the branch it was in.
_RawFrame = tuple[_Block, int]


@dataclass
class _Placed:
    """An element together with its position and enclosing blocks."""

    position: int
    method: int | None
    frames: list[_RawFrame]


class _ModelBuilder:
    """Walks the element stream once, then resolves scopes, data flow and results."""

    def __init__(
        self,
        diagram: ParsedDiagram,
        *,
        external_inputs: list[str] | None,
        allow_deep_nesting: bool,
        strict_bindings: bool,
        method_name: str,
    ) -> None:
        self._diagram = diagram
        self._external_inputs = external_inputs
        self._allow_deep_nesting = allow_deep_nesting
        self._strict_bindings = strict_bindings
        self._method_name = method_name

        self._participants: list[str] = []
        self._entry: EntryCall | None = None
        self._blocks: list[_Block] = []
        self._open: list[_Block] = []
        self._calls: list[tuple[CallElement, _Placed]] = []
        self._returns: dict[int, tuple[ReturnElement, _Placed]] = {}
        self._throws: list[tuple[ThrowElement, _Placed]] = []
        self._results: list[tuple[ResultElement, _Placed]] = []
        self._parent_of: dict[int, int | None] = {}
        self._warnings: list[ModelWarning] = []

    def build(self) -> SemanticModel:
        self._walk()
        if not self._calls:
            raise ModelError(ModelErrorKind.EMPTY_DIAGRAM, "The diagram contains no call arrows")
        self._resolve_block_owners()
        self._check_cycles()
        self._check_nesting()

        method_ids = [None] + sorted({c.parent_call for c, _ in self._calls if c.parent_call is not None})
        parameters = {m: self._method_parameters(m) for m in method_ids}
        interactions = self._build_interactions(parameters)
        pipes = [
            DataPipe(
                producer=arg.producer,
                consumer=inter.index,
                variable=arg.name,
                value_id=arg.value_id,
            )
            for inter in interactions
            for arg in inter.call.arguments
            if arg.source == ArgumentSource.RETURN and arg.producer is not None and arg.value_id is not None
        ]
        loops, branches = self._build_blocks()
        methods = [self._build_method(m, parameters[m], interactions, branches) for m in method_ids]
        throws = self._build_throws(interactions, {m.call_index for m in methods})

        model = SemanticModel(
            participants=[Participant(name=n, ordinal=i) for i, n in enumerate(self._participants)],
            interactions=interactions,
            pipes=pipes,
            loops=loops,
            branches=branches,
            throws=throws,
            methods=methods,
            warnings=self._warnings,
        )
        logger.debug(
            "Built model: %s participants, %s interactions, %s pipes, %s methods",
            len(model.participants),
            len(model.interactions),
            len(model.pipes),
            len(model.methods),
        )
        return model

    # ------------------------------------------------------------------
    # Element walk
    # ------------------------------------------------------------------

    def _walk(self) -> None:
        for position, element in enumerate(self._diagram.elements):
            if isinstance(element, ParticipantDecl):
                self._note(element.name)
            elif isinstance(element, EntryCall):
                self._entry = element
                if element.target in self._participants:
                    self._participants.remove(element.target)
                self._participants.insert(0, element.target)
            elif isinstance(element, CallElement):
                self._note(element.source)
                self._note(element.target)
                self._parent_of[element.call_id] = element.parent_call
                self._calls.append((element, self._place(position, element.parent_call)))
            elif isinstance(element, ReturnElement):
                method = self._parent_of.get(element.call_id)
                self._returns[element.call_id] = (element, self._place(position, method))
            elif isinstance(element, ThrowElement):
                self._note(element.participant)
                self._throws.append((element, self._place(position, element.parent_call)))
            elif isinstance(element, ResultElement):
                self._results.append((element, self._place(position, element.parent_call)))
            elif isinstance(element, LoopStart):
                self._open_block("loop", position, element.line, label=element.label)
            elif isinstance(element, AltStart):
                block = self._open_block("branch", position, element.line)
                block.guards.append((element.guard, position))
            elif isinstance(element, ElseBranch):
                block = self._open[-1]
                block.guards.append((element.guard, position))
                block.branch_index += 1
            elif isinstance(element, BlockEnd):
                self._open.pop()

    def _note(self, name: str) -> None:
        if name not in self._participants:
            self._participants.append(name)

    def _open_block(self, kind: str, position: int, line: int, label: str = "") -> _Block:
        block = _Block(
            block_id=len(self._blocks),
            kind=kind,
            position=position,
            line=line,
            label=label,
            parents=[(b, b.branch_index) for b in self._open],
        )
        self._blocks.append(block)
        self._open.append(block)
        return block

    def _place(self, position: int, method: int | None) -> _Placed:
        # The first element inside a block decides which method the block belongs to.
        for block in self._open:
            if not block.owned:
                block.owner = method
                block.owned = True
        return _Placed(position=position, method=method, frames=[(b, b.branch_index) for b in self._open])

    def _resolve_block_owners(self) -> None:
        for block in self._blocks:
            if not block.owned:
                block.owner = block.parents[-1][0].owner if block.parents else None
                block.owned = True

    # ------------------------------------------------------------------
    # Structural checks
    # ------------------------------------------------------------------

    def _check_cycles(self) -> None:
        graph: dict[str, list[str]] = {}
        for call, _ in self._calls:
            targets = graph.setdefault(call.source, [])
            if call.target not in targets:
                targets.append(call.target)
        cycle = _detect_cycle(graph)
        if cycle is not None:
            raise ModelError(
                ModelErrorKind.CIRCULAR_CALL,
                f"Call cycle detected: {' -> '.join(cycle)}",
            )

    def _check_nesting(self) -> None:
        for block in self._blocks:
            if block.kind != "branch":
                continue
            depth = self._branch_depth(block)
            if depth <= MAX_BRANCH_DEPTH:
                continue
            if not self._allow_deep_nesting:
                raise ModelError(
                    ModelErrorKind.EXCESSIVE_NESTING,
                    f"'alt' block is nested {depth} levels deep; split the method or allow deep nesting explicitly",
                    block.line,
                )
            self._warn(f"'alt' block nested {depth} levels deep was expanded", block.line)

    def _branch_depth(self, block: _Block) -> int:
        return 1 + sum(1 for b, _ in block.parents if b.kind == "branch" and b.owner == block.owner)

    # ------------------------------------------------------------------
    # Interactions and data flow
    # ------------------------------------------------------------------

    def _method_parameters(self, method: int | None) -> list[str]:
        if method is not None:
            call = next(c for c, _ in self._calls if c.call_id == method)
            return _parameter_names(call.arguments)
        if self._external_inputs is not None:
            return list(self._external_inputs)
        if self._entry is not None:
            return _parameter_names(self._entry.arguments)
        return []

    def _build_interactions(self, parameters: dict[int | None, list[str]]) -> list[Interaction]:
        inferred = self._external_inputs is None and self._entry is None
        interactions: list[Interaction] = []
        for call, placed in self._calls:
            arguments = [
                self._resolve_argument(arg, call, placed, parameters, inferred) for arg in call.arguments
            ]
            returns = None
            if call.call_id in self._returns:
                ret, _ = self._returns[call.call_id]
                returns = ReturnArrow(
                    value=ret.value,
                    type_name=ret.type_name or capitalize_type(ret.value),
                    explicit_type=ret.type_name is not None,
                    value_id=_value_id(ret.value, call.call_id),
                    line=ret.line,
                )
            interactions.append(
                Interaction(
                    index=call.call_id,
                    position=placed.position,
                    method=call.parent_call,
                    call=CallArrow(
                        source=call.source,
                        target=call.target,
                        method=call.method,
                        arguments=arguments,
                        line=call.line,
                    ),
                    returns=returns,
                    scope=_relative(placed.frames, call.parent_call),
                )
            )
        return interactions

    def _resolve_argument(
        self,
        argument: Argument,
        call: CallElement,
        placed: _Placed,
        parameters: dict[int | None, list[str]],
        inferred: bool,
    ) -> ArgumentRef:
        if argument.is_literal:
            return ArgumentRef(name=argument.name, source=ArgumentSource.LITERAL)
        name = root_name(argument.name)

        for block, _ in reversed(placed.frames):
            element, _collection = _loop_variables(block)
            if element == name:
                return ArgumentRef(name=argument.name, source=ArgumentSource.LOOP_ELEMENT)

        binding = self._visible_binding(name, placed, call.line)
        if binding is not None:
            return ArgumentRef(
                name=argument.name,
                source=ArgumentSource.RETURN,
                producer=binding,
                value_id=_value_id(name, binding),
            )

        method_parameters = parameters[placed.method]
        if name in method_parameters:
            return ArgumentRef(name=argument.name, source=ArgumentSource.INPUT)
        if placed.method is None and inferred:
            method_parameters.append(name)
            self._warn(
                f"'{name}' is not bound by any return; treating it as an input of the method under test", call.line
            )
            return ArgumentRef(name=argument.name, source=ArgumentSource.INPUT)
        raise ModelError(
            ModelErrorKind.UNRESOLVED_REFERENCE,
            f"Argument '{argument.name}' of {call.source} -> {call.target}.{call.method} "
            f"matches no earlier return and is not an input",
            call.line,
        )

    def _visible_binding(self, name: str, placed: _Placed, line: int) -> int | None:
        """Return the call id of the most recent visible return binding *name*."""
        candidates = [
            call_id
            for call_id, (ret, ret_placed) in self._returns.items()
            if ret.value == name
            and ret_placed.method == placed.method
            and ret_placed.position < placed.position
            and _visible(ret_placed.frames, placed.frames)
        ]
        if not candidates:
            return None
        candidates.sort(key=lambda c: self._returns[c][1].position)
        if len(candidates) > 1:
            message = (
                f"'{name}' is bound by {len(candidates)} earlier returns "
                f"(lines {', '.join(str(self._returns[c][0].line) for c in candidates)}); using the most recent"
            )
            if self._strict_bindings:
                raise ModelError(ModelErrorKind.AMBIGUOUS_BINDING, message, line)
            self._warn(message, line)
        return candidates[-1]

    # ------------------------------------------------------------------
    # Blocks, methods and throws
    # ------------------------------------------------------------------

    def _build_blocks(self) -> tuple[list[LoopBlock], list[BranchBlock]]:
        loops: list[LoopBlock] = []
        branches: list[BranchBlock] = []
        for block in self._blocks:
            scope = _relative(block.parents, block.owner)
            if block.kind == "loop":
                element, collection = _loop_variables(block)
                producer = None
                if collection is not None:
                    placed = _Placed(position=block.position, method=block.owner, frames=block.parents)
                    producer = self._latest_binding(root_name(collection), placed)
                loops.append(
                    LoopBlock(
                        block_id=block.block_id,
                        method=block.owner,
                        label=block.label,
                        element=element,
                        collection=collection,
                        collection_producer=producer,
                        scope=scope,
                        position=block.position,
                        line=block.line,
                    )
                )
            else:
                branches.append(
                    BranchBlock(
                        block_id=block.block_id,
                        method=block.owner,
                        branches=[
                            Branch(index=i, guard=guard, position=position)
                            for i, (guard, position) in enumerate(block.guards)
                        ],
                        depth=self._branch_depth(block),
                        scope=scope,
                        position=block.position,
                        line=block.line,
                    )
                )
        return loops, branches

    def _latest_binding(self, name: str, placed: _Placed) -> int | None:
        candidates = [
            call_id
            for call_id, (ret, ret_placed) in self._returns.items()
            if ret.value == name
            and ret_placed.method == placed.method
            and ret_placed.position < placed.position
            and _visible(ret_placed.frames, placed.frames)
        ]
        return max(candidates, key=lambda c: self._returns[c][1].position) if candidates else None

    def _build_method(
        self,
        method: int | None,
        parameters: list[str],
        interactions: list[Interaction],
        branches: list[BranchBlock],
    ) -> Method:
        if method is None:
            owner = self._participants[0]
            name = self._entry.method if self._entry is not None else self._method_name
        else:
            owner = interactions[method].call.target
            name = interactions[method].call.method
        return Method(
            call_index=method,
            owner=owner,
            name=name,
            parameters=parameters,
            inferred_parameters=method is None and self._external_inputs is None and self._entry is None,
            results=self._method_results(method, parameters, interactions, branches),
        )

    def _method_results(
        self,
        method: int | None,
        parameters: list[str],
        interactions: list[Interaction],
        branches: list[BranchBlock],
    ) -> list[MethodResult]:
        """Pick one result per branch path of *method*.

        An explicit lost-message result wins. Otherwise the last return into
        the method owner on that exact path is the result, unless a branch
        block of the same path opens after it.
        """
        per_path: dict[tuple[tuple[int, int], ...], MethodResult] = {}

        for call_id, (ret, placed) in sorted(self._returns.items(), key=lambda item: item[1][1].position):
            if placed.method != method:
                continue
            inter = interactions[call_id]
            scope = _relative(placed.frames, method)
            per_path[_path_key(scope)] = MethodResult(
                value=ret.value,
                type_name=inter.returns.type_name if inter.returns else capitalize_type(ret.value),
                value_id=_value_id(ret.value, call_id),
                scope=scope,
                position=placed.position,
            )

        for key, result in list(per_path.items()):
            later_blocks = [
                b
                for b in branches
                if b.method == method and _path_key(b.scope) == key and b.position > result.position
            ]
            if later_blocks:
                del per_path[key]

        for element, placed in self._results:
            if placed.method != method:
                continue
            scope = _relative(placed.frames, method)
            binding = self._latest_binding(element.value, placed)
            if binding is None and element.value not in parameters and element.value.lower() not in _LITERAL_WORDS:
                raise ModelError(
                    ModelErrorKind.UNRESOLVED_REFERENCE,
                    f"Result '{element.value}' of {element.source} matches no earlier return and is not an input",
                    element.line,
                )
            type_name = element.type_name
            if type_name is None:
                type_name = (
                    interactions[binding].returns.type_name
                    if binding is not None and interactions[binding].returns
                    else capitalize_type(element.value)
                )
            per_path[_path_key(scope)] = MethodResult(
                value=element.value,
                type_name=type_name,
                value_id=_value_id(element.value, binding) if binding is not None else None,
                scope=scope,
                position=placed.position,
                explicit=True,
            )
        return sorted(per_path.values(), key=lambda r: r.position)

    def _build_throws(self, interactions: list[Interaction], method_ids: set[int | None]) -> list[ThrowArrow]:
        throws: list[ThrowArrow] = []
        for element, placed in self._throws:
            scope = _relative(placed.frames, element.parent_call)
            propagates: list[int] = []
            current = element.parent_call
            conditional = any(f.kind == "branch" for f in scope) and current in method_ids
            # An exception leaves every activation it is not raised conditionally in.
            while current is not None and not conditional:
                propagates.append(current)
                site = interactions[current]
                conditional = any(f.kind == "branch" for f in site.scope)
                current = site.method
            throws.append(
                ThrowArrow(
                    participant=element.participant,
                    exception_type=element.exception_type,
                    message_template=element.message_template,
                    method=element.parent_call,
                    scope=scope,
                    propagates_through=propagates,
                    position=placed.position,
                    line=element.line,
                )
            )
        return throws

    def _warn(self, message: str, line: int | None = None) -> None:
        logger.warning("Line %s: %s", line, message)
        self._warnings.append(ModelWarning(message=message, line=line))


def _parameter_names(arguments: list[Argument]) -> list[str]:
    names: list[str] = []
    for i, arg in enumerate(arguments):
        name = f"arg{i}" if arg.is_literal else root_name(arg.name)
        if name not in names:
            names.append(name)
    return names


def _value_id(value: str, call_id: int) -> str:
    return f"{value}@{call_id}"


def _loop_variables(block: _Block) -> tuple[str | None, str | None]:
    if block.kind != "loop":
        return None, None
    match = _LOOP_LABEL_RE.match(block.label.strip())
    if match is None:
        return None, None
    return match.group("element"), match.group("collection")


def _relative(frames: list[_RawFrame], method: int | None) -> list[ScopeFrame]:
    """Keep only the frames of blocks opened by *method*."""
    return [
        ScopeFrame(kind=block.kind, block_id=block.block_id, branch_index=index)
        for block, index in frames
        if block.owner == method
    ]


def _path_key(scope: list[ScopeFrame]) -> tuple[tuple[int, int], ...]:
    return tuple((f.block_id, f.branch_index) for f in scope if f.kind == "branch")


def _visible(producer: list[_RawFrame], consumer: list[_RawFrame]) -> bool:
    """A value bound inside a branch is visible only further down the same branch."""
    consumer_branches = {block.block_id: index for block, index in consumer if block.kind == "branch"}
    for block, index in producer:
        if block.kind == "branch" and consumer_branches.get(block.block_id) != index:
            return False
    return True


def _detect_cycle(graph: dict[str, list[str]]) -> list[str] | None:
    """Detect a cycle in a directed graph using DFS.

    Uses a three-colour marking scheme (white/grey/black) to distinguish
    unvisited, in-progress, and fully-explored nodes.

    Args:
        graph: Adjacency list mapping each node to its direct neighbours.
            Nodes that appear only as neighbours (not as keys) are treated
            as having no outgoing edges.

    Returns:
        A list of node names forming the cycle with the start node repeated
        at the end (e.g. ``["A", "B", "C", "A"]``), or ``None`` if the
        graph is acyclic.
    """
    WHITE, GREY, BLACK = 0, 1, 2
    color: dict[str, int] = {}
    path: list[str] = []

    def _dfs(node: str) -> list[str] | None:
        color[node] = GREY
        path.append(node)
        for neighbor in graph.get(node, []):
            state = color.get(neighbor, WHITE)
            if state == GREY:
                cycle_start = path.index(neighbor)
                return path[cycle_start:] + [neighbor]
            if state == WHITE:
                result = _dfs(neighbor)
                if result is not None:
                    return result
        path.pop()
        color[node] = BLACK
        return None

    for node in graph:
        if color.get(node, WHITE) == WHITE:
            result = _dfs(node)
            if result is not None:
                return result
    return None
