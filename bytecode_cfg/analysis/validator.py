import dataclasses
from collections import defaultdict
from typing import List, Tuple

import structlog

from bytecode_cfg.core.edge import EdgeKind
from bytecode_cfg.core.graph import ControlFlowGraph
from bytecode_cfg.core.instruction import InstructionKind
from bytecode_cfg.errors import InvalidGraph

logger = structlog.get_logger()

SINGLE_ENTRY = "single-entry"
PARTITION = "partition"
JUMP_NOT_LAST = "jump-not-last"
TERMINATOR_ARITY = "terminator-arity"
BRANCH_KINDS = "branch-kinds"
EDGE_ENDPOINTS = "edge-endpoints"
INCOMING_MIRROR = "incoming-mirror"


@dataclasses.dataclass(frozen=True)
class Violation:
    invariant: str
    block_ids: Tuple[int, ...] = ()
    edge_ids: Tuple[int, ...] = ()
    detail: str = ""


@dataclasses.dataclass(frozen=True)
class ValidationReport:
    """
    Outcome of validating one graph.

    Unreachable blocks are reported separately from violations: they are a
    property of the method body, not a construction error, and it is up to
    the caller what to do with them.
    """

    violations: Tuple[Violation, ...]
    unreachable: Tuple[int, ...]

    @property
    def passed(self) -> bool:
        return not self.violations

    @property
    def invariants(self) -> List[str]:
        return [v.invariant for v in self.violations]

    def raise_for_violations(self) -> None:
        if self.violations:
            raise InvalidGraph(self.violations)


def validate_graph(graph: ControlFlowGraph) -> ValidationReport:
    """
    Check the structural invariants of a constructed graph.

    The graph is never modified. Checks, in order:
    - single-entry: exactly one block starts at index 0
    - partition: blocks cover the stream in order, without gaps or overlaps
    - jump-not-last: no jump sits anywhere but at the end of a block
    - terminator-arity: 2 edges after a conditional jump, 0 after return or
      throw, 1 otherwise
    - branch-kinds: one TRUE_BRANCH and one FALSE_BRANCH after a conditional
      jump, FALLTHROUGH everywhere else
    - edge-endpoints: every edge joins existing blocks and is listed by its source
    - incoming-mirror: incoming lists hold exactly the edges that target the block

    Reachability from the entry is computed only when the entry and all edge
    endpoints are sound.
    """
    violations: List[Violation] = []
    blocks = graph.blocks
    edges = graph.edges
    stream = graph.stream

    # --- Entry ---
    entries = [block.id for block in blocks if block.start_index == 0]
    if len(entries) != 1:
        violations.append(Violation(
            SINGLE_ENTRY, tuple(entries), detail=f"{len(entries)} blocks start at index 0"
        ))

    # --- Partition ---
    expected_start = 0
    for position, block in enumerate(blocks):
        if block.id != position:
            violations.append(Violation(
                PARTITION, (block.id,), detail=f"block id {block.id} stored at position {position}"
            ))
        if block.start_index != expected_start:
            kind = "gap" if block.start_index > expected_start else "overlap"
            violations.append(Violation(
                PARTITION, (block.id,), detail=f"{kind} before index {block.start_index}"
            ))
        if block.end_index <= block.start_index:
            violations.append(Violation(PARTITION, (block.id,), detail="empty block"))
        expected_start = max(expected_start, block.end_index)
    if expected_start != len(stream):
        violations.append(Violation(
            PARTITION,
            (blocks[-1].id,) if blocks else (),
            detail=f"blocks cover {expected_start} of {len(stream)} instructions",
        ))

    block_count = len(blocks)
    endpoints_ok = True

    # --- Edges ---
    incoming_by_target = defaultdict(list)
    for edge in edges:
        if 0 <= edge.target < block_count:
            incoming_by_target[edge.target].append(edge.id)
        if not (0 <= edge.source < block_count and 0 <= edge.target < block_count):
            endpoints_ok = False
            violations.append(Violation(
                EDGE_ENDPOINTS, edge_ids=(edge.id,), detail="edge refers to a missing block"
            ))
        elif edge.id not in blocks[edge.source].outgoing:
            endpoints_ok = False
            violations.append(Violation(
                EDGE_ENDPOINTS, (edge.source,), (edge.id,), detail="edge not listed by its source"
            ))

    for block in blocks:
        stray = [
            edge_id for edge_id in block.outgoing
            if not (0 <= edge_id < len(edges)) or edges[edge_id].source != block.id
        ]
        if stray:
            endpoints_ok = False
            violations.append(Violation(
                EDGE_ENDPOINTS, (block.id,), tuple(stray), detail="outgoing edge with another source"
            ))

        expected_in = sorted(incoming_by_target.get(block.id, []))
        if sorted(block.incoming) != expected_in:
            violations.append(Violation(
                INCOMING_MIRROR,
                (block.id,),
                tuple(sorted(set(block.incoming) ^ set(expected_in))),
                detail="incoming edges do not mirror outgoing edges",
            ))

    # --- Terminators ---
    for block in blocks:
        if block.end_index <= block.start_index or block.end_index > len(stream):
            continue
        for index in range(block.start_index, block.last_index):
            if stream[index].kind.is_jump:
                violations.append(Violation(
                    JUMP_NOT_LAST, (block.id,), detail=f"jump at index {index} inside block"
                ))

        last = stream[block.last_index]
        outgoing = [edges[e] for e in block.outgoing if 0 <= e < len(edges)]
        kinds = sorted(edge.kind.value for edge in outgoing)

        if last.kind is InstructionKind.CONDITIONAL_JUMP:
            expected = 2
            expected_kinds = sorted([EdgeKind.TRUE_BRANCH.value, EdgeKind.FALSE_BRANCH.value])
        elif last.kind.is_terminal:
            expected = 0
            expected_kinds = []
        else:
            expected = 1
            expected_kinds = [EdgeKind.FALLTHROUGH.value]

        if len(block.outgoing) != expected or block.terminal != last.kind.is_terminal:
            violations.append(Violation(
                TERMINATOR_ARITY,
                (block.id,),
                tuple(block.outgoing),
                detail=f"{last.kind.value} terminator with {len(block.outgoing)} outgoing edges",
            ))
        elif kinds != expected_kinds:
            violations.append(Violation(
                BRANCH_KINDS, (block.id,), tuple(block.outgoing), detail=f"edge kinds {kinds}"
            ))

    # --- Reachability ---
    unreachable: Tuple[int, ...] = ()
    if len(entries) == 1 and endpoints_ok:
        unreachable = graph.unreachable()

    report = ValidationReport(violations=tuple(violations), unreachable=unreachable)
    if report.passed:
        logger.debug("Graph validated", blocks=block_count, edges=len(edges), unreachable=len(unreachable))
    else:
        logger.debug("Graph validation failed", invariants=report.invariants)
    return report
