from typing import List

import structlog

from bytecode_cfg.core.edge import Edge, EdgeKind
from bytecode_cfg.core.graph import ControlFlowGraph
from bytecode_cfg.core.instruction import InstructionKind
from bytecode_cfg.errors import DanglingTarget

logger = structlog.get_logger()

# Branch polarity.
#
# A conditional jump instruction carries its own condition. When it holds,
# control jumps to the target; otherwise it continues with the next
# instruction. Edges are labelled from the point of view of that
# instruction, not of the source-level `if`. Compilers lower
# `if (cond) { body }` to a jump on the negated condition over the body,
# so for such code TRUE_BRANCH skips the body and FALSE_BRANCH enters it.
BRANCH_TAKEN = EdgeKind.TRUE_BRANCH
BRANCH_NOT_TAKEN = EdgeKind.FALSE_BRANCH


def connect_edges(graph: ControlFlowGraph) -> List[Edge]:
    """
    Attach outgoing edges to every block according to its last instruction.

    - Conditional jump: BRANCH_TAKEN to the jump target, then
      BRANCH_NOT_TAKEN to the instruction after the jump.
    - Unconditional jump: a single FALLTHROUGH edge to the jump target.
    - Return/throw: no edges, the block is marked terminal.
    - Anything else: a single FALLTHROUGH edge to the next block.

    Args:
        graph: A freshly partitioned graph without edges.

    Returns:
        The edges created, in creation order.

    Raises:
        DanglingTarget: If an edge would point at an index that does not
            start a block. This means the partition is inconsistent with the
            instruction stream.
    """
    created = []
    for block in graph:
        last = graph.terminator(block.id)
        kind = last.kind

        if kind is InstructionKind.CONDITIONAL_JUMP:
            taken = _block_at(graph, block.id, last.target)
            not_taken = _block_at(graph, block.id, last.index + 1)
            created.append(graph.add_edge(block.id, taken, BRANCH_TAKEN))
            created.append(graph.add_edge(block.id, not_taken, BRANCH_NOT_TAKEN))
        elif kind is InstructionKind.UNCONDITIONAL_JUMP:
            target = _block_at(graph, block.id, last.target)
            created.append(graph.add_edge(block.id, target, EdgeKind.FALLTHROUGH))
        elif kind.is_terminal:
            graph.mark_terminal(block.id)
        else:
            following = _block_at(graph, block.id, block.end_index)
            created.append(graph.add_edge(block.id, following, EdgeKind.FALLTHROUGH))

    logger.debug("Edges connected", edges=len(created), blocks=len(graph))
    return created


def _block_at(graph: ControlFlowGraph, source_id: int, index: int) -> int:
    target = graph.block_starting_at(index)
    if target is None:
        raise DanglingTarget(source_id, index)
    return target
