from typing import Iterable

import structlog

from bytecode_cfg.core.basic_block import BasicBlock
from bytecode_cfg.core.graph import ControlFlowGraph
from bytecode_cfg.core.instruction import InstructionStream
from bytecode_cfg.errors import EmptyStream

logger = structlog.get_logger()


def partition_blocks(stream: InstructionStream, leaders: Iterable[int]) -> ControlFlowGraph:
    """
    Carve the stream into basic blocks at the given leaders.

    Each block runs from one leader up to (not including) the next leader or
    the end of the stream. Index 0 is always treated as a leader, and leaders
    outside the stream are ignored, so any leader set yields a gap-free
    partition.

    Returns:
        An edgeless ControlFlowGraph whose blocks are in ascending start order
        and whose block ids equal their position.

    Raises:
        EmptyStream: If the stream holds no instructions.
    """
    length = len(stream)
    if length == 0:
        raise EmptyStream()

    starts = sorted({0} | {leader for leader in leaders if 0 <= leader < length})
    bounds = starts[1:] + [length]

    blocks = [
        BasicBlock(block_id, start, end)
        for block_id, (start, end) in enumerate(zip(starts, bounds))
    ]
    logger.debug("Stream partitioned", blocks=len(blocks), stream_length=length)
    return ControlFlowGraph(stream, blocks)
