from typing import List

import structlog

from bytecode_cfg.core.instruction import InstructionStream
from bytecode_cfg.errors import MalformedTarget

logger = structlog.get_logger()


def find_leaders(stream: InstructionStream) -> List[int]:
    """
    Identify the instruction indices that must start a new basic block.

    A new basic block starts at:
    1. The first instruction (index 0).
    2. Every jump target.
    3. The instruction following a conditional or unconditional jump.

    The third rule also applies when the jump targets its own successor, as
    happens for an empty branch body: the leader is recorded once.

    Args:
        stream: The decoded instruction stream.

    Returns:
        Leader indices in ascending order, without duplicates. Empty for an
        empty stream.

    Raises:
        MalformedTarget: If a jump target lies outside the stream.
    """
    length = len(stream)
    if length == 0:
        return []

    leaders = {0}
    for instr in stream.jumps():
        if not 0 <= instr.target < length:
            raise MalformedTarget(instr.index, instr.target, length)
        leaders.add(instr.target)
        if instr.index + 1 < length:
            leaders.add(instr.index + 1)

    result = sorted(leaders)
    logger.debug("Leaders detected", count=len(result), stream_length=length)
    return result
