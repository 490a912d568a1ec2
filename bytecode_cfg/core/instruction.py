import dataclasses
from enum import Enum
from typing import Iterator, Optional, Sequence

from bytecode_cfg.errors import DecoderContractViolation


class InstructionKind(Enum):
    """Semantic class of a decoded instruction, as far as control flow cares."""

    ARITHMETIC = "arithmetic"
    COMPARISON = "comparison"
    CONDITIONAL_JUMP = "conditional_jump"
    UNCONDITIONAL_JUMP = "unconditional_jump"
    CALL = "call"
    RETURN = "return"
    THROW = "throw"
    OTHER = "other"

    @property
    def is_jump(self) -> bool:
        return self in JUMP_KINDS

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_KINDS


JUMP_KINDS = frozenset({InstructionKind.CONDITIONAL_JUMP, InstructionKind.UNCONDITIONAL_JUMP})
TERMINAL_KINDS = frozenset({InstructionKind.RETURN, InstructionKind.THROW})


@dataclasses.dataclass(frozen=True)
class Instruction:
    """
    A single decoded instruction.

    `index` is the instruction's position in its stream. `target` is the
    index a jump transfers control to and is None for every other kind.
    `opcode` and `line` are informational and never influence the graph.
    """

    kind: InstructionKind
    index: int
    target: Optional[int] = None
    opcode: Optional[str] = None
    line: Optional[int] = None

    def __repr__(self) -> str:
        name = self.opcode or self.kind.value
        if self.target is not None:
            return f"Instruction({self.index}: {name} -> {self.target})"
        return f"Instruction({self.index}: {name})"


class InstructionStream(Sequence[Instruction]):
    """
    Ordered, 0-indexed, immutable sequence of decoded instructions.

    Building a stream checks the shape the decoder promises: indices are
    positions, jumps carry a target and nothing else does. Whether targets
    fall inside the stream is left to leader detection.
    """

    def __init__(self, instructions):
        self._instructions = tuple(instructions)
        for position, instr in enumerate(self._instructions):
            if instr.index != position:
                raise DecoderContractViolation(
                    position, f"index {instr.index} does not match its position"
                )
            if instr.kind.is_jump and instr.target is None:
                raise DecoderContractViolation(position, f"{instr.kind.value} without a target")
            if not instr.kind.is_jump and instr.target is not None:
                raise DecoderContractViolation(
                    position, f"{instr.kind.value} must not carry a jump target"
                )

    def __getitem__(self, item):
        return self._instructions[item]

    def __len__(self) -> int:
        return len(self._instructions)

    def __iter__(self) -> Iterator[Instruction]:
        return iter(self._instructions)

    def __repr__(self) -> str:
        return f"InstructionStream(length={len(self._instructions)})"

    def jumps(self) -> Iterator[Instruction]:
        return (instr for instr in self._instructions if instr.kind.is_jump)
