from typing import List, Optional, Sequence


class CFGError(Exception):
    """Base class for every failure raised while building a control flow graph."""


class MalformedTarget(CFGError):
    """A jump instruction points outside the instruction stream."""

    def __init__(self, index: int, target: int, length: int):
        self.index = index
        self.target = target
        self.length = length
        super().__init__(
            f"Jump at index {index} targets {target}, outside stream of length {length}"
        )


class EmptyStream(CFGError):
    """The instruction stream holds no instructions, so there is no entry block."""

    def __init__(self, message: str = "Instruction stream is empty"):
        super().__init__(message)


class DanglingTarget(CFGError):
    """
    An edge target does not line up with the start of any basic block.

    This means leader detection and partitioning disagree with edge
    connection. It is an engine bug, never a property of the input.
    """

    def __init__(self, block_id: int, target_index: int):
        self.block_id = block_id
        self.target_index = target_index
        super().__init__(
            f"Block {block_id} leads to index {target_index}, which does not start a block"
        )


class InvalidGraph(CFGError):
    """
    Post-construction validation failed.

    Carries every violation found; `invariant`, `block_ids` and `edge_ids`
    mirror the first one for callers that only care about a single failure.
    """

    def __init__(self, violations: Sequence):
        self.violations = list(violations)
        first = self.violations[0] if self.violations else None
        self.invariant: Optional[str] = first.invariant if first else None
        self.block_ids: List[int] = list(first.block_ids) if first else []
        self.edge_ids: List[int] = list(first.edge_ids) if first else []
        names = ", ".join(v.invariant for v in self.violations)
        super().__init__(f"Graph violates {len(self.violations)} invariant(s): {names}")


class DecoderContractViolation(CFGError):
    """The decoded instruction sequence breaks a guarantee the decoder owes us."""

    def __init__(self, index: int, reason: str):
        self.index = index
        self.reason = reason
        super().__init__(f"Instruction {index}: {reason}")


class MissingTerminator(DecoderContractViolation):
    """The method body does not end with a return or throw."""

    def __init__(self, index: int, kind):
        self.kind = kind
        super().__init__(index, f"method body ends with {kind.value}, not return/throw")


class FrozenGraphError(CFGError):
    """Attempted to mutate a graph after it was validated and frozen."""


class ListingError(CFGError):
    """An instruction listing could not be turned into instructions."""
