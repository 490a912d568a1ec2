"""
Control flow graph construction for decoded method bytecode.
"""

# Data model
from .core.instruction import Instruction, InstructionKind, InstructionStream
from .core.basic_block import BasicBlock
from .core.edge import Edge, EdgeKind
from .core.graph import ControlFlowGraph, EXIT

# Construction stages
from .analysis.leaders import find_leaders
from .analysis.partitioner import partition_blocks
from .analysis.edge_connector import connect_edges, BRANCH_TAKEN, BRANCH_NOT_TAKEN
from .analysis.validator import validate_graph, ValidationReport, Violation

# Entry points
from .builder import CFGBuilder, build_cfg
from .runner import build_cfgs, MethodResult

# Errors
from .errors import (
    CFGError,
    MalformedTarget,
    EmptyStream,
    DanglingTarget,
    InvalidGraph,
    DecoderContractViolation,
    MissingTerminator,
    FrozenGraphError,
    ListingError,
)

__version__ = "0.1.0"
