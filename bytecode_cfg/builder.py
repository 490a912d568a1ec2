from typing import Iterable, Optional, Union

import structlog

from bytecode_cfg.analysis.edge_connector import connect_edges
from bytecode_cfg.analysis.leaders import find_leaders
from bytecode_cfg.analysis.partitioner import partition_blocks
from bytecode_cfg.analysis.validator import ValidationReport, validate_graph
from bytecode_cfg.config import VALIDATE_BY_DEFAULT
from bytecode_cfg.core.graph import ControlFlowGraph
from bytecode_cfg.core.instruction import Instruction, InstructionStream
from bytecode_cfg.errors import MissingTerminator

logger = structlog.get_logger()


class CFGBuilder:
    """
    Builds the control flow graph of a single method body.

    Construction runs the stages strictly in order: leader detection,
    partitioning, edge connection, validation. The graph is only exposed
    through `graph` once every stage succeeded, and it is frozen by then.
    """

    def __init__(self, instructions: Union[InstructionStream, Iterable[Instruction]],
                 method: Optional[str] = None, validate: Optional[bool] = None):
        if isinstance(instructions, InstructionStream):
            self.stream = instructions
        else:
            self.stream = InstructionStream(instructions)
        self.method = method
        self.validate = VALIDATE_BY_DEFAULT if validate is None else validate
        self.leaders = []
        self.report: Optional[ValidationReport] = None
        self._graph: Optional[ControlFlowGraph] = None
        self.log = logger.bind(method=method)

    def build(self) -> ControlFlowGraph:
        if self._graph is not None:
            return self._graph

        # --- Step 1: Leaders ---
        self.leaders = find_leaders(self.stream)

        # --- Step 2: Blocks ---
        graph = partition_blocks(self.stream, self.leaders)

        # The decoder guarantees a terminal last instruction; without one the
        # last block would fall off the end of the method.
        last = self.stream[-1]
        if not last.kind.is_terminal:
            raise MissingTerminator(last.index, last.kind)

        # --- Step 3: Edges ---
        connect_edges(graph)

        # --- Step 4: Validation ---
        if self.validate:
            self.report = validate_graph(graph)
            self.report.raise_for_violations()
            if self.report.unreachable:
                self.log.info("Unreachable blocks", block_ids=list(self.report.unreachable))
        else:
            self.log.warning("Graph validation skipped")

        self._graph = graph.freeze()
        self.log.debug(
            "Control flow graph built",
            instructions=len(self.stream),
            blocks=len(graph),
            edges=len(graph.edges),
        )
        return self._graph

    @property
    def graph(self) -> ControlFlowGraph:
        return self.build()


def build_cfg(instructions, method=None, validate=None) -> ControlFlowGraph:
    """Build, validate and freeze the control flow graph of one method body."""
    return CFGBuilder(instructions, method=method, validate=validate).build()
