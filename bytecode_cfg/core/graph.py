from bisect import bisect_right
from collections import deque
from typing import Dict, Iterator, List, Optional, Sequence, Set, Tuple

from bytecode_cfg.core.basic_block import BasicBlock
from bytecode_cfg.core.edge import Edge, EdgeKind
from bytecode_cfg.core.instruction import Instruction, InstructionKind, InstructionStream
from bytecode_cfg.errors import FrozenGraphError

# Virtual exit used when a method has zero or several return blocks
EXIT = -1


class ControlFlowGraph:
    """
    Basic blocks of one method body plus the typed edges between them.

    Blocks live in an arena indexed by integer id, in ascending start order,
    and edges are kept in a separate list. Blocks refer to edges by id and
    edges refer to blocks by id, so there are no object cycles.

    The graph is mutable only while it is being built. Once `freeze()` has
    been called every mutating method raises `FrozenGraphError`, and so
    does assigning any attribute of its blocks. The per-block edge lists
    become tuples and the stream is read-only.
    """

    def __init__(self, stream: InstructionStream, blocks: Sequence[BasicBlock]):
        self._stream = stream
        self._blocks: List[BasicBlock] = list(blocks)
        self._edges: List[Edge] = []
        self._starts = [block.start_index for block in self._blocks]
        self._by_start: Dict[int, int] = {
            block.start_index: block.id for block in self._blocks
        }
        self._frozen = False

    # --- Construction ---

    def add_edge(self, source: int, target: int, kind: EdgeKind) -> Edge:
        self._check_mutable()
        edge = Edge(id=len(self._edges), source=source, target=target, kind=kind)
        self._edges.append(edge)
        self._blocks[source].outgoing.append(edge.id)
        self._blocks[target].incoming.append(edge.id)
        return edge

    def mark_terminal(self, block_id: int) -> None:
        self._check_mutable()
        self._blocks[block_id].terminal = True

    def freeze(self) -> "ControlFlowGraph":
        if not self._frozen:
            for block in self._blocks:
                block.freeze()
            self._frozen = True
        return self

    @property
    def stream(self) -> InstructionStream:
        return self._stream

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _check_mutable(self) -> None:
        if self._frozen:
            raise FrozenGraphError("Control flow graph is frozen; build a new graph instead")

    # --- Queries ---

    @property
    def blocks(self) -> Tuple[BasicBlock, ...]:
        return tuple(self._blocks)

    @property
    def edges(self) -> Tuple[Edge, ...]:
        return tuple(self._edges)

    @property
    def entry(self) -> int:
        return self._by_start[0]

    @property
    def exits(self) -> Tuple[int, ...]:
        """Ids of every block that ends in a return or throw."""
        return tuple(block.id for block in self._blocks if block.terminal)

    @property
    def exit(self) -> int:
        """
        The block representing normal completion of the method.

        This is the only block ending in a return when there is exactly one
        such block, and the virtual `EXIT` id otherwise.
        """
        returns = [
            block.id
            for block in self._blocks
            if block.terminal and self.terminator(block.id).kind is InstructionKind.RETURN
        ]
        return returns[0] if len(returns) == 1 else EXIT

    def block(self, block_id: int) -> BasicBlock:
        return self._blocks[block_id]

    def block_starting_at(self, index: int) -> Optional[int]:
        return self._by_start.get(index)

    def block_containing(self, index: int) -> int:
        if not 0 <= index < len(self.stream):
            raise IndexError(f"Instruction index {index} outside stream of length {len(self.stream)}")
        return self._blocks[bisect_right(self._starts, index) - 1].id

    def instructions(self, block_id: int) -> Sequence[Instruction]:
        block = self._blocks[block_id]
        return self.stream[block.start_index:block.end_index]

    def terminator(self, block_id: int) -> Instruction:
        return self.stream[self._blocks[block_id].last_index]

    def out_edges(self, block_id: int) -> List[Edge]:
        return [self._edges[edge_id] for edge_id in self._blocks[block_id].outgoing]

    def in_edges(self, block_id: int) -> List[Edge]:
        return [self._edges[edge_id] for edge_id in self._blocks[block_id].incoming]

    def successors(self, block_id: int) -> List[int]:
        """Distinct successor ids, in edge creation order."""
        return _unique(edge.target for edge in self.out_edges(block_id))

    def predecessors(self, block_id: int) -> List[int]:
        """Distinct predecessor ids, in edge creation order."""
        return _unique(edge.source for edge in self.in_edges(block_id))

    def reachable(self) -> Set[int]:
        seen = {self.entry}
        worklist = deque([self.entry])
        while worklist:
            current = worklist.popleft()
            for succ in self.successors(current):
                if succ not in seen:
                    seen.add(succ)
                    worklist.append(succ)
        return seen

    def unreachable(self) -> Tuple[int, ...]:
        seen = self.reachable()
        return tuple(block.id for block in self._blocks if block.id not in seen)

    def __iter__(self) -> Iterator[BasicBlock]:
        return iter(self._blocks)

    def __len__(self) -> int:
        return len(self._blocks)

    def __repr__(self) -> str:
        return f"ControlFlowGraph(blocks={len(self._blocks)}, edges={len(self._edges)})"


def _unique(ids) -> List[int]:
    return list(dict.fromkeys(ids))
