import pytest
from bytecode_cfg.analysis.edge_connector import connect_edges
from bytecode_cfg.analysis.leaders import find_leaders
from bytecode_cfg.analysis.partitioner import partition_blocks
from bytecode_cfg.analysis import validator
from bytecode_cfg.analysis.validator import validate_graph
from bytecode_cfg.core.basic_block import BasicBlock
from bytecode_cfg.core.edge import EdgeKind
from bytecode_cfg.core.graph import ControlFlowGraph
from bytecode_cfg.core.instruction import Instruction, InstructionKind, InstructionStream
from bytecode_cfg.errors import InvalidGraph

K = InstructionKind


def create_stream(*specs):
    """Helper to create a stream from (kind, target) pairs."""
    return InstructionStream(
        Instruction(kind, index, target=target) for index, (kind, target) in enumerate(specs)
    )


def build_unvalidated(stream, leaders=None):
    graph = partition_blocks(stream, find_leaders(stream) if leaders is None else leaders)
    connect_edges(graph)
    return graph


@pytest.fixture
def if_stream():
    return create_stream(
        (K.OTHER, None),             # 0
        (K.CONDITIONAL_JUMP, 3),     # 1
        (K.CALL, None),              # 2
        (K.RETURN, None),            # 3
    )


def test_well_formed_graph_passes(if_stream):
    report = validate_graph(build_unvalidated(if_stream))

    assert report.passed
    assert report.violations == ()
    assert report.unreachable == ()
    report.raise_for_violations()  # Must not raise


def test_validation_is_idempotent_and_pure(if_stream):
    graph = build_unvalidated(if_stream)
    edges_before = graph.edges

    first = validate_graph(graph)
    second = validate_graph(graph)

    assert first == second
    assert graph.edges == edges_before, "Validation must not mutate the graph"


def test_unreachable_blocks_are_reported_not_violations():
    stream = create_stream(
        (K.UNCONDITIONAL_JUMP, 3),   # 0
        (K.OTHER, None),             # 1
        (K.RETURN, None),            # 2
        (K.RETURN, None),            # 3
    )
    graph = build_unvalidated(stream)
    report = validate_graph(graph)

    assert report.passed
    assert report.unreachable == (1,)
    assert len(graph) == 3


def test_extra_edge_breaks_terminator_arity(if_stream):
    graph = build_unvalidated(if_stream)
    graph.add_edge(2, 0, EdgeKind.FALLTHROUGH)  # Edge out of the return block

    report = validate_graph(graph)

    assert not report.passed
    assert report.invariants == [validator.TERMINATOR_ARITY]
    assert report.violations[0].block_ids == (2,)


def test_wrong_edge_kinds_on_conditional():
    stream = create_stream((K.CONDITIONAL_JUMP, 2), (K.OTHER, None), (K.RETURN, None))
    graph = partition_blocks(stream, find_leaders(stream))
    graph.add_edge(0, 2, EdgeKind.FALLTHROUGH)
    graph.add_edge(0, 1, EdgeKind.FALSE_BRANCH)
    graph.add_edge(1, 2, EdgeKind.FALLTHROUGH)
    graph.mark_terminal(2)

    report = validate_graph(graph)

    assert report.invariants == [validator.BRANCH_KINDS]
    assert report.violations[0].block_ids == (0,)


def test_jump_inside_block_is_reported():
    """Test that a partition missing the leader after a jump is caught."""
    stream = create_stream((K.CONDITIONAL_JUMP, 2), (K.OTHER, None), (K.RETURN, None))
    graph = build_unvalidated(stream, leaders=[0, 2])

    report = validate_graph(graph)

    assert validator.JUMP_NOT_LAST in report.invariants
    violation = next(v for v in report.violations if v.invariant == validator.JUMP_NOT_LAST)
    assert violation.block_ids == (0,)


def test_gap_and_missing_entry_are_reported():
    stream = create_stream((K.OTHER, None), (K.OTHER, None), (K.RETURN, None))
    graph = ControlFlowGraph(stream, [BasicBlock(0, 1, 3)])

    report = validate_graph(graph)

    assert validator.SINGLE_ENTRY in report.invariants
    assert validator.PARTITION in report.invariants
    assert report.unreachable == (), "Reachability is skipped without a sound entry"


def test_uncovered_tail_is_reported():
    stream = create_stream((K.OTHER, None), (K.RETURN, None), (K.RETURN, None))
    graph = ControlFlowGraph(stream, [BasicBlock(0, 0, 2)])
    graph.mark_terminal(0)

    report = validate_graph(graph)

    assert report.invariants == [validator.PARTITION]


def test_incoming_mirror_is_checked(if_stream):
    graph = build_unvalidated(if_stream)
    graph.block(0).incoming.append(0)  # Block 0 is not the target of edge 0

    report = validate_graph(graph)

    assert report.invariants == [validator.INCOMING_MIRROR]
    assert report.violations[0].block_ids == (0,)


def test_raise_for_violations_carries_structured_details(if_stream):
    graph = build_unvalidated(if_stream)
    graph.add_edge(2, 0, EdgeKind.FALLTHROUGH)

    with pytest.raises(InvalidGraph) as excinfo:
        validate_graph(graph).raise_for_violations()

    assert excinfo.value.invariant == validator.TERMINATOR_ARITY
    assert excinfo.value.block_ids == [2]
    assert len(excinfo.value.violations) == 1


class EdgePassCountingGraph(ControlFlowGraph):
    """Counts how often a consumer walks the whole edge list."""

    edge_passes = 0

    @property
    def edges(self):
        edges = _CountedEdges(self._edges)
        edges.owner = self
        return edges


class _CountedEdges(tuple):
    def __iter__(self):
        self.owner.edge_passes += 1
        return super().__iter__()


def test_long_branch_chain_validates_in_one_edge_pass():
    """Every block of a long chain is a join; the edge list is still walked once."""
    count = 20000
    stream = create_stream(*[(K.CONDITIONAL_JUMP, index + 1) for index in range(count)], (K.RETURN, None))
    graph = EdgePassCountingGraph(stream, partition_blocks(stream, find_leaders(stream)).blocks)
    connect_edges(graph)
    graph.edge_passes = 0

    report = validate_graph(graph)

    assert report.passed, report.invariants
    assert report.unreachable == ()
    assert len(graph) == count + 1
    assert len(graph.block(count).incoming) == 2
    assert graph.edge_passes == 1
