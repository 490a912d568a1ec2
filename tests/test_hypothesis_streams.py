from hypothesis import given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from bytecode_cfg.analysis.leaders import find_leaders
from bytecode_cfg.analysis.validator import validate_graph
from bytecode_cfg.builder import CFGBuilder
from bytecode_cfg.core.edge import EdgeKind
from bytecode_cfg.core.instruction import Instruction, InstructionKind, InstructionStream

K = InstructionKind

BODY_KINDS = [
    K.ARITHMETIC, K.COMPARISON, K.CALL, K.OTHER,
    K.CONDITIONAL_JUMP, K.UNCONDITIONAL_JUMP, K.RETURN, K.THROW,
]


# Strategy for method bodies honouring the decoder contract: indices are
# positions, every target is in range and the last instruction is terminal.
@composite
def method_bodies(draw):
    length = draw(st.integers(min_value=1, max_value=60))
    instructions = []
    for index in range(length - 1):
        kind = draw(st.sampled_from(BODY_KINDS))
        target = draw(st.integers(min_value=0, max_value=length - 1)) if kind.is_jump else None
        instructions.append(Instruction(kind, index, target=target))
    last = draw(st.sampled_from([K.RETURN, K.THROW]))
    instructions.append(Instruction(last, length - 1))
    return instructions


@settings(max_examples=300, deadline=None)
@given(instructions=method_bodies())
def test_blocks_partition_the_stream(instructions):
    builder = CFGBuilder(instructions)
    graph = builder.build()

    covered = []
    for block in graph:
        assert len(block) > 0, f"Empty block {block}"
        covered.extend(range(block.start_index, block.end_index))
    assert covered == list(range(len(instructions))), "Blocks must cover the stream exactly once"
    assert [block.start_index for block in graph] == builder.leaders


@settings(max_examples=300, deadline=None)
@given(instructions=method_bodies())
def test_terminator_arity(instructions):
    graph = CFGBuilder(instructions).build()

    for block in graph:
        last = graph.terminator(block.id)
        kinds = sorted(edge.kind.value for edge in graph.out_edges(block.id))
        if last.kind is K.CONDITIONAL_JUMP:
            assert kinds == ["false_branch", "true_branch"]
        elif last.kind.is_terminal:
            assert kinds == []
            assert block.terminal
        else:
            assert kinds == [EdgeKind.FALLTHROUGH.value]

        for index in range(block.start_index, block.last_index):
            assert not graph.stream[index].kind.is_jump, "Jumps may only end a block"


@settings(max_examples=200, deadline=None)
@given(instructions=method_bodies())
def test_single_entry_and_stable_reachability(instructions):
    graph = CFGBuilder(instructions).build()

    assert [block.id for block in graph if block.start_index == 0] == [graph.entry]
    first = validate_graph(graph)
    second = validate_graph(graph)
    assert first.passed
    assert first == second
    assert set(first.unreachable) | graph.reachable() == {block.id for block in graph}


@settings(max_examples=200, deadline=None)
@given(instructions=method_bodies())
def test_leaders_sorted_and_unique(instructions):
    leaders = find_leaders(InstructionStream(instructions))
    assert leaders == sorted(set(leaders))
    assert leaders[0] == 0
