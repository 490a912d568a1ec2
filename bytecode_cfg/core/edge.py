import dataclasses
from enum import Enum


class EdgeKind(Enum):
    FALLTHROUGH = "fallthrough"
    TRUE_BRANCH = "true_branch"
    FALSE_BRANCH = "false_branch"


@dataclasses.dataclass(frozen=True)
class Edge:
    """Directed arc between two blocks, both referred to by block id."""

    id: int
    source: int
    target: int
    kind: EdgeKind

    def __repr__(self) -> str:
        return f"Edge({self.source} -> {self.target}, {self.kind.name})"
