import dataclasses
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, Mapping, Optional

import structlog

from bytecode_cfg.builder import build_cfg
from bytecode_cfg.config import DEFAULT_WORKERS
from bytecode_cfg.core.graph import ControlFlowGraph
from bytecode_cfg.core.instruction import Instruction
from bytecode_cfg.errors import CFGError

logger = structlog.get_logger()


@dataclasses.dataclass(frozen=True)
class MethodResult:
    """Either the graph of a method or the reason it could not be analyzed."""

    method: str
    graph: Optional[ControlFlowGraph] = None
    error: Optional[CFGError] = None

    @property
    def ok(self) -> bool:
        return self.graph is not None


def _build_one(method: str, instructions: Iterable[Instruction]) -> MethodResult:
    try:
        return MethodResult(method, graph=build_cfg(instructions, method=method))
    except CFGError as e:
        logger.warning(
            "Method is unanalyzable", method=method, error=type(e).__name__, reason=str(e)
        )
        return MethodResult(method, error=e)


def build_cfgs(methods: Mapping[str, Iterable[Instruction]],
               max_workers: Optional[int] = None) -> Dict[str, MethodResult]:
    """
    Build the graphs of several method bodies concurrently.

    Every method is built by its own worker and shares nothing with the
    others, so a failure in one method only marks that method unanalyzable.
    Errors that are not CFGError subclasses are engine bugs and propagate.

    Args:
        methods: Instructions keyed by method name.
        max_workers: Thread pool size, defaults to DEFAULT_WORKERS.

    Returns:
        Results keyed by method name, in the order of `methods`.
    """
    workers = max_workers or DEFAULT_WORKERS
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = {
            name: pool.submit(_build_one, name, instructions)
            for name, instructions in methods.items()
        }
        results = {name: future.result() for name, future in futures.items()}

    failed = sum(1 for result in results.values() if not result.ok)
    logger.info("Batch construction finished", methods=len(results), failed=failed, workers=workers)
    return results
