"""Parallel execution of particle chunks."""

from pylsdisp.compute.parallel import ParallelExecutor

__all__ = [
    'ParallelExecutor',
]
