"""ParallelExecutor - multiprocessing over independent particle chunks.

Particle trajectories share no state, so each chunk runs into a private
accumulator with its own random stream and the partial accumulators are
summed afterwards. Results are returned in chunk order whichever path is
taken, so sequential and parallel runs of the same seed agree.
"""

from __future__ import annotations

import logging
import multiprocessing as mp
import os
from typing import TYPE_CHECKING, Callable, Optional

if TYPE_CHECKING:
    from pylsdisp.core.accumulator import ResidenceAccumulator
    from pylsdisp.core.engine import ParticleChunk
    from pylsdisp.core.grid import DispersionGrid
    from pylsdisp.core.models import DispersionConfig, RunDiagnostics
    from pylsdisp.physics.regimes import RegimeStrategy

logger = logging.getLogger(__name__)


def _run_chunk_worker(args: tuple) -> tuple[ResidenceAccumulator, RunDiagnostics]:
    """Worker function for parallel chunk computation.

    Imports the engine lazily to avoid a circular import at module load.

    Parameters
    ----------
    args : tuple
        (config, regime, grid, chunk)
    """
    config, regime, grid, chunk = args

    from pylsdisp.core.engine import release_particles

    return release_particles(config, regime, grid, chunk)


class ParallelExecutor:
    """Distributes particle chunks over worker processes.

    Parameters
    ----------
    num_workers : int or None
        Number of parallel workers. Defaults to ``os.cpu_count()``.
    """

    def __init__(self, num_workers: int | None = None) -> None:
        self.num_workers = num_workers or os.cpu_count() or 1

    def run_chunks(
        self,
        config: DispersionConfig,
        regime: RegimeStrategy,
        grid: DispersionGrid,
        chunks: list[ParticleChunk],
        cancel: Optional[Callable[[], bool]] = None,
    ) -> list[tuple[ResidenceAccumulator, RunDiagnostics]]:
        """Run every chunk and return ``(accumulator, diagnostics)`` per chunk.

        Runs sequentially when there is a single chunk, a single worker,
        or a *cancel* callback (cancellation is only polled in-process).
        """
        if not chunks:
            return []

        if len(chunks) == 1 or self.num_workers <= 1 or cancel is not None:
            return self._run_sequential(config, regime, grid, chunks, cancel)

        work_items = [(config, regime, grid, chunk) for chunk in chunks]

        # Use 'spawn' context for cross-platform safety
        ctx = mp.get_context("spawn")
        effective_workers = min(self.num_workers, len(work_items))

        logger.info(
            "Running %d particle chunks with %d workers",
            len(work_items),
            effective_workers,
        )

        with ctx.Pool(processes=effective_workers) as pool:
            results = pool.map(_run_chunk_worker, work_items)

        return list(results)

    def _run_sequential(
        self,
        config: DispersionConfig,
        regime: RegimeStrategy,
        grid: DispersionGrid,
        chunks: list[ParticleChunk],
        cancel: Optional[Callable[[], bool]],
    ) -> list[tuple[ResidenceAccumulator, RunDiagnostics]]:
        """Fallback: run all chunks in this process, stopping on cancellation."""
        from pylsdisp.core.engine import release_particles

        results = []
        for chunk in chunks:
            acc, diag = release_particles(config, regime, grid, chunk, cancel=cancel)
            results.append((acc, diag))
            if diag.cancelled:
                logger.info("Run cancelled after chunk %d", chunk.index)
                break
        return results
