"""DispersionEngine - particle release and accumulation driver for pylsdisp.

Builds the grid, samples initial velocity fluctuations once, releases
particles one at a time, advances each with the regime's stepper until it
escapes or deposits, and normalises the accumulated residence time into a
concentration field.

Per-particle loop, evaluated on the updated position after every step:
    escape  (primary outside [min, max) or z >= zmax) → discard
    deposit (z < zmin)                                → depgrid[i] += 1
    else                                              → pgrid[i, j] += dt
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from pylsdisp.compute.parallel import ParallelExecutor
from pylsdisp.core.accumulator import ResidenceAccumulator
from pylsdisp.core.grid import DispersionGrid, bin_index, make_grid
from pylsdisp.core.models import (
    BoundaryError,
    DispersionConfig,
    DispersionResult,
    InvalidConfigError,
    InvalidCoordinateError,
    MaxAgeExceededError,
    NumericalInstabilityError,
    ParticleFate,
    RunDiagnostics,
)
from pylsdisp.physics.regimes import RegimeStrategy, StableRegime, UnstableRegime, regime_for

logger = logging.getLogger(__name__)


@dataclass
class ParticleChunk:
    """A contiguous block of particles sharing one random stream."""
    index: int
    start: int                   # global index of the first particle
    up0: np.ndarray
    wp0: np.ndarray
    seed: np.random.SeedSequence


def classify_position(primary: float, z: float, grid: DispersionGrid) -> ParticleFate:
    """Decide whether a particle escapes, deposits or stays in the domain.

    Escape takes precedence over deposition. A particle exactly at
    ``zmin`` stays in the domain; one exactly at ``zmax`` or at the
    primary maximum escapes.
    """
    if (primary < grid.primary.min or primary >= grid.primary.max
            or z >= grid.height.max):
        return ParticleFate.ESCAPED
    if z < grid.height.min:
        return ParticleFate.DEPOSITED
    return ParticleFate.RESIDENT


def _check_step(primary: float, z: float, t: float, dt: float, up: float, wp: float) -> None:
    if not (dt > 0 and math.isfinite(dt)):
        raise NumericalInstabilityError(f"stepper returned invalid dt={dt!r}")
    if not all(math.isfinite(v) for v in (primary, z, t, up, wp)):
        raise NumericalInstabilityError(
            f"stepper returned non-finite state primary={primary!r}, z={z!r}, "
            f"t={t!r}, up={up!r}, wp={wp!r}"
        )


def track_particle(
    regime: RegimeStrategy,
    grid: DispersionGrid,
    acc: ResidenceAccumulator,
    primary: float,
    z: float,
    up: float,
    wp: float,
    rng: np.random.Generator,
    max_steps: int,
    max_travel_time: float,
) -> tuple[ParticleFate, int]:
    """Follow one particle from release until it leaves the domain.

    Returns
    -------
    tuple[ParticleFate, int]
        Final fate (ESCAPED or DEPOSITED) and the number of steps taken.

    Raises
    ------
    NumericalInstabilityError
        If the stepper returns a non-positive or non-finite dt, or a
        non-finite state.
    MaxAgeExceededError
        If the particle is still in the domain after *max_steps* steps or
        *max_travel_time* seconds.
    BoundaryError
        If an in-domain position maps outside the grid.
    """
    t = 0.0
    steps = 0
    while True:
        primary, z, t, dt, up, wp = regime.step(primary, z, t, up, wp, rng)
        steps += 1
        _check_step(primary, z, t, dt, up, wp)

        fate = classify_position(primary, z, grid)
        if fate is ParticleFate.ESCAPED:
            return fate, steps
        if fate is ParticleFate.DEPOSITED:
            acc.add_deposit(bin_index(primary, grid.primary))
            return fate, steps

        i, j = grid.cell_indices(primary, z)
        acc.add_residence(i, j, dt)

        if steps >= max_steps or t >= max_travel_time:
            raise MaxAgeExceededError(
                f"particle still in domain after {steps} steps / {t:.1f} s"
            )


def release_particles(
    config: DispersionConfig,
    regime: RegimeStrategy,
    grid: DispersionGrid,
    chunk: ParticleChunk,
    cancel: Optional[Callable[[], bool]] = None,
) -> tuple[ResidenceAccumulator, RunDiagnostics]:
    """Run every particle of *chunk* into a private accumulator.

    Particles that fail (numerical instability, step/time guard, bin
    index out of range) are logged, counted as aborted and skipped; the
    rest of the chunk carries on. *cancel* is polled before each release.
    """
    acc = ResidenceAccumulator(grid)
    diag = RunDiagnostics()
    rng = np.random.default_rng(chunk.seed)
    primary0 = regime.to_primary(config.x0)

    for k in range(len(chunk.up0)):
        if cancel is not None and cancel():
            diag.cancelled = True
            break

        p = chunk.start + k
        diag.n_released += 1
        try:
            fate, steps = track_particle(
                regime, grid, acc,
                primary0, config.h0, float(chunk.up0[k]), float(chunk.wp0[k]),
                rng, config.max_steps, config.max_travel_time,
            )
        except BoundaryError as exc:
            logger.error("Particle %d aborted, bin index out of range: %s", p, exc)
            diag.n_aborted += 1
            diag.aborts.append((p, str(exc)))
            continue
        except (NumericalInstabilityError, MaxAgeExceededError) as exc:
            logger.warning("Particle %d aborted: %s", p, exc)
            diag.n_aborted += 1
            diag.aborts.append((p, str(exc)))
            continue

        diag.n_steps += steps
        if fate is ParticleFate.DEPOSITED:
            diag.n_deposited += 1
        else:
            diag.n_escaped += 1

    logger.debug(
        "Chunk %d: %d released, %d deposited, %d escaped, %d aborted",
        chunk.index, diag.n_released, diag.n_deposited, diag.n_escaped, diag.n_aborted,
    )
    return acc, diag


class DispersionEngine:
    """Generic Lagrangian stochastic dispersion driver.

    Parameters
    ----------
    config : DispersionConfig
        Complete run configuration. Validated on construction.
    regime : RegimeStrategy or None
        Stability-regime collaborators. If *None*, chosen from the sign of
        ``config.L``.
    parallel : ParallelExecutor or None
        Executor for particle chunks. If *None*, one is created with
        ``config.num_workers`` workers.
    """

    def __init__(
        self,
        config: DispersionConfig,
        regime: Optional[RegimeStrategy] = None,
        parallel: Optional[ParallelExecutor] = None,
    ) -> None:
        config.validate()
        self.config = config
        self.regime = regime or regime_for(config)
        self.parallel = parallel or ParallelExecutor(num_workers=config.num_workers)

        pmin, pmax = self.regime.primary_bounds
        self.grid = make_grid(pmin, pmax, config.zmin, config.zmax,
                              config.nxgrid, config.nzgrid)

        primary0 = self.regime.to_primary(config.x0)
        if not (pmin <= primary0 < pmax and config.zmin <= config.h0 < config.zmax):
            raise InvalidCoordinateError(
                f"Release point x0={config.x0}, h0={config.h0} is outside the "
                f"domain [{config.xmin}, {config.xmax}) x [{config.zmin}, {config.zmax})"
            )

    def _make_chunks(self, up0: np.ndarray, wp0: np.ndarray,
                     seeds: list[np.random.SeedSequence]) -> list[ParticleChunk]:
        size = self.config.chunk_size
        return [
            ParticleChunk(
                index=c,
                start=c * size,
                up0=up0[c * size:(c + 1) * size],
                wp0=wp0[c * size:(c + 1) * size],
                seed=seed,
            )
            for c, seed in enumerate(seeds)
        ]

    def run(self, cancel: Optional[Callable[[], bool]] = None) -> DispersionResult:
        """Release all particles and return the concentration and deposition fields.

        Parameters
        ----------
        cancel : callable or None
            Polled before each particle release; returning True stops the
            run. A cancelled run executes sequentially and its fields are
            normalised by the number of particles actually released.
        """
        cfg = self.config
        n = cfg.n_particles
        n_chunks = -(-n // cfg.chunk_size)

        root = np.random.SeedSequence(cfg.seed)
        sample_seed, *chunk_seeds = root.spawn(n_chunks + 1)
        up0, wp0 = self.regime.sample_initial_fluctuations(
            cfg.h0, n, np.random.default_rng(sample_seed),
        )
        chunks = self._make_chunks(up0, wp0, chunk_seeds)

        logger.info(
            "Releasing %d particles (%s regime) in %d chunk(s) on a %dx%d grid",
            n, self.regime.name, n_chunks, cfg.nxgrid, cfg.nzgrid,
        )

        partials = self.parallel.run_chunks(cfg, self.regime, self.grid, chunks, cancel=cancel)

        acc = ResidenceAccumulator(self.grid)
        diag = RunDiagnostics()
        for part_acc, part_diag in partials:
            acc.merge(part_acc)
            diag.merge(part_diag)

        logger.info(
            "Run complete: %d released, %d deposited, %d escaped, %d aborted%s",
            diag.n_released, diag.n_deposited, diag.n_escaped, diag.n_aborted,
            " (cancelled)" if diag.cancelled else "",
        )

        return DispersionResult(
            xgrid=self.grid.primary.centers,
            zgrid=self.grid.height.centers,
            cgrid=acc.concentration(diag.n_released),
            depgrid=acc.depgrid,
            pgrid=acc.pgrid,
            cell_size_primary=self.grid.primary.cell_size,
            cell_size_height=self.grid.height.cell_size,
            regime=self.regime.name,
            diagnostics=diag,
        )


class StableDispersionRun(DispersionEngine):
    """Dispersion run in the stable boundary layer (L > 0)."""

    def __init__(self, config: DispersionConfig,
                 parallel: Optional[ParallelExecutor] = None) -> None:
        if not config.L > 0:
            raise InvalidConfigError(f"StableDispersionRun requires L > 0, got L={config.L}")
        super().__init__(config, StableRegime(config), parallel)


class UnstableDispersionRun(DispersionEngine):
    """Dispersion run in the convective boundary layer (L < 0)."""

    def __init__(self, config: DispersionConfig,
                 parallel: Optional[ParallelExecutor] = None) -> None:
        if not config.L < 0:
            raise InvalidConfigError(f"UnstableDispersionRun requires L < 0, got L={config.L}")
        super().__init__(config, UnstableRegime(config), parallel)


def run_dispersion(
    config: DispersionConfig,
    cancel: Optional[Callable[[], bool]] = None,
) -> DispersionResult:
    """Run the regime selected by the sign of ``config.L``."""
    config.validate()
    if config.L > 0:
        engine: DispersionEngine = StableDispersionRun(config)
    else:
        engine = UnstableDispersionRun(config)
    return engine.run(cancel=cancel)
