"""Residence-time and deposition accumulators.

An accumulator is owned by exactly one particle loop at a time. Parallel
runs give every chunk its own accumulator and sum them afterwards.
"""

from __future__ import annotations

import numpy as np

from pylsdisp.core.grid import DispersionGrid


class ResidenceAccumulator:
    """Holds ``pgrid`` (seconds per cell) and ``depgrid`` (counts per primary bin).

    Parameters
    ----------
    grid : DispersionGrid
        Grid whose shape the accumulator arrays follow.
    """

    def __init__(self, grid: DispersionGrid) -> None:
        self.grid = grid
        self.pgrid, self.depgrid = grid.zero_fields()

    def add_residence(self, i: int, j: int, dt: float) -> None:
        self.pgrid[i, j] += dt

    def add_deposit(self, i: int) -> None:
        self.depgrid[i] += 1

    def merge(self, other: ResidenceAccumulator) -> None:
        """Sum another accumulator on the same grid into this one."""
        if other.pgrid.shape != self.pgrid.shape:
            raise ValueError(
                f"Cannot merge accumulators of shape {other.pgrid.shape} "
                f"into {self.pgrid.shape}"
            )
        self.pgrid += other.pgrid
        self.depgrid += other.depgrid

    def concentration(self, n_particles: int) -> np.ndarray:
        """Normalised concentration field for *n_particles* released particles."""
        return normalize_concentration(
            self.pgrid,
            n_particles,
            self.grid.primary.cell_size,
            self.grid.height.cell_size,
        )


def normalize_concentration(
    pgrid: np.ndarray,
    n_particles: int,
    cell_size_primary: float,
    cell_size_height: float,
) -> np.ndarray:
    """Convert accumulated residence time into concentration.

    ``cgrid = pgrid / (n_particles * cell_size_primary * cell_size_height)``

    Returns a new array; *pgrid* is not modified. A zero particle count
    (a run cancelled before the first release) yields an all-zero field.
    """
    if n_particles == 0:
        return np.zeros_like(pgrid, dtype=np.float64)
    return pgrid / (n_particles * cell_size_primary * cell_size_height)
