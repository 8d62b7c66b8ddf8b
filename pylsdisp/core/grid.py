"""Discrete grid construction and position-to-bin mapping.

The grid is a primary transport axis crossed with height. Bins are
half-open, ``[edge_i, edge_{i+1})``, and the bin index of a coordinate is

    index = floor(coord / cell_size - offset_constant)

with ``offset_constant = min / cell_size``. The same function is used for
deposition and residence-time binning.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from pylsdisp.core.models import BoundaryError, InvalidConfigError


@dataclass(frozen=True)
class GridAxis:
    """One uniformly spaced axis of the dispersion grid."""
    min: float
    max: float
    cell_count: int

    def __post_init__(self) -> None:
        if not (math.isfinite(self.min) and math.isfinite(self.max)):
            raise InvalidConfigError(
                f"Axis extents must be finite, got [{self.min}, {self.max}]"
            )
        if self.max <= self.min:
            raise InvalidConfigError(
                f"Axis max ({self.max}) must be greater than min ({self.min})"
            )
        if self.cell_count < 1:
            raise InvalidConfigError(
                f"Axis cell count must be >= 1, got {self.cell_count}"
            )

    @property
    def cell_size(self) -> float:
        return (self.max - self.min) / self.cell_count

    @property
    def offset_constant(self) -> float:
        return self.min / self.cell_size

    @property
    def edges(self) -> np.ndarray:
        """Cell edges, shape (cell_count + 1,)."""
        return np.linspace(self.min, self.max, self.cell_count + 1)

    @property
    def centers(self) -> np.ndarray:
        """Cell centres, shape (cell_count,)."""
        return self.min + (np.arange(self.cell_count) + 0.5) * self.cell_size


def bin_index(coord: float, axis: GridAxis) -> int:
    """Map a continuous coordinate onto its zero-based bin index.

    Raises
    ------
    BoundaryError
        If the computed index is outside ``[0, axis.cell_count)``.
    """
    index = math.floor(coord / axis.cell_size - axis.offset_constant)
    if index < 0 or index >= axis.cell_count:
        raise BoundaryError(
            f"Coordinate {coord!r} maps to bin {index}, outside "
            f"[0, {axis.cell_count}) for axis [{axis.min}, {axis.max}]"
        )
    return index


@dataclass(frozen=True)
class DispersionGrid:
    """Primary axis x height axis."""
    primary: GridAxis
    height: GridAxis

    @property
    def shape(self) -> tuple[int, int]:
        return self.primary.cell_count, self.height.cell_count

    def cell_indices(self, primary: float, z: float) -> tuple[int, int]:
        """Return ``(primary_index, height_index)`` for a position."""
        return bin_index(primary, self.primary), bin_index(z, self.height)

    def zero_fields(self) -> tuple[np.ndarray, np.ndarray]:
        """Fresh zero-filled ``(pgrid, depgrid)`` arrays sized for this grid."""
        pgrid = np.zeros(self.shape, dtype=np.float64)
        depgrid = np.zeros(self.primary.cell_count, dtype=np.int64)
        return pgrid, depgrid


def make_grid(
    primary_min: float,
    primary_max: float,
    zmin: float,
    zmax: float,
    n_primary: int,
    n_height: int,
) -> DispersionGrid:
    """Build the dispersion grid.

    Parameters
    ----------
    primary_min, primary_max : float
        Extent of the primary transport axis.
    zmin, zmax : float
        Extent of the height axis (m).
    n_primary, n_height : int
        Number of cells on each axis (>= 1).

    Raises
    ------
    InvalidConfigError
        On inverted or non-finite extents or cell counts below 1.
    """
    return DispersionGrid(
        primary=GridAxis(float(primary_min), float(primary_max), int(n_primary)),
        height=GridAxis(float(zmin), float(zmax), int(n_height)),
    )
