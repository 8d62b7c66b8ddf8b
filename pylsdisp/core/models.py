"""Core data models and custom exceptions for pylsdisp.

Defines the run configuration, per-run diagnostics, the result container
and all custom exception types used throughout the package.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import Optional

import numpy as np


# ---------------------------------------------------------------------------
# Custom Exceptions
# ---------------------------------------------------------------------------

class PyLSDispError(Exception):
    """Base exception for all pylsdisp errors."""


class InvalidConfigError(PyLSDispError):
    """Raised when run parameters violate a precondition."""


class ConfigParseError(PyLSDispError):
    """Raised when a namelist configuration file has format errors.

    Attributes:
        line_number: The line number where the error was detected.
        expected: Description of the expected format.
    """

    def __init__(self, message: str, line_number: int | None = None,
                 expected: str | None = None):
        self.line_number = line_number
        self.expected = expected
        parts = [message]
        if line_number is not None:
            parts.append(f"line {line_number}")
        if expected is not None:
            parts.append(f"expected: {expected}")
        super().__init__(" | ".join(parts))


class InvalidCoordinateError(PyLSDispError):
    """Raised when the release point lies outside the simulation domain."""


class BoundaryError(PyLSDispError):
    """Raised when a bin index falls outside ``[0, cell_count)``."""


class NumericalInstabilityError(PyLSDispError):
    """Raised when a trajectory step returns NaN/Inf values or a non-positive dt."""


class MaxAgeExceededError(PyLSDispError):
    """Raised when a particle exceeds its step or travel-time limit."""


# ---------------------------------------------------------------------------
# Data Models
# ---------------------------------------------------------------------------

class ParticleFate(enum.Enum):
    """Outcome of the domain-exit test for one particle position."""
    RESIDENT = "resident"
    ESCAPED = "escaped"
    DEPOSITED = "deposited"


@dataclass
class DispersionConfig:
    """Complete parameter set for one dispersion run.

    Physical inputs follow the usual boundary-layer notation. The sign of
    the Obukhov length ``L`` selects the stability regime (L > 0 stable,
    L < 0 unstable).
    """
    ustar: float                 # friction velocity (m/s)
    wstar: float                 # convective velocity scale (m/s), unstable only
    L: float                     # Obukhov length (m)
    z_i: float                   # boundary-layer height (m)
    z0: float                    # roughness length (m)
    xmin: float                  # domain extent along wind (m)
    xmax: float
    zmin: float                  # domain extent in height (m)
    zmax: float
    n_particles: int             # number of released particles
    vs: float                    # settling velocity (m/s), positive downward
    x0: float                    # release position (m)
    h0: float                    # release height (m)
    nxgrid: int                  # cells along the primary axis
    nzgrid: int                  # cells in height
    C0: float = 4.0              # Lagrangian structure-function constant
    # Run settings
    seed: Optional[int] = None
    max_steps: int = 1_000_000   # per-particle step guard
    max_travel_time: float = 1.0e6  # per-particle elapsed-time guard (s)
    dt_fraction: float = 0.05    # dt as a fraction of the smallest Lagrangian time scale
    dt_min: float = 1.0e-3       # s
    dt_max: float = 60.0         # s
    chunk_size: int = 1000       # particles per independent random stream
    num_workers: int = 1

    @property
    def is_stable(self) -> bool:
        return self.L > 0

    def validate(self) -> None:
        """Check every precondition, raising :class:`InvalidConfigError`."""
        for name in ("ustar", "wstar", "L", "z_i", "z0", "xmin", "xmax",
                     "zmin", "zmax", "vs", "x0", "h0", "C0", "max_travel_time",
                     "dt_fraction", "dt_min", "dt_max"):
            value = getattr(self, name)
            if not math.isfinite(value):
                raise InvalidConfigError(f"{name} must be finite, got {value}")

        if self.xmax <= self.xmin:
            raise InvalidConfigError(
                f"xmax ({self.xmax}) must be greater than xmin ({self.xmin})"
            )
        if self.zmax <= self.zmin:
            raise InvalidConfigError(
                f"zmax ({self.zmax}) must be greater than zmin ({self.zmin})"
            )
        if self.nxgrid < 1 or self.nzgrid < 1:
            raise InvalidConfigError(
                f"Grid cell counts must be >= 1, got nxgrid={self.nxgrid}, "
                f"nzgrid={self.nzgrid}"
            )
        if self.n_particles < 1:
            raise InvalidConfigError(
                f"n_particles must be >= 1, got {self.n_particles}"
            )
        if self.L == 0:
            raise InvalidConfigError(
                "Obukhov length L must be non-zero (L > 0 stable, L < 0 unstable)"
            )
        if self.ustar <= 0 or self.z0 <= 0 or self.z_i <= 0 or self.C0 <= 0:
            raise InvalidConfigError(
                "ustar, z0, z_i and C0 must all be positive"
            )
        if self.wstar < 0:
            raise InvalidConfigError(f"wstar must be >= 0, got {self.wstar}")
        if self.dt_min <= 0 or self.dt_max < self.dt_min or self.dt_fraction <= 0:
            raise InvalidConfigError(
                f"Time step limits require 0 < dt_min <= dt_max and dt_fraction > 0 "
                f"(got dt_min={self.dt_min}, dt_max={self.dt_max}, "
                f"dt_fraction={self.dt_fraction})"
            )
        if self.max_steps < 1 or self.max_travel_time <= 0:
            raise InvalidConfigError(
                "max_steps must be >= 1 and max_travel_time must be positive"
            )
        if self.chunk_size < 1 or self.num_workers < 1:
            raise InvalidConfigError(
                "chunk_size and num_workers must both be >= 1"
            )


@dataclass
class RunDiagnostics:
    """Particle bookkeeping for a run or a chunk of one.

    Every released particle ends in exactly one of the deposited, escaped
    or aborted counters.
    """
    n_released: int = 0
    n_deposited: int = 0
    n_escaped: int = 0
    n_aborted: int = 0
    n_steps: int = 0
    cancelled: bool = False
    aborts: list[tuple[int, str]] = field(default_factory=list)  # (particle, reason)

    def merge(self, other: RunDiagnostics) -> None:
        """Add the counters of *other* into this instance."""
        self.n_released += other.n_released
        self.n_deposited += other.n_deposited
        self.n_escaped += other.n_escaped
        self.n_aborted += other.n_aborted
        self.n_steps += other.n_steps
        self.cancelled = self.cancelled or other.cancelled
        self.aborts.extend(other.aborts)


@dataclass
class DispersionResult:
    """Output fields of a dispersion run.

    Attributes
    ----------
    xgrid : np.ndarray
        Primary-axis cell centres, shape (nxgrid,). Normalised along-wind
        fraction for the stable regime, metres for the unstable regime.
    zgrid : np.ndarray
        Height cell centres (m), shape (nzgrid,).
    cgrid : np.ndarray
        Concentration per unit source strength, shape (nxgrid, nzgrid).
    depgrid : np.ndarray
        Raw deposited-particle counts, shape (nxgrid,).
    pgrid : np.ndarray
        Accumulated residence time (s), shape (nxgrid, nzgrid).
    """
    xgrid: np.ndarray
    zgrid: np.ndarray
    cgrid: np.ndarray
    depgrid: np.ndarray
    pgrid: np.ndarray
    cell_size_primary: float
    cell_size_height: float
    regime: str
    diagnostics: RunDiagnostics

    @property
    def deposition_fraction(self) -> np.ndarray:
        """Deposited counts divided by the number of released particles."""
        n = self.diagnostics.n_released
        if n == 0:
            return np.zeros_like(self.depgrid, dtype=np.float64)
        return self.depgrid / float(n)
