"""Grid, accumulators, dispersion engine and models."""

from pylsdisp.core.accumulator import ResidenceAccumulator, normalize_concentration
from pylsdisp.core.engine import (
    DispersionEngine,
    StableDispersionRun,
    UnstableDispersionRun,
    classify_position,
    run_dispersion,
)
from pylsdisp.core.grid import DispersionGrid, GridAxis, bin_index, make_grid
from pylsdisp.core.models import (
    BoundaryError,
    ConfigParseError,
    DispersionConfig,
    DispersionResult,
    InvalidConfigError,
    InvalidCoordinateError,
    MaxAgeExceededError,
    NumericalInstabilityError,
    ParticleFate,
    PyLSDispError,
    RunDiagnostics,
)

__all__ = [
    # Engine
    'DispersionEngine',
    'StableDispersionRun',
    'UnstableDispersionRun',
    'classify_position',
    'run_dispersion',
    # Grid
    'DispersionGrid',
    'GridAxis',
    'bin_index',
    'make_grid',
    # Accumulator
    'ResidenceAccumulator',
    'normalize_concentration',
    # Models
    'DispersionConfig',
    'DispersionResult',
    'ParticleFate',
    'RunDiagnostics',
    # Exceptions
    'BoundaryError',
    'ConfigParseError',
    'InvalidConfigError',
    'InvalidCoordinateError',
    'MaxAgeExceededError',
    'NumericalInstabilityError',
    'PyLSDispError',
]
