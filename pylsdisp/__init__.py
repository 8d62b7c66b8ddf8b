"""pylsdisp - Lagrangian stochastic point-source dispersion in the boundary layer.

Computes time-averaged concentration and ground deposition downwind of a
point source by Monte Carlo particle tracking, for stable (L > 0) and
convective (L < 0) boundary layers.

Package Structure:
    core/       - Grid, accumulators, dispersion engine and models
    physics/    - Turbulence profiles and regime strategies
    compute/    - Parallel execution of particle chunks
    data/       - Namelist config parser and result writers
"""

__version__ = "0.1.0"

# Core
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

# Physics
from pylsdisp.physics.regimes import RegimeStrategy, StableRegime, UnstableRegime, regime_for
from pylsdisp.physics.turbulence import TurbulenceProfile, stable_profile, unstable_profile

# Compute
from pylsdisp.compute.parallel import ParallelExecutor

# Data I/O
from pylsdisp.data.config_parser import parse_config, write_config
from pylsdisp.data.output_writer import CSVWriter, load_npz, save_npz

__all__ = [
    # Core - Engine
    'DispersionEngine',
    'StableDispersionRun',
    'UnstableDispersionRun',
    'classify_position',
    'run_dispersion',
    # Core - Grid
    'DispersionGrid',
    'GridAxis',
    'bin_index',
    'make_grid',
    # Core - Accumulator
    'ResidenceAccumulator',
    'normalize_concentration',
    # Core - Models
    'DispersionConfig',
    'DispersionResult',
    'ParticleFate',
    'RunDiagnostics',
    # Core - Exceptions
    'BoundaryError',
    'ConfigParseError',
    'InvalidConfigError',
    'InvalidCoordinateError',
    'MaxAgeExceededError',
    'NumericalInstabilityError',
    'PyLSDispError',
    # Physics
    'RegimeStrategy',
    'StableRegime',
    'UnstableRegime',
    'TurbulenceProfile',
    'regime_for',
    'stable_profile',
    'unstable_profile',
    # Compute
    'ParallelExecutor',
    # Data I/O
    'CSVWriter',
    'load_npz',
    'parse_config',
    'save_npz',
    'write_config',
]
