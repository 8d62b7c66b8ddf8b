"""Turbulence profiles and stability-regime strategies."""

from pylsdisp.physics.regimes import RegimeStrategy, StableRegime, UnstableRegime, regime_for
from pylsdisp.physics.turbulence import TurbulenceProfile, stable_profile, unstable_profile

__all__ = [
    'RegimeStrategy',
    'StableRegime',
    'UnstableRegime',
    'TurbulenceProfile',
    'regime_for',
    'stable_profile',
    'unstable_profile',
]
