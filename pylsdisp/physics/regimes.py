"""Stability-regime strategies: initial fluctuations and trajectory stepping.

Each regime binds a turbulence profile to the generic particle loop and
defines the coordinate used on the primary grid axis:

* ``StableRegime`` (L > 0) works in the normalised along-wind coordinate
  ``e = (x - xmin) / (xmax - xmin)`` on ``[0, 1]``.
* ``UnstableRegime`` (L < 0) works directly in physical ``x`` (m).

The step is the one-dimensional-per-component well-mixed Langevin model of
Thomson (1987) for Gaussian turbulence, integrated with an explicit Euler
scheme and an adaptive time step tied to the Lagrangian time scales.
Random numbers are drawn only from the ``numpy.random.Generator`` passed in,
so a run is reproducible from its seed.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod

import numpy as np

from pylsdisp.core.models import DispersionConfig, InvalidConfigError
from pylsdisp.physics.turbulence import TurbulenceProfile, stable_profile, unstable_profile


class RegimeStrategy(ABC):
    """Regime-specific collaborators of the dispersion engine.

    Parameters
    ----------
    config : DispersionConfig
        Run configuration supplying the turbulence parameters.
    """

    name = "base"

    def __init__(self, config: DispersionConfig) -> None:
        self.ustar = config.ustar
        self.wstar = config.wstar
        self.L = config.L
        self.z_i = config.z_i
        self.z0 = config.z0
        self.C0 = config.C0
        self.vs = config.vs
        self.xmin = config.xmin
        self.xmax = config.xmax
        self.dt_fraction = config.dt_fraction
        self.dt_min = config.dt_min
        self.dt_max = config.dt_max

    # ------------------------------------------------------------------
    # Coordinate semantics
    # ------------------------------------------------------------------

    @property
    @abstractmethod
    def primary_bounds(self) -> tuple[float, float]:
        """``(min, max)`` of the primary grid axis."""

    @abstractmethod
    def to_primary(self, x: float) -> float:
        """Convert a physical along-wind position (m) to the primary coordinate."""

    @property
    def primary_scale(self) -> float:
        """Metres per unit of the primary coordinate."""
        return 1.0

    # ------------------------------------------------------------------
    # Turbulence closure
    # ------------------------------------------------------------------

    @abstractmethod
    def profile(self, z: float) -> TurbulenceProfile:
        """Turbulence statistics at height *z*."""

    def sample_initial_fluctuations(
        self, h0: float, n: int, rng: np.random.Generator,
    ) -> tuple[np.ndarray, np.ndarray]:
        """Draw ``n`` independent ``(u', w')`` pairs at release height *h0*.

        Returns
        -------
        tuple[np.ndarray, np.ndarray]
            Horizontal and vertical fluctuations, each of shape (n,).
        """
        prof = self.profile(h0)
        up0 = rng.normal(0.0, prof.sigma_u, n)
        wp0 = rng.normal(0.0, prof.sigma_w, n)
        return up0, wp0

    def time_step(self, prof: TurbulenceProfile) -> float:
        """Adaptive step: a fraction of the shorter Lagrangian time scale."""
        t_lu, t_lw = prof.lagrangian_timescales(self.C0)
        return min(max(self.dt_fraction * min(t_lu, t_lw), self.dt_min), self.dt_max)

    def step(
        self,
        primary: float,
        z: float,
        t: float,
        up: float,
        wp: float,
        rng: np.random.Generator,
    ) -> tuple[float, float, float, float, float, float]:
        """Advance one particle by one stochastic time step.

        The step never decides domain membership; the caller classifies
        the returned position.

        Returns
        -------
        tuple
            ``(primary, z, t, dt, up, wp)`` after the step.
        """
        prof = self.profile(z)
        dt = self.time_step(prof)
        t_lu, t_lw = prof.lagrangian_timescales(self.C0)

        diffusion = math.sqrt(self.C0 * prof.epsilon * dt)
        xi_u, xi_w = rng.standard_normal(2)

        drift_w = (
            -wp / t_lw
            + 0.5 * prof.dsigw2_dz * (1.0 + wp * wp / prof.sigma_w ** 2)
        )
        wp = wp + drift_w * dt + diffusion * xi_w
        up = up - up / t_lu * dt + diffusion * xi_u

        primary = primary + (prof.u_mean + up) * dt / self.primary_scale
        z = z + (wp - self.vs) * dt
        return primary, z, t + dt, dt, up, wp


class StableRegime(RegimeStrategy):
    """Stable boundary layer (L > 0) on the normalised along-wind axis."""

    name = "stable"

    def __init__(self, config: DispersionConfig) -> None:
        if not config.L > 0:
            raise InvalidConfigError(f"StableRegime requires L > 0, got L={config.L}")
        super().__init__(config)

    @property
    def primary_bounds(self) -> tuple[float, float]:
        return 0.0, 1.0

    @property
    def primary_scale(self) -> float:
        return self.xmax - self.xmin

    def to_primary(self, x: float) -> float:
        return (x - self.xmin) / (self.xmax - self.xmin)

    def profile(self, z: float) -> TurbulenceProfile:
        return stable_profile(z, self.ustar, self.L, self.z_i, self.z0)


class UnstableRegime(RegimeStrategy):
    """Convective boundary layer (L < 0) in physical x coordinates."""

    name = "unstable"

    def __init__(self, config: DispersionConfig) -> None:
        if not config.L < 0:
            raise InvalidConfigError(f"UnstableRegime requires L < 0, got L={config.L}")
        super().__init__(config)

    @property
    def primary_bounds(self) -> tuple[float, float]:
        return self.xmin, self.xmax

    def to_primary(self, x: float) -> float:
        return x

    def profile(self, z: float) -> TurbulenceProfile:
        return unstable_profile(z, self.ustar, self.wstar, self.L, self.z_i, self.z0)


def regime_for(config: DispersionConfig) -> RegimeStrategy:
    """Select the regime from the sign of the Obukhov length."""
    if not math.isfinite(config.L) or config.L == 0:
        raise InvalidConfigError(
            f"Obukhov length must be finite and non-zero, got L={config.L}"
        )
    if config.L > 0:
        return StableRegime(config)
    return UnstableRegime(config)
