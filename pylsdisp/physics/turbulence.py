"""Boundary-layer turbulence statistics for the Lagrangian stochastic model.

Provides mean wind, velocity standard deviations, the vertical gradient of
the vertical velocity variance and the TKE dissipation rate as functions of
height, with separate parameterisations for the stable (L > 0) and
convective (L < 0) boundary layer.

References:
    Thomson, D.J. (1987) J. Fluid Mech. 180, 529-556.
    Hanna, S.R. (1982) Atmospheric Science and Power Production, Ch. 2.
    Rodean, H.C. (1996) Stochastic Lagrangian Models of Turbulent Diffusion.
"""

from __future__ import annotations

import math
from typing import NamedTuple

# Von Kármán constant
KAPPA = 0.4

# Statistics are evaluated no higher than this fraction of z_i
TOP_FRACTION = 0.999

# Floors keeping time scales finite above the boundary layer
SIGMA_FLOOR = 0.01       # m/s
EPSILON_FLOOR = 1.0e-6   # m²/s³


class TurbulenceProfile(NamedTuple):
    """Turbulence statistics at one height."""
    u_mean: float      # mean along-wind speed (m/s)
    sigma_u: float     # along-wind velocity standard deviation (m/s)
    sigma_w: float     # vertical velocity standard deviation (m/s)
    dsigw2_dz: float   # d(sigma_w²)/dz (m/s²)
    epsilon: float     # TKE dissipation rate (m²/s³)

    def lagrangian_timescales(self, C0: float) -> tuple[float, float]:
        """Return ``(T_Lu, T_Lw) = 2 sigma² / (C0 epsilon)`` in seconds."""
        return (
            2.0 * self.sigma_u ** 2 / (C0 * self.epsilon),
            2.0 * self.sigma_w ** 2 / (C0 * self.epsilon),
        )


def _clamp_height(z: float, z0: float, z_i: float) -> float:
    return min(max(z, z0), TOP_FRACTION * z_i)


def psi_m_unstable(zeta: float) -> float:
    """Businger-Dyer momentum stability correction for ``zeta = z/L < 0``."""
    x = (1.0 - 16.0 * zeta) ** 0.25
    return (
        2.0 * math.log((1.0 + x) / 2.0)
        + math.log((1.0 + x * x) / 2.0)
        - 2.0 * math.atan(x)
        + math.pi / 2.0
    )


def stable_profile(z: float, ustar: float, L: float, z_i: float, z0: float) -> TurbulenceProfile:
    """Turbulence statistics in the stable boundary layer (L > 0).

    Parameters
    ----------
    z : float
        Height above ground (m). Clamped to ``[z0, 0.999 z_i]``.
    ustar : float
        Friction velocity (m/s).
    L : float
        Obukhov length (m), positive.
    z_i : float
        Boundary-layer height (m).
    z0 : float
        Roughness length (m).

    Returns
    -------
    TurbulenceProfile
    """
    zc = _clamp_height(z, z0, z_i)
    zn = zc / z_i
    decay = 1.0 - zn

    u_mean = ustar / KAPPA * (math.log(zc / z0) + 5.0 * zc / L)
    sigma_u = max(2.0 * ustar * decay ** 0.75, SIGMA_FLOOR)
    sigma_w = max(1.3 * ustar * decay ** 0.75, SIGMA_FLOOR)

    # sigma_w² = (1.3 u*)² (1 - z/z_i)^1.5, zero gradient outside the clamp range
    if z0 < z < TOP_FRACTION * z_i and sigma_w > SIGMA_FLOOR:
        dsigw2_dz = -1.5 * (1.3 * ustar) ** 2 * decay ** 0.5 / z_i
    else:
        dsigw2_dz = 0.0

    epsilon = ustar ** 3 / (KAPPA * zc) * (1.0 + 3.7 * zc / L) * decay ** 1.5
    return TurbulenceProfile(
        u_mean=max(u_mean, 0.0),
        sigma_u=sigma_u,
        sigma_w=sigma_w,
        dsigw2_dz=dsigw2_dz,
        epsilon=max(epsilon, EPSILON_FLOOR),
    )


def unstable_profile(
    z: float, ustar: float, wstar: float, L: float, z_i: float, z0: float,
) -> TurbulenceProfile:
    """Turbulence statistics in the convective boundary layer (L < 0).

    Vertical variance combines the convective and mechanical contributions:

        sigma_w² = 1.2 w*² (z/z_i)^(2/3) (1 - 0.98 z/z_i)^(2/3)
                   + 1.8 u*² (1 - z/z_i)^(3/2)

    Dissipation is the sum of the shear-produced surface-layer term and
    the buoyancy term ``w*³/z_i (1.5 - 1.2 (z/z_i)^(1/3))``.

    Parameters
    ----------
    z : float
        Height above ground (m). Clamped to ``[z0, 0.999 z_i]``.
    ustar, wstar : float
        Friction and convective velocity scales (m/s).
    L : float
        Obukhov length (m), negative.
    z_i : float
        Boundary-layer height (m).
    z0 : float
        Roughness length (m).
    """
    zc = _clamp_height(z, z0, z_i)
    zn = zc / z_i

    u_mean = ustar / KAPPA * (math.log(zc / z0) - psi_m_unstable(zc / L) + psi_m_unstable(z0 / L))

    a = 1.2 * wstar ** 2
    b = 1.8 * ustar ** 2
    conv = a * zn ** (2.0 / 3.0) * (1.0 - 0.98 * zn) ** (2.0 / 3.0)
    mech = b * (1.0 - zn) ** 1.5
    sigma_w = max(math.sqrt(conv + mech), SIGMA_FLOOR)
    sigma_u = max(math.sqrt(4.0 * ustar ** 2 + 0.35 * wstar ** 2), SIGMA_FLOOR)

    if z0 < z < TOP_FRACTION * z_i and sigma_w > SIGMA_FLOOR:
        dconv = a * (2.0 / 3.0) * (
            zn ** (-1.0 / 3.0) * (1.0 - 0.98 * zn) ** (2.0 / 3.0)
            - 0.98 * zn ** (2.0 / 3.0) * (1.0 - 0.98 * zn) ** (-1.0 / 3.0)
        )
        dmech = -1.5 * b * (1.0 - zn) ** 0.5
        dsigw2_dz = (dconv + dmech) / z_i
    else:
        dsigw2_dz = 0.0

    eps_shear = ustar ** 3 / (KAPPA * zc) * (1.0 + 0.5 * abs(zc / L) ** (2.0 / 3.0)) ** 1.5
    eps_conv = wstar ** 3 / z_i * (1.5 - 1.2 * zn ** (1.0 / 3.0))
    return TurbulenceProfile(
        u_mean=max(u_mean, 0.0),
        sigma_u=sigma_u,
        sigma_w=sigma_w,
        dsigw2_dz=dsigw2_dz,
        epsilon=max(eps_shear + eps_conv, EPSILON_FLOOR),
    )
