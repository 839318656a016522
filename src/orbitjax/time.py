"""Time helpers used by the propagators.

The IAU-82 Greenwich mean sidereal time used by SDP4 to place the Earth
at the element epoch.  All functions are JAX-traceable.
"""

from __future__ import annotations

import jax
import jax.numpy as jnp
from jax.typing import ArrayLike

from .config import get_dtype
from .constants import (
    DAYS_PER_JULIAN_CENTURY,
    JD_J2000,
    SECONDS_PER_DAY,
)

# IAU-82 GMST polynomial coefficients [s], ascending powers of T_UT1
_GMST_COEFFICIENTS: tuple[float, ...] = (
    67310.54841,
    876600.0 * 3600.0 + 8640184.812866,
    0.093104,
    -6.2e-6,
)


def gmst_from_j2000(t_ut1: ArrayLike) -> jax.Array:
    """Greenwich mean sidereal time from days since J2000.0.

    Args:
        t_ut1 (ArrayLike): Days elapsed since J2000.0 [UT1].

    Returns:
        GMST [rad] in ``[0, 2pi)``.

    References:

        1. Vallado, D. A. (2013). *Fundamentals of Astrodynamics and Applications*. Microcosm Press.
    """
    T = t_ut1 / DAYS_PER_JULIAN_CENTURY

    theta = jnp.polyval(jnp.asarray(_GMST_COEFFICIENTS[::-1], dtype=get_dtype()), T)
    theta = jnp.mod(theta, SECONDS_PER_DAY)

    return theta * jnp.pi / (SECONDS_PER_DAY / 2.0)


def gmst_from_jd(jd_ut1: ArrayLike) -> jax.Array:
    """Greenwich mean sidereal time from a Julian Date.

    Args:
        jd_ut1 (ArrayLike): Julian Date [UT1].

    Returns:
        GMST [rad] in ``[0, 2pi)``.
    """
    return gmst_from_j2000(jd_ut1 - JD_J2000)
