"""Angle helpers shared by the initializers and the traced propagation code.

``to_radians`` / ``from_radians`` implement the ``use_degrees`` switch of
the public API.  ``wrap_angle`` is the sign-preserving reduction used by
the SGP4/SDP4 secular normalization.
"""

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from orbitjax.constants import TWO_PI


def to_radians(angle: ArrayLike, use_degrees: bool) -> Array:
    """Return *angle* in radians, converting from degrees when ``use_degrees``.

    Args:
        angle (ArrayLike): Angle in degrees or radians.
        use_degrees (bool): Whether *angle* is given in degrees.

    Returns:
        Angle [rad].
    """
    return jnp.deg2rad(angle) if use_degrees else jnp.asarray(angle)


def from_radians(angle: ArrayLike, use_degrees: bool) -> Array:
    """Return an angle given in radians, in degrees when ``use_degrees``."""
    return jnp.rad2deg(angle) if use_degrees else jnp.asarray(angle)


def wrap_angle(angle: ArrayLike) -> Array:
    """Reduce *angle* modulo 2pi, keeping the sign of the input.

    The result lies in ``(-2pi, 2pi)``; negative angles stay negative.

    Args:
        angle (ArrayLike): Angle [rad].

    Returns:
        Reduced angle [rad].
    """
    return jnp.fmod(angle, TWO_PI)
