"""Stateful SGP4/SDP4 propagator object.

Provides :class:`Sgp4Propagator`, a convenience wrapper that owns an
:class:`Sgp4State` and replaces it on every propagation, so that resonant
deep-space objects resume their integrator from the last checkpoint.
"""

from __future__ import annotations

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from orbitjax.constants import MINUTES_PER_DAY, TWO_PI
from orbitjax.sgp4._constants import GravitationalConstants
from orbitjax.sgp4._propagation import sgp4_init, sgp4_propagate
from orbitjax.sgp4._types import MeanElements, Resonance, Sgp4Algorithm, Sgp4State
from orbitjax.utils import from_radians


class Sgp4Propagator:
    """Mean elements with SGP4/SDP4 initialization and propagation.

    The object is owned by the caller and is not thread-safe: each call to
    :meth:`propagate` replaces the held state.  For JIT/vmap use over many
    times, prefer :func:`create_sgp4_propagator`, which always starts from
    the epoch state.

    Examples:
        ```python
        from orbitjax.sgp4 import MeanElements, Sgp4Propagator

        elements = MeanElements.from_tle_units(
            2444514.48708465, 16.05824518, 0.0086731,
            72.8435, 115.9689, 52.6988, 110.5714, 0.66816e-4,
        )
        prop = Sgp4Propagator(elements)

        prop.algorithm      # Sgp4Algorithm.SGP4
        r_km, v_kms = prop.propagate(360.0)
        prop.mean_elements(use_degrees=True)
        ```

    Args:
        elements: Mean elements at epoch.
        gravity: Gravity model name or :class:`GravitationalConstants`.
    """

    def __init__(
        self,
        elements: MeanElements,
        gravity: str | GravitationalConstants = "wgs72",
    ) -> None:
        self._elements: MeanElements = elements
        self._state: Sgp4State = sgp4_init(elements, gravity)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def elements(self) -> MeanElements:
        """Mean elements at epoch."""
        return self._elements

    @property
    def state(self) -> Sgp4State:
        """State after the most recent propagation."""
        return self._state

    @property
    def epoch(self) -> float:
        """Julian Date of the element epoch [UTC]."""
        return self._elements.epoch

    @property
    def algorithm(self) -> Sgp4Algorithm:
        """Propagation variant selected at initialization."""
        return self._state.algorithm

    @property
    def resonance(self) -> Resonance:
        """Resonance class; ``Resonance.NONE`` for near-earth objects."""
        if self._state.deep_space is None:
            return Resonance.NONE
        return self._state.deep_space.resonance

    @property
    def n(self) -> float:
        """Input mean motion [rev/day]."""
        return self._elements.n0 * MINUTES_PER_DAY / TWO_PI

    # ------------------------------------------------------------------
    # Propagation
    # ------------------------------------------------------------------

    def propagate(self, dt: float | ArrayLike) -> tuple[Array, Array]:
        """Propagate to *dt* minutes from epoch and keep the new state.

        Args:
            dt: Time since epoch [min].

        Returns:
            Tuple ``(r_km, v_kms)`` with TEME position [km] and velocity
            [km/s].
        """
        r, v, self._state = sgp4_propagate(self._state, dt)
        return r, v

    def mean_elements(self, use_degrees: bool = False) -> Array:
        """Current mean elements from the most recent propagation.

        Args:
            use_degrees: If ``True``, angles are returned in degrees.

        Returns:
            Array ``[a, e, i, raan, argp, M, n]`` with ``a`` in earth radii
            and ``n`` in rad/min.
        """
        s = self._state
        return jnp.stack(
            [
                s.a,
                s.e,
                from_radians(s.i, use_degrees),
                from_radians(s.raan, use_degrees),
                from_radians(s.argp, use_degrees),
                from_radians(s.M, use_degrees),
                s.n,
            ]
        )

    def reset(self) -> None:
        """Discard the propagated state and return to epoch."""
        self._state = sgp4_init(self._elements, self._state.gravity)

    def __repr__(self) -> str:
        return (
            f"Sgp4Propagator(epoch={self.epoch:.8f}, "
            f"n={self.n:.8f} rev/day, i={self._elements.inclination_deg:.4f} deg, "
            f"algorithm={self.algorithm.value!r})"
        )
