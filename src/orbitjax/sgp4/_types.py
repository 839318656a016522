"""
Data types for the SGP4/SDP4 propagator.

:class:`MeanElements` is a plain Python dataclass holding the input
elements.  :class:`Sgp4State` and :class:`DeepSpaceState` are immutable
dataclasses registered as JAX pytrees: their array fields are leaves and
their algorithm/gravity/resonance tags are static auxiliary data, so a
state can be passed straight through ``jax.jit`` and ``jax.vmap``.  The
smaller groups (:class:`ThirdBodyPeriodics`, :class:`ResonanceTerms`,
:class:`ResonanceIntegrator`) are ``NamedTuple`` containers, which JAX
already treats as pytrees.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum, IntEnum
from typing import NamedTuple

import jax
from jax import Array

from orbitjax.constants import DEG2RAD, MINUTES_PER_DAY, TWO_PI
from orbitjax.sgp4._constants import GravitationalConstants
from orbitjax.utils import to_radians


@dataclass(frozen=True)
class MeanElements:
    """Mean orbital elements at epoch, as carried by a Two-Line Element set.

    Attributes:
        epoch: Julian Date of the element epoch [UTC].
        n0: Kozai mean motion [rad/min].
        e0: Eccentricity [dimensionless], ``0 <= e0 < 1``.
        i0: Inclination [rad].
        raan0: Right ascension of the ascending node [rad].
        argp0: Argument of perigee [rad].
        M0: Mean anomaly [rad].
        bstar: B* drag term [1/earth_radii].
    """

    epoch: float
    n0: float
    e0: float
    i0: float
    raan0: float
    argp0: float
    M0: float
    bstar: float

    @classmethod
    def from_tle_units(
        cls,
        epoch: float,
        n_rev_per_day: float,
        e0: float,
        i0: float,
        raan0: float,
        argp0: float,
        M0: float,
        bstar: float,
        use_degrees: bool = True,
    ) -> MeanElements:
        """Build elements from the units used in TLE records.

        Args:
            epoch: Julian Date of the element epoch [UTC].
            n_rev_per_day: Mean motion [rev/day].
            e0: Eccentricity.
            i0: Inclination.
            raan0: Right ascension of the ascending node.
            argp0: Argument of perigee.
            M0: Mean anomaly.
            bstar: B* drag term [1/earth_radii].
            use_degrees: If ``True`` (default), angles are in degrees.

        Returns:
            The corresponding :class:`MeanElements` in radians and rad/min.
        """
        return cls(
            epoch=float(epoch),
            n0=float(n_rev_per_day) * TWO_PI / MINUTES_PER_DAY,
            e0=float(e0),
            i0=float(to_radians(i0, use_degrees)),
            raan0=float(to_radians(raan0, use_degrees)),
            argp0=float(to_radians(argp0, use_degrees)),
            M0=float(to_radians(M0, use_degrees)),
            bstar=float(bstar),
        )

    @property
    def period(self) -> float:
        """Orbital period from the input mean motion [min]."""
        return TWO_PI / self.n0

    @property
    def inclination_deg(self) -> float:
        """Inclination [deg]."""
        return self.i0 / DEG2RAD


class Sgp4Algorithm(Enum):
    """Propagation variant selected at initialization."""

    SGP4 = "sgp4"
    SGP4_LOWPER = "sgp4_lowper"
    SDP4 = "sdp4"


class Resonance(IntEnum):
    """Geopotential resonance class of a deep-space orbit."""

    NONE = 0
    SYNCHRONOUS = 1
    HALF_DAY = 2


class ThirdBodyPeriodics(NamedTuple):
    """Periodic amplitude coefficients of one perturbing body (Sun or Moon).

    Attributes:
        zm0: Mean anomaly of the body at epoch [rad].
        e2, e3: Eccentricity terms.
        i2, i3: Inclination terms.
        l2, l3, l4: Mean longitude terms.
        gh2, gh3, gh4: Argument of perigee terms.
        h2, h3: RAAN terms.
    """

    zm0: Array
    e2: Array
    e3: Array
    i2: Array
    i3: Array
    l2: Array
    l3: Array
    l4: Array
    gh2: Array
    gh3: Array
    gh4: Array
    h2: Array
    h3: Array


class ResonanceTerms(NamedTuple):
    """Geopotential resonance coefficients fixed at initialization.

    ``del1``-``del3`` are used by the 24h synchronous case, ``d2201``-
    ``d5433`` by the 12h case.  All are zero for non-resonant orbits.
    """

    del1: Array
    del2: Array
    del3: Array
    d2201: Array
    d2211: Array
    d3210: Array
    d3222: Array
    d4410: Array
    d4422: Array
    d5220: Array
    d5232: Array
    d5421: Array
    d5433: Array
    xlamo: Array
    xfact: Array


class ResonanceIntegrator(NamedTuple):
    """Running state of the resonance integrator.

    Attributes:
        atime: Time of the checkpoint [min since epoch].
        xli: Resonant mean longitude at the checkpoint [rad].
        xni: Mean motion at the checkpoint [rad/min].
        xndot: First derivative of mean motion.
        xnddt: Second derivative of mean motion.
        xldot: First derivative of mean longitude.
    """

    atime: Array
    xli: Array
    xni: Array
    xndot: Array
    xnddt: Array
    xldot: Array


@dataclass(frozen=True)
class DeepSpaceState:
    """Lunar-solar and resonance state of an SDP4 orbit.

    Attributes:
        resonance: Resonance class (static).
        gmst: Greenwich mean sidereal time at epoch [rad].
        e_rate: Lunar-solar secular eccentricity rate [1/min].
        i_rate: Lunar-solar secular inclination rate [rad/min].
        M_rate: Lunar-solar secular mean anomaly rate [rad/min].
        argp_rate: Lunar-solar secular argument of perigee rate [rad/min].
        raan_rate: Lunar-solar secular RAAN rate [rad/min].
        solar: Solar periodic coefficients.
        lunar: Lunar periodic coefficients.
        terms: Resonance coefficients.
        integrator: Resonance integrator checkpoint.
    """

    resonance: Resonance
    gmst: Array
    e_rate: Array
    i_rate: Array
    M_rate: Array
    argp_rate: Array
    raan_rate: Array
    solar: ThirdBodyPeriodics
    lunar: ThirdBodyPeriodics
    terms: ResonanceTerms
    integrator: ResonanceIntegrator


@dataclass(frozen=True)
class Sgp4State:
    """Complete propagation state of one object.

    The derived constants are fixed at initialization.  ``dt`` and the
    current mean elements (``a``, ``e``, ``i``, ``raan``, ``argp``, ``M``,
    ``n``) describe the most recent propagation and are replaced, together
    with the deep-space integrator checkpoint, by every call to
    ``sgp4_propagate``.

    Attributes:
        algorithm: Selected propagation variant (static).
        gravity: Gravity constants (static).
        epoch: Julian Date of the element epoch [UTC].
        n0, e0, i0, raan0, argp0, M0, bstar: Input mean elements.
        n0_unkozai: Recovered (Brouwer) mean motion [rad/min].
        a0_unkozai: Recovered semi-major axis [er].
        perigee: Perigee altitude [km].
        qoms2t: Density parameter ``(q0 - s)**4`` [er^4].
        s: Density parameter [er].
        xi: ``1 / (a0 - s)``.
        eta: ``a0 * e0 * xi``.
        beta0: ``sqrt(1 - e0**2)``.
        sin_i0, cos_i0: Sine and cosine of the input inclination.
        c1, c3, c4, c5: Drag coefficients.
        d2, d3, d4: Higher order drag coefficients.
        M_dot, argp_dot, raan_dot: J2/J4 secular rates [rad/min].
        raan_drag: Coefficient of ``dt**2`` in the RAAN drift.
        omega_drag: ``bstar * c3 * cos(argp0)``.
        m_drag: Coefficient of the mean anomaly drag correction.
        m_drag0: ``(1 + eta * cos(M0))**3``.
        dt: Time of the last propagation [min since epoch].
        a, e, i, raan, argp, M, n: Current mean elements.
        deep_space: Deep-space state, ``None`` unless the variant is SDP4.
    """

    algorithm: Sgp4Algorithm
    gravity: GravitationalConstants
    epoch: Array
    n0: Array
    e0: Array
    i0: Array
    raan0: Array
    argp0: Array
    M0: Array
    bstar: Array
    n0_unkozai: Array
    a0_unkozai: Array
    perigee: Array
    qoms2t: Array
    s: Array
    xi: Array
    eta: Array
    beta0: Array
    sin_i0: Array
    cos_i0: Array
    c1: Array
    c3: Array
    c4: Array
    c5: Array
    d2: Array
    d3: Array
    d4: Array
    M_dot: Array
    argp_dot: Array
    raan_dot: Array
    raan_drag: Array
    omega_drag: Array
    m_drag: Array
    m_drag0: Array
    dt: Array
    a: Array
    e: Array
    i: Array
    raan: Array
    argp: Array
    M: Array
    n: Array
    deep_space: DeepSpaceState | None = None


def _register_state_pytree(cls: type, static: tuple[str, ...]) -> None:
    """Register a frozen state dataclass as a pytree with *static* aux fields."""
    dynamic = tuple(f.name for f in fields(cls) if f.name not in static)
    jax.tree_util.register_pytree_node(
        cls,
        lambda obj: (
            tuple(getattr(obj, name) for name in dynamic),
            tuple(getattr(obj, name) for name in static),
        ),
        lambda aux, children: cls(
            **dict(zip(dynamic, children)),
            **dict(zip(static, aux)),
        ),
    )


_register_state_pytree(DeepSpaceState, ("resonance",))
_register_state_pytree(Sgp4State, ("algorithm", "gravity"))
