"""
SGP4/SDP4 initialization and propagation core.

``sgp4_init`` runs at Python time: it recovers the Brouwer mean motion,
computes the drag and secular-rate constants, selects the propagation
variant and, for deep-space orbits, initializes the lunar-solar state.  The
result is an immutable :class:`Sgp4State` pytree.

``sgp4_propagate`` is a pure JAX function of ``(state, dt)``: it dispatches
on the static algorithm tag at trace time, so it can be wrapped in
``jax.jit`` and vectorized with ``jax.vmap`` over time.  It returns the
TEME position and velocity together with the updated state.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable
from math import cos as _py_cos
from math import sin as _py_sin
from math import sqrt as _py_sqrt

import jax
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from orbitjax.config import get_dtype, is_double_precision
from orbitjax.constants import TWO_PI
from orbitjax.sgp4._constants import (
    COS_INCLINATION_GUARD,
    DEEP_SPACE_PERIOD,
    DENSITY_FLOOR_ALTITUDE,
    DENSITY_PERIGEE_ALTITUDE,
    DENSITY_Q0_ALTITUDE,
    DENSITY_S_ALTITUDE,
    DENSITY_S_FLOOR_ALTITUDE,
    ECCENTRICITY_FLOOR,
    KEPLER_MAX_ITERATIONS,
    KEPLER_MAX_STEP,
    KEPLER_TOLERANCE,
    LOW_PERIGEE_ALTITUDE,
    SMALL_ECCENTRICITY,
    GravitationalConstants,
    get_gravitational_constants,
)
from orbitjax.sgp4._deep_space import (
    deep_space_init,
    deep_space_periodics,
    deep_space_secular,
)
from orbitjax.sgp4._types import MeanElements, Sgp4Algorithm, Sgp4State
from orbitjax.utils import wrap_angle

logger = logging.getLogger(__name__)

_x2o3 = 2.0 / 3.0


def _asarray(x: ArrayLike) -> Array:
    return jnp.asarray(x, dtype=get_dtype())


# ---------------------------------------------------------------------------
# Initialization (Python time)
# ---------------------------------------------------------------------------


def select_algorithm(period: float, perigee: float) -> Sgp4Algorithm:
    """Choose the propagation variant.

    Both thresholds are inclusive: a period of exactly 225 min selects SDP4
    and a perigee of exactly 220 km selects full SGP4.

    Args:
        period: Orbital period from the input mean motion [min].
        perigee: Perigee altitude from the recovered semi-major axis [km].

    Returns:
        The selected :class:`Sgp4Algorithm`.
    """
    if period >= DEEP_SPACE_PERIOD:
        return Sgp4Algorithm.SDP4
    if perigee >= LOW_PERIGEE_ALTITUDE:
        return Sgp4Algorithm.SGP4
    return Sgp4Algorithm.SGP4_LOWPER


def sgp4_init(
    elements: MeanElements,
    gravity: str | GravitationalConstants = "wgs72",
) -> Sgp4State:
    """Initialize an SGP4/SDP4 state from mean elements.

    This function runs at Python time (not under JIT). The input ("Kozai")
    mean motion is converted to the Brouwer mean motion and semi-major
    axis, the drag coefficients C1-C5, D2-D4 and the J2/J4 secular rates
    are computed, and the propagation variant is selected:

    - period ``2*pi/n0 >= 225`` min: :attr:`Sgp4Algorithm.SDP4`
    - else perigee ``>= 220`` km: :attr:`Sgp4Algorithm.SGP4`
    - else: :attr:`Sgp4Algorithm.SGP4_LOWPER`

    Inputs are not validated; ``0 <= e0 < 1`` is assumed.

    Args:
        elements: Mean elements at epoch.
        gravity: Gravity model name (``'wgs72'``, ``'wgs84'``) or a
            :class:`GravitationalConstants` instance.

    Returns:
        The initial :class:`Sgp4State`, whose current elements equal the
        epoch elements and whose ``dt`` is zero.

    Raises:
        ValueError: If *gravity* names an unknown model.
    """
    grav = get_gravitational_constants(gravity)
    if not is_double_precision():
        logger.warning(
            "Initializing SGP4 state in %s; reference agreement requires float64",
            jnp.dtype(get_dtype()).name,
        )

    R0, XKE, J2, J3, J4 = grav
    k2 = 0.5 * J2
    k4 = -0.375 * J4
    a30 = -J3

    # Density function parameters [er]
    s = DENSITY_S_ALTITUDE / R0 + 1.0
    q0 = DENSITY_Q0_ALTITUDE / R0 + 1.0
    qoms2t = (q0 - s) ** 4

    n0 = elements.n0
    e0 = elements.e0
    i0 = elements.i0
    argp0 = elements.argp0
    M0 = elements.M0
    bstar = elements.bstar

    e0sq = e0 * e0
    sin_i0 = _py_sin(i0)
    theta = _py_cos(i0)
    theta2 = theta * theta
    theta3 = theta2 * theta
    theta4 = theta2 * theta2

    # Recover the Brouwer mean motion and semi-major axis
    aux = (3.0 * theta2 - 1.0) / (1.0 - e0sq) ** 1.5
    a1 = (XKE / n0) ** _x2o3
    delta1 = 1.5 * k2 / (a1 * a1) * aux
    a0 = a1 * (1.0 - delta1 / 3.0 - delta1**2 - 134.0 / 81.0 * delta1**3)
    delta0 = 1.5 * k2 / (a0 * a0) * aux
    n0_unkozai = n0 / (1.0 + delta0)
    a0_unkozai = (XKE / n0_unkozai) ** _x2o3

    perigee = (a0_unkozai * (1.0 - e0) - 1.0) * R0

    if perigee < DENSITY_PERIGEE_ALTITUDE:
        if perigee < DENSITY_FLOOR_ALTITUDE:
            s = DENSITY_S_FLOOR_ALTITUDE / R0 + 1.0
        else:
            s = a0_unkozai * (1.0 - e0) - s + 1.0
        qoms2t = (q0 - s) ** 4

    xi = 1.0 / (a0_unkozai - s)
    beta0 = _py_sqrt(1.0 - e0sq)
    eta = a0_unkozai * e0 * xi

    aux0 = abs(1.0 - eta * eta)
    aux1 = aux0**-3.5
    aux2 = xi**4 * a0_unkozai * beta0**2 * aux1

    c2 = (
        qoms2t
        * xi**4
        * n0_unkozai
        * aux1
        * (
            a0_unkozai * (1.0 + 1.5 * eta**2 + 4.0 * e0 * eta + e0 * eta**3)
            + 1.5 * k2 * xi / aux0 * (-0.5 + 1.5 * theta2) * (8.0 + 24.0 * eta**2 + 3.0 * eta**4)
        )
    )
    c1 = bstar * c2

    c3 = 0.0
    m_drag = 0.0
    if e0 > SMALL_ECCENTRICITY:
        c3 = qoms2t * xi**5 * a30 * n0_unkozai * sin_i0 / (k2 * e0)
        m_drag = -_x2o3 * qoms2t * bstar * xi**4 / (e0 * eta)

    c4 = (
        2.0
        * n0_unkozai
        * qoms2t
        * aux2
        * (
            2.0 * eta * (1.0 + e0 * eta)
            + 0.5 * e0
            + 0.5 * eta**3
            - 2.0
            * k2
            * xi
            / (a0_unkozai * aux0)
            * (
                3.0 * (1.0 - 3.0 * theta2) * (1.0 + 1.5 * eta**2 - 2.0 * e0 * eta - 0.5 * e0 * eta**3)
                + 0.75 * (1.0 - theta2) * (2.0 * eta**2 - e0 * eta - e0 * eta**3) * _py_cos(2.0 * argp0)
            )
        )
    )
    c5 = 2.0 * qoms2t * aux2 * (1.0 + 2.75 * eta * (eta + e0) + e0 * eta**3)

    d2 = 4.0 * a0_unkozai * xi * c1**2
    d3 = 4.0 / 3.0 * a0_unkozai * xi**2 * (17.0 * a0_unkozai + s) * c1**3
    d4 = _x2o3 * a0_unkozai**2 * xi**3 * (221.0 * a0_unkozai + 31.0 * s) * c1**4

    # J2/J4 secular rates
    a2b = a0_unkozai**2
    a4b = a0_unkozai**4
    M_dot = (
        1.0
        + 3.0 * k2 * (-1.0 + 3.0 * theta2) / (2.0 * a2b * beta0**3)
        + 3.0 * k2**2 * (13.0 - 78.0 * theta2 + 137.0 * theta4) / (16.0 * a4b * beta0**7)
    ) * n0_unkozai
    argp_dot = (
        -3.0 * k2 * (1.0 - 5.0 * theta2) / (2.0 * a2b * beta0**4)
        + 3.0 * k2**2 * (7.0 - 114.0 * theta2 + 395.0 * theta4) / (16.0 * a4b * beta0**8)
        + 5.0 * k4 * (3.0 - 36.0 * theta2 + 49.0 * theta4) / (4.0 * a4b * beta0**8)
    ) * n0_unkozai
    raan_dot1 = -3.0 * k2 * theta / (a2b * beta0**4) * n0_unkozai
    raan_dot = raan_dot1 + (
        3.0 * k2**2 * (4.0 * theta - 19.0 * theta3) / (2.0 * a4b * beta0**8)
        + 5.0 * k4 * theta * (3.0 - 7.0 * theta2) / (2.0 * a4b * beta0**8)
    ) * n0_unkozai
    raan_drag = -10.5 * n0_unkozai * k2 * theta / (a2b * beta0**2) * c1

    algorithm = select_algorithm(elements.period, perigee)
    deep_space = None
    if algorithm == Sgp4Algorithm.SDP4:
        deep_space = deep_space_init(
            elements.epoch,
            n0_unkozai,
            a0_unkozai,
            e0,
            i0,
            elements.raan0,
            argp0,
            M0,
            M_dot,
            argp_dot,
            raan_dot,
        )

    logger.debug(
        "SGP4 init: n0_unkozai=%.12e rad/min, a0=%.9f er, perigee=%.3f km, algorithm=%s",
        n0_unkozai,
        a0_unkozai,
        perigee,
        algorithm.value,
    )

    return Sgp4State(
        algorithm=algorithm,
        gravity=grav,
        epoch=_asarray(elements.epoch),
        n0=_asarray(n0),
        e0=_asarray(e0),
        i0=_asarray(i0),
        raan0=_asarray(elements.raan0),
        argp0=_asarray(argp0),
        M0=_asarray(M0),
        bstar=_asarray(bstar),
        n0_unkozai=_asarray(n0_unkozai),
        a0_unkozai=_asarray(a0_unkozai),
        perigee=_asarray(perigee),
        qoms2t=_asarray(qoms2t),
        s=_asarray(s),
        xi=_asarray(xi),
        eta=_asarray(eta),
        beta0=_asarray(beta0),
        sin_i0=_asarray(sin_i0),
        cos_i0=_asarray(theta),
        c1=_asarray(c1),
        c3=_asarray(c3),
        c4=_asarray(c4),
        c5=_asarray(c5),
        d2=_asarray(d2),
        d3=_asarray(d3),
        d4=_asarray(d4),
        M_dot=_asarray(M_dot),
        argp_dot=_asarray(argp_dot),
        raan_dot=_asarray(raan_dot),
        raan_drag=_asarray(raan_drag),
        omega_drag=_asarray(bstar * c3 * _py_cos(argp0)),
        m_drag=_asarray(m_drag),
        m_drag0=_asarray((1.0 + eta * _py_cos(M0)) ** 3),
        dt=_asarray(0.0),
        a=_asarray(a0_unkozai),
        e=_asarray(e0),
        i=_asarray(i0),
        raan=_asarray(elements.raan0),
        argp=_asarray(argp0),
        M=_asarray(M0),
        n=_asarray(n0_unkozai),
        deep_space=deep_space,
    )


# ---------------------------------------------------------------------------
# Kepler solver and short-period corrections (JAX)
# ---------------------------------------------------------------------------


def solve_kepler(u: ArrayLike, axn: ArrayLike, ayn: ArrayLike) -> tuple[Array, Array, Array, Array]:
    """Solve the modified Kepler equation for ``E + argp``.

    Solves ``u = x + ayn*cos(x) - axn*sin(x)`` by Newton iteration with
    each step clamped to +/-0.95 rad, stopping once a step is smaller than
    1e-12 or after 10 iterations. No convergence failure is signalled.

    Args:
        u: Mean longitude minus RAAN plus long-period correction [rad].
        axn: ``e*cos(argp)``.
        ayn: ``e*sin(argp)`` plus the long-period correction.

    Returns:
        Tuple ``(x, sin_x, cos_x, iterations)`` where ``sin_x`` and
        ``cos_x`` were evaluated at the start of the last iteration.
    """
    u = jnp.asarray(u)

    def _loop_cond(carry):
        k, _, delta, _, _ = carry
        return (k < KEPLER_MAX_ITERATIONS) & (jnp.abs(delta) >= KEPLER_TOLERANCE)

    def _loop_body(carry):
        k, x, _, _, _ = carry
        sin_x = jnp.sin(x)
        cos_x = jnp.cos(x)
        delta = (u - ayn * cos_x + axn * sin_x - x) / (1.0 - ayn * sin_x - axn * cos_x)
        delta = jnp.clip(delta, -KEPLER_MAX_STEP, KEPLER_MAX_STEP)
        return (k + 1, x + delta, delta, sin_x, cos_x)

    init = (jnp.int32(0), u, jnp.ones_like(u), jnp.zeros_like(u), jnp.zeros_like(u))
    k, x, _, sin_x, cos_x = jax.lax.while_loop(_loop_cond, _loop_body, init)
    return x, sin_x, cos_x, k


def _osculating_state(
    gravity: GravitationalConstants,
    a: Array,
    e: Array,
    i: Array,
    raan: Array,
    argp: Array,
    mean_longitude: Array,
    n: Array,
    sin_i: Array,
    cos_i: Array,
) -> tuple[Array, Array]:
    """Long- and short-period corrections and TEME position/velocity.

    Returns:
        Tuple ``(r, v)`` with position [km] and velocity [km/s].
    """
    R0, XKE, J2, J3, _ = gravity
    k2 = 0.5 * J2
    a30 = -J3
    theta2 = cos_i * cos_i

    # Long-period periodics
    axn = e * jnp.cos(argp)
    ayn_long = a30 * sin_i / (4.0 * k2 * a * (1.0 - e * e))
    ayn = e * jnp.sin(argp) + ayn_long
    one_plus_cos = 1.0 + cos_i
    one_plus_cos = jnp.where(
        jnp.abs(one_plus_cos) < COS_INCLINATION_GUARD, COS_INCLINATION_GUARD, one_plus_cos
    )
    longitude_long = 0.5 * ayn_long * axn * (3.0 + 5.0 * cos_i) / one_plus_cos

    u = wrap_angle(mean_longitude + longitude_long - raan)
    _, sin_ew, cos_ew, _ = solve_kepler(u, axn, ayn)

    ecos_e = axn * cos_ew + ayn * sin_ew
    esin_e = axn * sin_ew - ayn * cos_ew
    el2 = axn * axn + ayn * ayn
    p_l = a * (1.0 - el2)
    beta_l = jnp.sqrt(1.0 - el2)

    r = a * (1.0 - ecos_e)
    r_dot = XKE * jnp.sqrt(a) * esin_e / r
    rf_dot = XKE * jnp.sqrt(p_l) / r

    aux = esin_e / (1.0 + beta_l)
    cos_u = a / r * (cos_ew - axn + ayn * aux)
    sin_u = a / r * (sin_ew - ayn - axn * aux)
    arg_lat = jnp.arctan2(sin_u, cos_u)
    cos_2u = 1.0 - 2.0 * sin_u * sin_u
    sin_2u = 2.0 * cos_u * sin_u

    # Short-period periodics
    k2_p = k2 / p_l
    k2_p2 = k2_p / p_l
    r_k = r * (1.0 - 1.5 * k2_p2 * beta_l * (3.0 * theta2 - 1.0)) + 0.5 * k2_p * (1.0 - theta2) * cos_2u
    u_k = arg_lat - 0.25 * k2_p2 * (7.0 * theta2 - 1.0) * sin_2u
    raan_k = raan + 1.5 * k2_p2 * cos_i * sin_2u
    i_k = i + 1.5 * k2_p2 * cos_i * sin_i * cos_2u
    r_dot_k = r_dot - n * k2_p * (1.0 - theta2) * sin_2u
    rf_dot_k = rf_dot + n * k2_p * ((1.0 - theta2) * cos_2u - 1.5 * (1.0 - 3.0 * theta2))

    # Orientation vectors
    sin_raan = jnp.sin(raan_k)
    cos_raan = jnp.cos(raan_k)
    sin_ik = jnp.sin(i_k)
    cos_ik = jnp.cos(i_k)
    sin_uk = jnp.sin(u_k)
    cos_uk = jnp.cos(u_k)

    m_vec = jnp.stack([-sin_raan * cos_ik, cos_raan * cos_ik, sin_ik])
    n_vec = jnp.stack([cos_raan, sin_raan, jnp.zeros_like(sin_raan)])
    u_vec = m_vec * sin_uk + n_vec * cos_uk
    v_vec = m_vec * cos_uk - n_vec * sin_uk

    r_teme = r_k * u_vec * R0
    v_teme = (r_dot_k * u_vec + rf_dot_k * v_vec) * R0 / 60.0
    return r_teme, v_teme


# ---------------------------------------------------------------------------
# Propagation (JAX)
# ---------------------------------------------------------------------------


def sgp4_propagate(state: Sgp4State, dt: ArrayLike) -> tuple[Array, Array, Sgp4State]:
    """Propagate an SGP4/SDP4 state to ``dt`` minutes from epoch.

    The algorithm variant is read from the static ``state.algorithm`` at
    trace time, so the function is compatible with ``jax.jit``.  For
    resonant deep-space orbits the integrator resumes from the checkpoint
    stored in *state*; propagating a sequence of increasing times through
    the returned states is therefore cheaper than restarting from epoch.

    Args:
        state: State from ``sgp4_init`` or a previous call.
        dt: Signed time since epoch [min].

    Returns:
        Tuple ``(r, v, new_state)`` where ``r`` is the TEME position [km],
        ``v`` the TEME velocity [km/s] and ``new_state`` holds the updated
        mean elements and integrator checkpoint.

    Raises:
        ValueError: If ``state.algorithm`` is not a known variant.
    """
    dt = jnp.asarray(dt, dtype=state.n0.dtype)
    grav = state.gravity
    n0 = state.n0_unkozai
    c1 = state.c1
    bstar = state.bstar

    # Zonal secular effects
    M = state.M0 + state.M_dot * dt
    raan = state.raan0 + state.raan_dot * dt + state.raan_drag * dt * dt
    argp = state.argp0 + state.argp_dot * dt
    i = state.i0
    n = n0
    deep_space = state.deep_space
    algorithm = state.algorithm

    if algorithm == Sgp4Algorithm.SDP4:
        n, e, i, raan, argp, M, deep_space = deep_space_secular(
            deep_space, n0, state.e0, state.i0, state.argp0, state.argp_dot, raan, argp, M, dt
        )
        a = (grav.XKE / n) ** _x2o3 * (1.0 - c1 * dt) ** 2
        e = e - bstar * state.c4 * dt
        M = M + n0 * 1.5 * c1 * dt * dt
    elif algorithm == Sgp4Algorithm.SGP4:
        d2, d3, d4 = state.d2, state.d3, state.d4
        delta_omega = state.omega_drag * dt
        delta_m = state.m_drag * ((1.0 + state.eta * jnp.cos(M)) ** 3 - state.m_drag0)
        M = M + delta_omega + delta_m
        argp = argp - delta_omega - delta_m
        e = (
            state.e0
            - bstar * state.c4 * dt
            - bstar * state.c5 * (jnp.sin(M) - jnp.sin(state.M0))
        )
        a = state.a0_unkozai * (1.0 - dt * (c1 + dt * (d2 + dt * (d3 + dt * d4)))) ** 2
        c1sq = c1 * c1
        M = M + n0 * dt * dt * (
            1.5 * c1
            + dt
            * (
                (d2 + 2.0 * c1sq)
                + dt
                * (
                    0.25 * (3.0 * d3 + 12.0 * c1 * d2 + 10.0 * c1sq * c1)
                    + dt * 0.2 * (3.0 * d4 + 12.0 * c1 * d3 + 6.0 * d2 * d2 + 30.0 * c1sq * d2 + 15.0 * c1sq * c1sq)
                )
            )
        )
    elif algorithm == Sgp4Algorithm.SGP4_LOWPER:
        e = state.e0 - bstar * state.c4 * dt
        a = state.a0_unkozai * (1.0 - c1 * dt) ** 2
        M = M + n0 * 1.5 * c1 * dt * dt
    else:
        raise ValueError(f"Unknown SGP4 algorithm variant: {algorithm!r}")

    # Angle normalization
    longitude_mod = wrap_angle(M + argp + raan)
    raan = wrap_angle(raan)
    argp = wrap_angle(argp)
    M = wrap_angle(longitude_mod - argp - raan)

    if algorithm == Sgp4Algorithm.SDP4:
        e, i, raan, argp, M = deep_space_periodics(deep_space, dt, e, i, raan, argp, M)
        sin_i = jnp.sin(i)
        cos_i = jnp.cos(i)
    else:
        sin_i = state.sin_i0
        cos_i = state.cos_i0

    mean_longitude = M + argp + raan
    e = jnp.maximum(e, ECCENTRICITY_FLOOR)
    n = grav.XKE / a**1.5

    r, v = _osculating_state(grav, a, e, i, raan, argp, mean_longitude, n, sin_i, cos_i)

    new_state = dataclasses.replace(
        state,
        dt=dt,
        a=a,
        e=e,
        i=jnp.asarray(i, dtype=dt.dtype),
        raan=raan,
        argp=argp,
        M=M,
        n=n,
        deep_space=deep_space,
    )
    return r, v, new_state


# ---------------------------------------------------------------------------
# Functional helpers
# ---------------------------------------------------------------------------


def create_sgp4_propagator(
    elements: MeanElements,
    gravity: str | GravitationalConstants = "wgs72",
) -> tuple[Sgp4State, Callable[[ArrayLike], tuple[Array, Array]]]:
    """Create a JIT-compatible SGP4 propagator from mean elements.

    The returned closure always propagates from the epoch state, so it is a
    pure function of time suitable for ``jax.jit`` and ``jax.vmap``.

    Args:
        elements: Mean elements at epoch.
        gravity: Gravity model name or :class:`GravitationalConstants`.

    Returns:
        Tuple of ``(state, propagate_fn)`` where:
            - ``state`` is the initial :class:`Sgp4State`
            - ``propagate_fn(dt)`` takes time since epoch in minutes and
              returns ``(r_km, v_kms)`` in the TEME frame
    """
    state = sgp4_init(elements, gravity)

    def propagate_fn(dt: ArrayLike) -> tuple[Array, Array]:
        r, v, _ = sgp4_propagate(state, dt)
        return r, v

    return state, propagate_fn


def sgp4(
    dt: ArrayLike,
    elements: MeanElements,
    gravity: str | GravitationalConstants = "wgs72",
) -> tuple[Array, Array, Sgp4State]:
    """Initialize from *elements* and propagate once to *dt*.

    Args:
        dt: Time since epoch [min].
        elements: Mean elements at epoch.
        gravity: Gravity model name or :class:`GravitationalConstants`.

    Returns:
        Tuple ``(r_km, v_kms, state)`` with the propagated state.
    """
    return sgp4_propagate(sgp4_init(elements, gravity), dt)
