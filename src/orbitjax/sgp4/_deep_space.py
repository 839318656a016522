"""
Deep-space (SDP4) initialization and propagation routines.

``deep_space_init`` runs once at Python time: it evaluates the solar and
lunar third-body coefficients, classifies the geopotential resonance and
seeds the resonance integrator.  ``deep_space_secular`` and
``deep_space_periodics`` are pure JAX functions called from
``sgp4_propagate``; the resonance class is static, so the integrator is
only traced for resonant orbits.
"""

from __future__ import annotations

import dataclasses
import logging
from math import atan2 as _py_atan2
from math import copysign as _py_copysign
from math import cos as _py_cos
from math import fmod as _py_fmod
from math import pi as _py_pi
from math import sin as _py_sin
from math import sqrt as _py_sqrt
from typing import NamedTuple

import jax
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from orbitjax.config import get_dtype
from orbitjax.constants import JD_1900, TWO_PI
from orbitjax.sgp4._constants import (
    C1L,
    C1SS,
    FASX2,
    FASX4,
    FASX6,
    G22,
    G32,
    G44,
    G52,
    G54,
    HALF_DAY_BAND,
    HALF_DAY_MIN_ECCENTRICITY,
    LYDDANE_INCLINATION,
    Q22,
    Q31,
    Q33,
    RESONANCE_STEP,
    ROOT22,
    ROOT32,
    ROOT44,
    ROOT52,
    ROOT54,
    SHALLOW_INCLINATION,
    SIN_INCLINATION_FLOOR,
    SYNCHRONOUS_BAND,
    THDT,
    ZCOSGS,
    ZCOSIS,
    ZEL,
    ZES,
    ZNL,
    ZNS,
    ZSINGS,
    ZSINIS,
)
from orbitjax.sgp4._types import (
    DeepSpaceState,
    Resonance,
    ResonanceIntegrator,
    ResonanceTerms,
    ThirdBodyPeriodics,
)
from orbitjax.time import gmst_from_jd
from orbitjax.utils import wrap_angle

logger = logging.getLogger(__name__)


class _BodyGeometry(NamedTuple):
    """Orientation and strength of a perturbing body at epoch."""

    zcosg: float
    zsing: float
    zcosi: float
    zsini: float
    zcosh: float
    zsinh: float
    cc: float
    zn: float
    ze: float
    zm0: float


def _asarray(x: ArrayLike) -> Array:
    return jnp.asarray(x, dtype=get_dtype())


# ---------------------------------------------------------------------------
# Python-time deep-space init helpers
# ---------------------------------------------------------------------------


def _third_body_terms(
    body: _BodyGeometry,
    n0: float,
    e0: float,
    cos_i0: float,
    sin_i0: float,
    cos_argp0: float,
    sin_argp0: float,
    keep_raan_terms: bool,
) -> tuple[tuple[float, float, float, float, float], ThirdBodyPeriodics]:
    """Secular rates and periodic coefficients contributed by one body.

    The same expressions serve the Sun and the Moon; only the body geometry
    differs.

    Args:
        body: Geometry and constants of the perturbing body.
        n0: Recovered mean motion [rad/min].
        e0: Eccentricity.
        cos_i0: Cosine of the inclination.
        sin_i0: Sine of the inclination (already clamped away from zero).
        cos_argp0: Cosine of the argument of perigee.
        sin_argp0: Sine of the argument of perigee.
        keep_raan_terms: If ``False`` the RAAN secular rate is zeroed.

    Returns:
        Tuple ``((se, si, sl, sgh, sh), periodics)`` where the first item
        holds the secular rates of eccentricity, inclination, mean
        longitude, argument of perigee and RAAN (the latter already divided
        by ``sin_i0``).
    """
    e0sq = e0 * e0
    beta0 = _py_sqrt(1.0 - e0sq)
    zcosg, zsing, zcosi, zsini, zcosh, zsinh, cc, zn, ze, zm0 = body

    a1 = zcosg * zcosh + zsing * zcosi * zsinh
    a3 = -zsing * zcosh + zcosg * zcosi * zsinh
    a7 = -zcosg * zsinh + zsing * zcosi * zcosh
    a8 = zsing * zsini
    a9 = zsing * zsinh + zcosg * zcosi * zcosh
    a10 = zcosg * zsini
    a2 = cos_i0 * a7 + sin_i0 * a8
    a4 = cos_i0 * a9 + sin_i0 * a10
    a5 = -sin_i0 * a7 + cos_i0 * a8
    a6 = -sin_i0 * a9 + cos_i0 * a10

    x1 = a1 * cos_argp0 + a2 * sin_argp0
    x2 = a3 * cos_argp0 + a4 * sin_argp0
    x3 = -a1 * sin_argp0 + a2 * cos_argp0
    x4 = -a3 * sin_argp0 + a4 * cos_argp0
    x5 = a5 * sin_argp0
    x6 = a6 * sin_argp0
    x7 = a5 * cos_argp0
    x8 = a6 * cos_argp0

    z31 = 12.0 * x1 * x1 - 3.0 * x3 * x3
    z32 = 24.0 * x1 * x2 - 6.0 * x3 * x4
    z33 = 12.0 * x2 * x2 - 3.0 * x4 * x4
    z1 = 3.0 * (a1 * a1 + a2 * a2) + z31 * e0sq
    z2 = 6.0 * (a1 * a3 + a2 * a4) + z32 * e0sq
    z3 = 3.0 * (a3 * a3 + a4 * a4) + z33 * e0sq
    z11 = -6.0 * a1 * a5 + e0sq * (-24.0 * x1 * x7 - 6.0 * x3 * x5)
    z12 = -6.0 * (a1 * a6 + a3 * a5) + e0sq * (
        -24.0 * (x2 * x7 + x1 * x8) - 6.0 * (x3 * x6 + x4 * x5)
    )
    z13 = -6.0 * a3 * a6 + e0sq * (-24.0 * x2 * x8 - 6.0 * x4 * x6)
    z21 = 6.0 * a2 * a5 + e0sq * (24.0 * x1 * x5 - 6.0 * x3 * x7)
    z22 = 6.0 * (a4 * a5 + a2 * a6) + e0sq * (
        24.0 * (x2 * x5 + x1 * x6) - 6.0 * (x4 * x7 + x3 * x8)
    )
    z23 = 6.0 * a4 * a6 + e0sq * (24.0 * x2 * x6 - 6.0 * x4 * x8)
    z1 = 2.0 * z1 + (1.0 - e0sq) * z31
    z2 = 2.0 * z2 + (1.0 - e0sq) * z32
    z3 = 2.0 * z3 + (1.0 - e0sq) * z33

    s3 = cc / n0
    s2 = -0.5 * s3 / beta0
    s4 = s3 * beta0
    s1 = -15.0 * e0 * s4
    s5 = x1 * x3 + x2 * x4
    s6 = x2 * x3 + x1 * x4
    s7 = x2 * x4 - x1 * x3

    se = s1 * zn * s5
    si = s2 * zn * (z11 + z13)
    sl = -zn * s3 * (z1 + z3 - 14.0 - 6.0 * e0sq)
    sgh = s4 * zn * (z31 + z33 - 6.0)
    sh = 0.0
    if keep_raan_terms:
        sh = -zn * s2 * (z21 + z23) / sin_i0

    periodics = ThirdBodyPeriodics(
        zm0=zm0,
        e2=2.0 * s1 * s6,
        e3=2.0 * s1 * s7,
        i2=2.0 * s2 * z12,
        i3=2.0 * s2 * (z13 - z11),
        l2=-2.0 * s3 * z2,
        l3=-2.0 * s3 * (z3 - z1),
        l4=-2.0 * s3 * (-21.0 - 9.0 * e0sq) * ze,
        gh2=2.0 * s4 * z32,
        gh3=2.0 * s4 * (z33 - z31),
        gh4=-18.0 * s4 * ze,
        h2=-2.0 * s2 * z22,
        h3=-2.0 * s2 * (z23 - z21),
    )
    return (se, si, sl, sgh, sh), periodics


def _lunar_solar_geometry(
    epoch: float, cos_raan0: float, sin_raan0: float
) -> tuple[_BodyGeometry, _BodyGeometry]:
    """Solar and lunar geometry at *epoch* (Julian Date)."""
    day = epoch - JD_1900

    xnodce = (4.5236020 - 9.2422029e-4 * day) % TWO_PI
    stem = _py_sin(xnodce)
    ctem = _py_cos(xnodce)
    zcosil = 0.91375164 - 0.03568096 * ctem
    zsinil = _py_sqrt(1.0 - zcosil * zcosil)
    zsinhl = 0.089683511 * stem / zsinil
    zcoshl = _py_sqrt(1.0 - zsinhl * zsinhl)
    gam = 5.8351514 + 0.0019443680 * day
    zx = _py_atan2(0.39785416 * stem / zsinil, zcoshl * ctem + 0.91744867 * zsinhl * stem)
    zx = gam + zx - xnodce

    zmol = (4.7199672 + 0.22997150 * day - gam) % TWO_PI
    zmos = (6.2565837 + 0.017201977 * day) % TWO_PI

    solar = _BodyGeometry(
        zcosg=ZCOSGS,
        zsing=ZSINGS,
        zcosi=ZCOSIS,
        zsini=ZSINIS,
        zcosh=cos_raan0,
        zsinh=sin_raan0,
        cc=C1SS,
        zn=ZNS,
        ze=ZES,
        zm0=zmos,
    )
    lunar = _BodyGeometry(
        zcosg=_py_cos(zx),
        zsing=_py_sin(zx),
        zcosi=zcosil,
        zsini=zsinil,
        zcosh=cos_raan0 * zcoshl + sin_raan0 * zsinhl,
        zsinh=sin_raan0 * zcoshl - cos_raan0 * zsinhl,
        cc=C1L,
        zn=ZNL,
        ze=ZEL,
        zm0=zmol,
    )
    return solar, lunar


def _classify_resonance(n0: float, e0: float) -> Resonance:
    """Resonance class from the recovered mean motion and eccentricity."""
    if SYNCHRONOUS_BAND[0] < n0 < SYNCHRONOUS_BAND[1]:
        return Resonance.SYNCHRONOUS
    if HALF_DAY_BAND[0] <= n0 <= HALF_DAY_BAND[1] and e0 >= HALF_DAY_MIN_ECCENTRICITY:
        return Resonance.HALF_DAY
    return Resonance.NONE


def _synchronous_coefficients(
    n0: float, a0: float, e0: float, cos_i0: float, sin_i0: float
) -> tuple[float, float, float]:
    """Coefficients of the (2,2), (3,1) and (3,3) 24h resonance terms."""
    e0sq = e0 * e0
    inv_a0 = 1.0 / a0

    g200 = 1.0 + e0sq * (-2.5 + 0.8125 * e0sq)
    g310 = 1.0 + 2.0 * e0sq
    g300 = 1.0 + e0sq * (-6.0 + 6.60937 * e0sq)
    f220 = 0.75 * (1.0 + cos_i0) * (1.0 + cos_i0)
    f311 = 0.9375 * sin_i0 * sin_i0 * (1.0 + 3.0 * cos_i0) - 0.75 * (1.0 + cos_i0)
    f330 = 1.875 * (1.0 + cos_i0) ** 3

    del1 = 3.0 * n0 * n0 * inv_a0 * inv_a0
    del2 = 2.0 * del1 * f220 * g200 * Q22
    del3 = 3.0 * del1 * f330 * g300 * Q33 * inv_a0
    del1 = del1 * f311 * g310 * Q31 * inv_a0
    return del1, del2, del3


def _half_day_coefficients(
    n0: float, a0: float, e0: float, cos_i0: float, sin_i0: float
) -> tuple[float, ...]:
    """Coefficients ``d2201`` ... ``d5433`` of the ten 12h resonance terms.

    The eccentricity functions are piecewise polynomial fits with splits at
    e = 0.65, 0.715 and 0.7.
    """
    em = e0
    emsq = e0 * e0
    eoc = em * emsq
    inv_a0 = 1.0 / a0
    cosisq = cos_i0 * cos_i0
    sini2 = sin_i0 * sin_i0

    g201 = -0.306 - (em - 0.64) * 0.440
    if em <= 0.65:
        g211 = 3.616 - 13.2470 * em + 16.2900 * emsq
        g310 = -19.302 + 117.3900 * em - 228.4190 * emsq + 156.5910 * eoc
        g322 = -18.9068 + 109.7927 * em - 214.6334 * emsq + 146.5816 * eoc
        g410 = -41.122 + 242.6940 * em - 471.0940 * emsq + 313.9530 * eoc
        g422 = -146.407 + 841.8800 * em - 1629.014 * emsq + 1083.4350 * eoc
        g520 = -532.114 + 3017.977 * em - 5740.032 * emsq + 3708.2760 * eoc
    else:
        g211 = -72.099 + 331.819 * em - 508.738 * emsq + 266.724 * eoc
        g310 = -346.844 + 1582.851 * em - 2415.925 * emsq + 1246.113 * eoc
        g322 = -342.585 + 1554.908 * em - 2366.899 * emsq + 1215.972 * eoc
        g410 = -1052.797 + 4758.686 * em - 7193.992 * emsq + 3651.957 * eoc
        g422 = -3581.690 + 16178.110 * em - 24462.770 * emsq + 12422.520 * eoc
        if em > 0.715:
            g520 = -5149.66 + 29936.92 * em - 54087.36 * emsq + 31324.56 * eoc
        else:
            g520 = 1464.74 - 4664.75 * em + 3763.64 * emsq

    if em < 0.7:
        g533 = -919.22770 + 4988.6100 * em - 9064.7700 * emsq + 5542.21 * eoc
        g521 = -822.71072 + 4568.6173 * em - 8491.4146 * emsq + 5337.524 * eoc
        g532 = -853.66600 + 4690.2500 * em - 8624.7700 * emsq + 5341.4 * eoc
    else:
        g533 = -37995.780 + 161616.52 * em - 229838.20 * emsq + 109377.94 * eoc
        g521 = -51752.104 + 218913.95 * em - 309468.16 * emsq + 146349.42 * eoc
        g532 = -40023.880 + 170470.89 * em - 242699.48 * emsq + 115605.82 * eoc

    f220 = 0.75 * (1.0 + 2.0 * cos_i0 + cosisq)
    f221 = 1.5 * sini2
    f321 = 1.875 * sin_i0 * (1.0 - 2.0 * cos_i0 - 3.0 * cosisq)
    f322 = -1.875 * sin_i0 * (1.0 + 2.0 * cos_i0 - 3.0 * cosisq)
    f441 = 35.0 * sini2 * f220
    f442 = 39.3750 * sini2 * sini2
    f522 = 9.84375 * sin_i0 * (
        sini2 * (1.0 - 2.0 * cos_i0 - 5.0 * cosisq)
        + 0.33333333 * (-2.0 + 4.0 * cos_i0 + 6.0 * cosisq)
    )
    f523 = sin_i0 * (
        4.92187512 * sini2 * (-2.0 - 4.0 * cos_i0 + 10.0 * cosisq)
        + 6.56250012 * (1.0 + 2.0 * cos_i0 - 3.0 * cosisq)
    )
    f542 = 29.53125 * sin_i0 * (
        2.0 - 8.0 * cos_i0 + cosisq * (-12.0 + 8.0 * cos_i0 + 10.0 * cosisq)
    )
    f543 = 29.53125 * sin_i0 * (
        -2.0 - 8.0 * cos_i0 + cosisq * (12.0 + 8.0 * cos_i0 - 10.0 * cosisq)
    )

    temp1 = 3.0 * (n0 * inv_a0) ** 2
    temp = temp1 * ROOT22
    d2201 = temp * f220 * g201
    d2211 = temp * f221 * g211
    temp1 *= inv_a0
    temp = temp1 * ROOT32
    d3210 = temp * f321 * g310
    d3222 = temp * f322 * g322
    temp1 *= inv_a0
    temp = 2.0 * temp1 * ROOT44
    d4410 = temp * f441 * g410
    d4422 = temp * f442 * g422
    temp1 *= inv_a0
    temp = temp1 * ROOT52
    d5220 = temp * f522 * g520
    d5232 = temp * f523 * g532
    temp = 2.0 * temp1 * ROOT54
    d5421 = temp * f542 * g521
    d5433 = temp * f543 * g533

    return (d2201, d2211, d3210, d3222, d4410, d4422, d5220, d5232, d5421, d5433)


# ---------------------------------------------------------------------------
# Deep-space init orchestrator
# ---------------------------------------------------------------------------


def deep_space_init(
    epoch: float,
    n0: float,
    a0: float,
    e0: float,
    i0: float,
    raan0: float,
    argp0: float,
    M0: float,
    M_dot: float,
    argp_dot: float,
    raan_dot: float,
) -> DeepSpaceState:
    """Initialize the lunar-solar and resonance state of an SDP4 orbit.

    Pure Python. Called once by ``sgp4_init`` for periods of 225 minutes
    or more.

    Args:
        epoch: Julian Date of the element epoch.
        n0: Recovered mean motion [rad/min].
        a0: Recovered semi-major axis [er].
        e0: Eccentricity.
        i0: Inclination [rad].
        raan0: Right ascension of the ascending node [rad].
        argp0: Argument of perigee [rad].
        M0: Mean anomaly [rad].
        M_dot: Secular mean anomaly rate [rad/min].
        argp_dot: Secular argument of perigee rate [rad/min].
        raan_dot: Secular RAAN rate [rad/min].

    Returns:
        The initialized :class:`DeepSpaceState`.
    """
    cos_i0 = _py_cos(i0)
    sin_i0 = _py_sin(i0)
    if abs(sin_i0) < SIN_INCLINATION_FLOOR:
        sin_i0 = _py_copysign(SIN_INCLINATION_FLOOR, sin_i0)
    keep_raan_terms = i0 >= SHALLOW_INCLINATION

    gmst = float(gmst_from_jd(epoch))

    solar_geometry, lunar_geometry = _lunar_solar_geometry(
        epoch, _py_cos(raan0), _py_sin(raan0)
    )
    args = (n0, e0, cos_i0, sin_i0, _py_cos(argp0), _py_sin(argp0), keep_raan_terms)
    (se_s, si_s, sl_s, sgh_s, sh_s), solar = _third_body_terms(solar_geometry, *args)
    (se_l, si_l, sl_l, sgh_l, sh_l), lunar = _third_body_terms(lunar_geometry, *args)

    e_rate = se_s + se_l
    i_rate = si_s + si_l
    M_rate = sl_s + sl_l
    argp_rate = (sgh_s - cos_i0 * sh_s) + (sgh_l - cos_i0 * sh_l)
    raan_rate = sh_s + sh_l

    resonance = _classify_resonance(n0, e0)

    del1 = del2 = del3 = 0.0
    d_terms = (0.0,) * 10
    xlamo = 0.0
    xfact = 0.0
    if resonance == Resonance.SYNCHRONOUS:
        del1, del2, del3 = _synchronous_coefficients(n0, a0, e0, cos_i0, sin_i0)
        xlamo = _py_fmod(M0 + raan0 + argp0 - gmst, TWO_PI)
        bfact = M_dot + argp_dot + raan_dot - THDT + M_rate + argp_rate + raan_rate
        xfact = bfact - n0
    elif resonance == Resonance.HALF_DAY:
        d_terms = _half_day_coefficients(n0, a0, e0, cos_i0, sin_i0)
        xlamo = _py_fmod(M0 + 2.0 * raan0 - 2.0 * gmst, TWO_PI)
        bfact = M_dot + 2.0 * raan_dot - 2.0 * THDT + M_rate + 2.0 * raan_rate
        xfact = bfact - n0

    logger.debug(
        "Deep-space init: resonance=%s gmst=%.9f rad, lunar-solar rates "
        "e=%.3e i=%.3e M=%.3e argp=%.3e raan=%.3e",
        resonance.name,
        gmst,
        e_rate,
        i_rate,
        M_rate,
        argp_rate,
        raan_rate,
    )

    terms = ResonanceTerms(
        *(_asarray(v) for v in (del1, del2, del3, *d_terms, xlamo, xfact))
    )

    zero = _asarray(0.0)
    integrator = ResonanceIntegrator(
        atime=zero, xli=zero, xni=zero, xndot=zero, xnddt=zero, xldot=zero
    )
    if resonance != Resonance.NONE:
        xli = terms.xlamo
        xni = _asarray(n0)
        xndot, xnddt, xldot = _resonance_rates(
            resonance, terms, _asarray(argp0), _asarray(argp_dot), xli, xni, zero
        )
        integrator = ResonanceIntegrator(
            atime=zero, xli=xli, xni=xni, xndot=xndot, xnddt=xnddt, xldot=xldot
        )

    return DeepSpaceState(
        resonance=resonance,
        gmst=_asarray(gmst),
        e_rate=_asarray(e_rate),
        i_rate=_asarray(i_rate),
        M_rate=_asarray(M_rate),
        argp_rate=_asarray(argp_rate),
        raan_rate=_asarray(raan_rate),
        solar=ThirdBodyPeriodics(*(_asarray(v) for v in solar)),
        lunar=ThirdBodyPeriodics(*(_asarray(v) for v in lunar)),
        terms=terms,
        integrator=integrator,
    )


# ---------------------------------------------------------------------------
# JAX propagation helpers
# ---------------------------------------------------------------------------


def _resonance_rates(
    resonance: Resonance,
    terms: ResonanceTerms,
    argp0: ArrayLike,
    argp_dot: ArrayLike,
    xli: ArrayLike,
    xni: ArrayLike,
    atime: ArrayLike,
) -> tuple[Array, Array, Array]:
    """Right-hand side of the resonance equations.

    Returns:
        Tuple ``(xndot, xnddt, xldot)``: first and second derivatives of
        the mean motion and first derivative of the mean longitude.
    """
    if resonance == Resonance.SYNCHRONOUS:
        x1 = xli - FASX2
        x2 = 2.0 * (xli - FASX4)
        x3 = 3.0 * (xli - FASX6)
        xndot = terms.del1 * jnp.sin(x1) + terms.del2 * jnp.sin(x2) + terms.del3 * jnp.sin(x3)
        xnddt = (
            terms.del1 * jnp.cos(x1)
            + 2.0 * terms.del2 * jnp.cos(x2)
            + 3.0 * terms.del3 * jnp.cos(x3)
        )
    else:
        w = argp0 + argp_dot * atime
        x2w = 2.0 * w
        x2li = 2.0 * xli
        xndot = (
            terms.d2201 * jnp.sin(x2w + xli - G22)
            + terms.d2211 * jnp.sin(xli - G22)
            + terms.d3210 * jnp.sin(w + xli - G32)
            + terms.d3222 * jnp.sin(-w + xli - G32)
            + terms.d5220 * jnp.sin(w + xli - G52)
            + terms.d5232 * jnp.sin(-w + xli - G52)
            + terms.d4410 * jnp.sin(x2w + x2li - G44)
            + terms.d4422 * jnp.sin(x2li - G44)
            + terms.d5421 * jnp.sin(w + x2li - G54)
            + terms.d5433 * jnp.sin(-w + x2li - G54)
        )
        xnddt = (
            terms.d2201 * jnp.cos(x2w + xli - G22)
            + terms.d2211 * jnp.cos(xli - G22)
            + terms.d3210 * jnp.cos(w + xli - G32)
            + terms.d3222 * jnp.cos(-w + xli - G32)
            + terms.d5220 * jnp.cos(w + xli - G52)
            + terms.d5232 * jnp.cos(-w + xli - G52)
            + 2.0
            * (
                terms.d4410 * jnp.cos(x2w + x2li - G44)
                + terms.d4422 * jnp.cos(x2li - G44)
                + terms.d5421 * jnp.cos(w + x2li - G54)
                + terms.d5433 * jnp.cos(-w + x2li - G54)
            )
        )

    xldot = xni + terms.xfact
    return xndot, xnddt * xldot, xldot


def integrate_resonance(
    ds: DeepSpaceState,
    n0: ArrayLike,
    argp0: ArrayLike,
    argp_dot: ArrayLike,
    dt: ArrayLike,
) -> ResonanceIntegrator:
    """Advance the resonance integrator from its checkpoint towards *dt*.

    Fixed 720 minute Euler-Maclaurin steps are taken, forward or backward,
    until less than one step separates the checkpoint from *dt*.  The
    integrator restarts from epoch when it has never run, when *dt* lies on
    the other side of the epoch, or when *dt* is closer to the epoch than
    the checkpoint.

    Args:
        ds: Deep-space state holding the checkpoint. Must be resonant.
        n0: Recovered mean motion [rad/min].
        argp0: Argument of perigee at epoch [rad].
        argp_dot: Secular argument of perigee rate [rad/min].
        dt: Target time since epoch [min].

    Returns:
        The new checkpoint, with the derivatives evaluated at it.
    """
    resonance = ds.resonance
    terms = ds.terms
    ckpt = ds.integrator

    restart = (ckpt.atime == 0.0) | (dt * ckpt.atime <= 0.0) | (jnp.abs(dt) < jnp.abs(ckpt.atime))
    atime = jnp.where(restart, jnp.zeros_like(ckpt.atime), ckpt.atime)
    xli = jnp.where(restart, terms.xlamo, ckpt.xli)
    xni = jnp.where(restart, n0, ckpt.xni)

    delt = jnp.where(dt >= atime, RESONANCE_STEP, -RESONANCE_STEP)

    def _loop_cond(carry):
        atime_s, _, _ = carry
        return jnp.abs(dt - atime_s) >= RESONANCE_STEP

    def _loop_body(carry):
        atime_s, xli_s, xni_s = carry
        xndot, xnddt, xldot = _resonance_rates(
            resonance, terms, argp0, argp_dot, xli_s, xni_s, atime_s
        )
        xli_s = xli_s + delt * (xldot + delt * xndot / 2.0)
        xni_s = xni_s + delt * (xndot + delt * xnddt / 2.0)
        return (atime_s + delt, xli_s, xni_s)

    atime, xli, xni = jax.lax.while_loop(_loop_cond, _loop_body, (atime, xli, xni))

    xndot, xnddt, xldot = _resonance_rates(resonance, terms, argp0, argp_dot, xli, xni, atime)
    return ResonanceIntegrator(
        atime=atime, xli=xli, xni=xni, xndot=xndot, xnddt=xnddt, xldot=xldot
    )


def deep_space_secular(
    ds: DeepSpaceState,
    n0: ArrayLike,
    e0: ArrayLike,
    i0: ArrayLike,
    argp0: ArrayLike,
    argp_dot: ArrayLike,
    raan: ArrayLike,
    argp: ArrayLike,
    M: ArrayLike,
    dt: ArrayLike,
) -> tuple[Array, Array, Array, Array, Array, Array, DeepSpaceState]:
    """Apply lunar-solar secular rates and, if resonant, the resonance effects.

    Args:
        ds: Deep-space state.
        n0: Recovered mean motion [rad/min].
        e0: Eccentricity at epoch.
        i0: Inclination at epoch [rad].
        argp0: Argument of perigee at epoch [rad].
        argp_dot: Secular argument of perigee rate [rad/min].
        raan: RAAN after the zonal secular update [rad].
        argp: Argument of perigee after the zonal secular update [rad].
        M: Mean anomaly after the zonal secular update [rad].
        dt: Time since epoch [min].

    Returns:
        Tuple ``(n, e, i, raan, argp, M, ds)`` with the secularly updated
        mean elements and the deep-space state carrying the new
        integrator checkpoint.
    """
    M = M + ds.M_rate * dt
    e = e0 + ds.e_rate * dt
    i = i0 + ds.i_rate * dt
    raan = raan + ds.raan_rate * dt
    argp = argp + ds.argp_rate * dt

    if ds.resonance == Resonance.NONE:
        return jnp.asarray(n0), e, i, raan, argp, M, ds

    theta = wrap_angle(ds.gmst + THDT * dt)

    integrator = integrate_resonance(ds, n0, argp0, argp_dot, dt)
    ft = dt - integrator.atime
    xl = integrator.xli + ft * (integrator.xldot + ft * integrator.xndot / 2.0)
    n = integrator.xni + ft * (integrator.xndot + ft * integrator.xnddt / 2.0)

    # The two resonance classes reconstruct M differently.
    if ds.resonance == Resonance.SYNCHRONOUS:
        M = xl - raan - argp + theta
    else:
        M = xl - 2.0 * raan + 2.0 * theta

    return n, e, i, raan, argp, M, dataclasses.replace(ds, integrator=integrator)


def deep_space_periodics(
    ds: DeepSpaceState,
    dt: ArrayLike,
    e: ArrayLike,
    i: ArrayLike,
    raan: ArrayLike,
    argp: ArrayLike,
    M: ArrayLike,
) -> tuple[Array, Array, Array, Array, Array]:
    """Add the solar and lunar periodic corrections.

    The correction form is chosen on the perturbed inclination: the direct
    form at or above 0.2 rad, the Lyddane form below.  A negative result is
    folded back to a positive inclination.

    Args:
        ds: Deep-space state.
        dt: Time since epoch [min].
        e: Eccentricity.
        i: Inclination [rad].
        raan: RAAN [rad].
        argp: Argument of perigee [rad].
        M: Mean anomaly [rad].

    Returns:
        Tuple ``(e, i, raan, argp, M)`` of perturbed elements.
    """
    pe = pinc = pl = pgh = ph = 0.0
    for body, zn, ze in ((ds.solar, ZNS, ZES), (ds.lunar, ZNL, ZEL)):
        zm = body.zm0 + zn * dt
        zf = zm + 2.0 * ze * jnp.sin(zm)
        sinzf = jnp.sin(zf)
        coszf = jnp.cos(zf)
        f2 = 0.5 * sinzf * sinzf - 0.25
        f3 = -0.5 * sinzf * coszf
        pe = pe + body.e2 * f2 + body.e3 * f3
        pinc = pinc + body.i2 * f2 + body.i3 * f3
        pl = pl + body.l2 * f2 + body.l3 * f3 + body.l4 * sinzf
        pgh = pgh + body.gh2 * f2 + body.gh3 * f3 + body.gh4 * sinzf
        ph = ph + body.h2 * f2 + body.h3 * f3

    e = e + pe
    i = i + pinc
    sin_i = jnp.sin(i)
    cos_i = jnp.cos(i)

    # Direct form
    ph_direct = ph / sin_i
    argp_direct = argp + pgh - cos_i * ph_direct
    raan_direct = raan + ph_direct

    # Lyddane form, built from the uncorrected RAAN
    sin_raan = jnp.sin(raan)
    cos_raan = jnp.cos(raan)
    alfdp = sin_i * sin_raan + ph * cos_raan + pinc * cos_i * sin_raan
    betdp = sin_i * cos_raan - ph * sin_raan + pinc * cos_i * cos_raan
    # xls uses RAAN outside a trigonometric function, so both RAAN values
    # are taken in [0, 2pi)
    raan_prev = jnp.mod(raan, TWO_PI)
    xls = M + argp + cos_i * raan_prev + pl + pgh - pinc * raan_prev * sin_i
    raan_lyddane = jnp.mod(jnp.arctan2(alfdp, betdp), TWO_PI)
    raan_lyddane = jnp.where(
        jnp.abs(raan_prev - raan_lyddane) > _py_pi,
        jnp.where(raan_lyddane < raan_prev, raan_lyddane + TWO_PI, raan_lyddane - TWO_PI),
        raan_lyddane,
    )
    argp_lyddane = xls - (M + pl) - cos_i * raan_lyddane

    direct = i >= LYDDANE_INCLINATION
    raan = jnp.where(direct, raan_direct, raan_lyddane)
    argp = jnp.where(direct, argp_direct, argp_lyddane)
    M = M + pl

    negative = i < 0.0
    i = jnp.where(negative, -i, i)
    raan = jnp.where(negative, raan + _py_pi, raan)
    argp = jnp.where(negative, argp - _py_pi, argp)

    return e, i, raan, argp, M
