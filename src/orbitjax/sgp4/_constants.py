"""
Earth gravity constants and fixed model constants for the SGP4/SDP4 propagator.

Provides the two standard gravity models, WGS72 (the reference set used to
generate published element sets) and WGS84, plus the module-level tables of
branch thresholds, lunar-solar constants and resonance harmonics. The branch
thresholds are reproduced bit for bit from the published theory: agreement
with reference vectors depends on them.
"""

from math import pi, sqrt
from typing import NamedTuple


class GravitationalConstants(NamedTuple):
    """Earth gravity model constants for SGP4 propagation.

    Attributes:
        R0: Earth equatorial radius [km].
        XKE: Square root of GM in SGP4 units [er^1.5/min].
        J2: Second zonal harmonic.
        J3: Third zonal harmonic.
        J4: Fourth zonal harmonic.
    """

    R0: float
    XKE: float
    J2: float
    J3: float
    J4: float


# WGS 72 gravity constants
_mu_72 = 398600.8
_re_72 = 6378.135

WGS72 = GravitationalConstants(
    R0=_re_72,
    XKE=60.0 / sqrt(_re_72**3 / _mu_72),
    J2=0.001082616,
    J3=-0.00000253881,
    J4=-0.00000165597,
)
"""WGS 72 gravity model (standard for published element sets)."""

# WGS 84 gravity constants
_mu_84 = 398600.5
_re_84 = 6378.137

WGS84 = GravitationalConstants(
    R0=_re_84,
    XKE=60.0 / sqrt(_re_84**3 / _mu_84),
    J2=0.00108262998905,
    J3=-0.00000253215306,
    J4=-0.00000161098761,
)
"""WGS 84 gravity model."""

GRAVITY_MODELS: dict[str, GravitationalConstants] = {
    "wgs72": WGS72,
    "wgs84": WGS84,
}


def get_gravitational_constants(
    gravity: str | GravitationalConstants,
) -> GravitationalConstants:
    """Resolve a gravity model name or instance to its constants.

    Args:
        gravity: Model name (``'wgs72'`` or ``'wgs84'``, case-insensitive)
            or a :class:`GravitationalConstants` instance, returned as is.

    Returns:
        The matching :class:`GravitationalConstants`.

    Raises:
        ValueError: If *gravity* names an unknown model.
    """
    if isinstance(gravity, GravitationalConstants):
        return gravity
    try:
        return GRAVITY_MODELS[gravity.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown gravity model '{gravity}'. Must be one of: "
            f"{', '.join(sorted(GRAVITY_MODELS))}"
        ) from None


# ---------------------------------------------------------------------------
# Algorithm selection and numeric floors
# ---------------------------------------------------------------------------

DEEP_SPACE_PERIOD = 225.0
"""Orbital period at or above which SDP4 is used [min]."""

LOW_PERIGEE_ALTITUDE = 220.0
"""Perigee altitude below which the truncated SGP4 variant is used [km]."""

DENSITY_PERIGEE_ALTITUDE = 156.0
"""Perigee altitude below which the density parameter ``s`` is adjusted [km]."""

DENSITY_FLOOR_ALTITUDE = 98.0
"""Perigee altitude below which ``s`` takes its floor value [km]."""

DENSITY_S_ALTITUDE = 78.0
"""Reference altitude of the density parameter ``s`` [km]."""

DENSITY_Q0_ALTITUDE = 120.0
"""Reference altitude of the density parameter ``q0`` [km]."""

DENSITY_S_FLOOR_ALTITUDE = 20.0
"""Altitude used for ``s`` when perigee is below 98 km [km]."""

SMALL_ECCENTRICITY = 1e-4
"""Eccentricity at or below which C3 and the mean anomaly drag term vanish."""

ECCENTRICITY_FLOOR = 1e-6
"""Minimum eccentricity used by the short-period and orientation step."""

COS_INCLINATION_GUARD = 1.5e-12
"""Floor of ``|1 + cos i|`` in the long-period mean longitude term."""

SIN_INCLINATION_FLOOR = 1e-12
"""Magnitude below which ``sin i0`` is clamped during deep-space init."""

LYDDANE_INCLINATION = 0.2
"""Perturbed inclination below which the Lyddane form is applied [rad]."""

SHALLOW_INCLINATION = 3.0 * pi / 180.0
"""Inclination below which lunar-solar RAAN terms are dropped [rad]."""

# ---------------------------------------------------------------------------
# Kepler solver
# ---------------------------------------------------------------------------

KEPLER_MAX_ITERATIONS = 10
KEPLER_TOLERANCE = 1e-12
KEPLER_MAX_STEP = 0.95

# ---------------------------------------------------------------------------
# Lunar-solar constants
# ---------------------------------------------------------------------------

ZNS = 1.19459e-5
"""Solar mean motion [rad/min]."""
ZES = 0.01675
"""Solar eccentricity."""
C1SS = 2.9864797e-6
"""Solar perturbation coefficient."""

ZNL = 1.5835218e-4
"""Lunar mean motion [rad/min]."""
ZEL = 0.05490
"""Lunar eccentricity."""
C1L = 4.7968065e-7
"""Lunar perturbation coefficient."""

ZSINIS = 0.39785416
ZCOSIS = 0.91744867
ZSINGS = -0.98088458
ZCOSGS = 0.1945905

THDT = 4.37526908801129966e-3
"""Earth rotation rate [rad/min]."""

# ---------------------------------------------------------------------------
# Resonance
# ---------------------------------------------------------------------------

SYNCHRONOUS_BAND = (0.0034906585, 0.0052359877)
"""Open interval of mean motion for 24h resonance [rad/min]."""

HALF_DAY_BAND = (8.26e-3, 9.24e-3)
"""Closed interval of mean motion for 12h resonance [rad/min]."""

HALF_DAY_MIN_ECCENTRICITY = 0.5

RESONANCE_STEP = 720.0
"""Fixed step of the resonance integrator [min]."""

Q22 = 1.7891679e-6
Q31 = 2.1460748e-6
Q33 = 2.2123015e-7

ROOT22 = 1.7891679e-6
ROOT32 = 3.7393792e-7
ROOT44 = 7.3636953e-9
ROOT52 = 1.1428639e-7
ROOT54 = 2.1765803e-9

G22 = 5.7686396
G32 = 0.95240898
G44 = 1.8014998
G52 = 1.0508330
G54 = 4.4108898

FASX2 = 0.13130908
FASX4 = 2.8843198
FASX6 = 0.37448087
