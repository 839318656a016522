"""
orbitjax is a JAX implementation of the SGP4/SDP4 analytical orbit propagators.
"""

from .constants import (
    DEG2RAD,
    RAD2DEG,
    TWO_PI,
    JD_J2000,
    JD_1900,
    MINUTES_PER_DAY,
    SECONDS_PER_DAY,
)

from .config import set_dtype, get_dtype

from .time import (
    gmst_from_j2000,
    gmst_from_jd,
)

from .sgp4 import (
    MeanElements,
    Sgp4Algorithm,
    Resonance,
    Sgp4State,
    Sgp4Propagator,
    GravitationalConstants,
    WGS72,
    WGS84,
    sgp4,
    sgp4_init,
    sgp4_propagate,
    create_sgp4_propagator,
)

__all__ = [
    # Constants
    "DEG2RAD",
    "RAD2DEG",
    "TWO_PI",
    "JD_J2000",
    "JD_1900",
    "MINUTES_PER_DAY",
    "SECONDS_PER_DAY",
    # Config
    "set_dtype",
    "get_dtype",
    # Time
    "gmst_from_j2000",
    "gmst_from_jd",
    # SGP4
    "MeanElements",
    "Sgp4Algorithm",
    "Resonance",
    "Sgp4State",
    "Sgp4Propagator",
    "GravitationalConstants",
    "WGS72",
    "WGS84",
    "sgp4",
    "sgp4_init",
    "sgp4_propagate",
    "create_sgp4_propagator",
]
