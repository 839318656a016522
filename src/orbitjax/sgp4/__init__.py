"""
SGP4/SDP4 orbit propagator implemented in JAX.

This module provides a JAX-native implementation of the SGP4 (Simplified General
Perturbations 4) and SDP4 (Simplified Deep-space Perturbations 4) propagators for
mean orbital elements, including lunar-solar perturbations and the 12h/24h
geopotential resonance integrator. Propagation supports JIT compilation and
``vmap`` over time arrays.
"""

from orbitjax.sgp4._constants import (
    GRAVITY_MODELS,
    WGS72,
    WGS84,
    GravitationalConstants,
    get_gravitational_constants,
)
from orbitjax.sgp4._deep_space import (
    deep_space_init,
    deep_space_periodics,
    deep_space_secular,
    integrate_resonance,
)
from orbitjax.sgp4._propagation import (
    create_sgp4_propagator,
    select_algorithm,
    sgp4,
    sgp4_init,
    sgp4_propagate,
    solve_kepler,
)
from orbitjax.sgp4._propagator import Sgp4Propagator
from orbitjax.sgp4._types import (
    DeepSpaceState,
    MeanElements,
    Resonance,
    ResonanceIntegrator,
    ResonanceTerms,
    Sgp4Algorithm,
    Sgp4State,
    ThirdBodyPeriodics,
)

__all__ = [
    # Types
    "MeanElements",
    "Sgp4Algorithm",
    "Resonance",
    "Sgp4State",
    "DeepSpaceState",
    "ThirdBodyPeriodics",
    "ResonanceTerms",
    "ResonanceIntegrator",
    "GravitationalConstants",
    "Sgp4Propagator",
    # Constants
    "WGS72",
    "WGS84",
    "GRAVITY_MODELS",
    "get_gravitational_constants",
    # Propagation (Python-time init)
    "sgp4_init",
    "select_algorithm",
    "sgp4_propagate",
    "sgp4",
    "create_sgp4_propagator",
    "solve_kepler",
    # Deep space
    "deep_space_init",
    "deep_space_secular",
    "deep_space_periodics",
    "integrate_resonance",
]
